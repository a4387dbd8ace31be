"""
Corridor Routes - Routing, telemetry and map inspection endpoints

Endpoints:
- POST /route - Solve and activate a corridor route
- POST /telemetry - Ingest one vehicle GPS sample
- POST /vehicles/{vehicle_id}/reset - Drop a vehicle's motion state
- GET /corridor/status - Tracked intersections and counters
- GET /map/nodes - All road graph nodes
- GET /map/intersections - Tagged intersection nodes
- GET /map/intersections/nearby - Intersections within a radius
- GET /map/nearest - Nearest road node to a coordinate
"""

from fastapi import APIRouter, Query
from typing import Optional, List, Dict, Any

from green_corridor.errors import NotReadyError, NotFoundError, ValidationError
from green_corridor.models import RoadNode, RouteRequest, TelemetrySample
from green_corridor.engine import CorridorOrchestrator
from green_corridor.routing import RouteFinder, RoadGraph
from green_corridor.interlock import IntersectionRegistry

router = APIRouter(tags=["corridor"])

MANAGED_INTERSECTION_TAG = "traffic_signals"


# Global references (set by main.py)
_route_finder: Optional[RouteFinder] = None
_orchestrator: Optional[CorridorOrchestrator] = None
_ws_emitter = None
_registry: Optional[IntersectionRegistry] = None
_merge_managed = False


def set_corridor_components(
    route_finder: RouteFinder = None,
    orchestrator: CorridorOrchestrator = None,
    ws_emitter=None,
    registry: IntersectionRegistry = None,
    merge_managed_intersections: bool = False
):
    """Set global corridor components"""
    global _route_finder, _orchestrator, _ws_emitter, _registry, _merge_managed
    _route_finder = route_finder
    _orchestrator = orchestrator
    _ws_emitter = ws_emitter
    _registry = registry
    _merge_managed = merge_managed_intersections


def _get_route_finder() -> RouteFinder:
    if _route_finder is None or _route_finder.graph is None:
        raise NotReadyError("Engine still loading")
    return _route_finder


def _get_graph() -> RoadGraph:
    return _get_route_finder().graph


def _get_orchestrator() -> CorridorOrchestrator:
    # Telemetry is only meaningful once routes can be solved
    _get_route_finder()
    if _orchestrator is None:
        raise NotReadyError("Engine still loading")
    return _orchestrator


def _managed_nodes(existing: List[RoadNode]) -> List[RoadNode]:
    """Managed intersections not already on the route, as trigger targets"""
    if _registry is None:
        return []
    seen = {node.id for node in existing}
    return [
        RoadNode(
            id=intersection.id,
            lat=intersection.location.lat,
            lon=intersection.location.lon,
            tag=MANAGED_INTERSECTION_TAG
        )
        for intersection in _registry.all()
        if intersection.id not in seen
    ]


# ============================================
# Routing
# ============================================

@router.post("/route")
async def set_route(request: RouteRequest) -> Dict[str, Any]:
    """
    Solve a route and make it the active corridor

    Body is either {srcLat, srcLon, dstLat, dstLon} or
    {waypoints: [{lat, lon}, ...]}. The previous route, and every trigger
    flag with it, is replaced.
    """
    finder = _get_route_finder()
    orchestrator = _get_orchestrator()

    coordinates = request.coordinates()
    if coordinates is None:
        raise ValidationError("Body must include waypoints array OR srcLat, srcLon, dstLat, dstLon")

    route = finder.find_multi_leg_route(coordinates)

    tracked = list(route.intersections)
    if _merge_managed:
        tracked.extend(_managed_nodes(tracked))

    orchestrator.set_route(tracked)

    response = route.to_dict()
    response['intersectionCount'] = len(tracked)
    response['intersections'] = [n.to_dict() for n in tracked]

    print(f"[ROUTE] {len(route.path)} nodes | {len(tracked)} intersections "
          f"({len(route.intersections)} on graph) | {route.total_distance_m:.0f} m")

    if _ws_emitter:
        await _ws_emitter.emit_route_set(response)

    return response


# ============================================
# Telemetry
# ============================================

@router.post("/telemetry")
async def ingest_telemetry(sample: TelemetrySample) -> Dict[str, Any]:
    """Process one GPS sample and return the live digest"""
    orchestrator = _get_orchestrator()
    digest = await orchestrator.process_telemetry(sample)
    return {"success": True, "stats": digest.to_dict()}


@router.post("/vehicles/{vehicle_id}/reset")
async def reset_vehicle(vehicle_id: str) -> Dict[str, Any]:
    orchestrator = _get_orchestrator()
    if not orchestrator.reset_vehicle(vehicle_id):
        raise NotFoundError(f"No tracked state for vehicle '{vehicle_id}'", code="VEHICLE_NOT_FOUND")
    return {"success": True, "vehicleId": vehicle_id}


@router.get("/corridor/status")
async def get_corridor_status() -> Dict[str, Any]:
    """Tracked intersections, vehicle count and trigger counters"""
    return _get_orchestrator().get_status()


# ============================================
# Map inspection
# ============================================

@router.get("/map/nodes")
async def get_map_nodes() -> Dict[str, Any]:
    graph = _get_graph()
    return {
        "count": graph.node_count,
        "nodes": [n.to_dict() for n in graph.nodes.values()]
    }


@router.get("/map/intersections")
async def get_map_intersections() -> Dict[str, Any]:
    nodes = _get_graph().get_intersection_nodes()
    return {"count": len(nodes), "nodes": [n.to_dict() for n in nodes]}


@router.get("/map/intersections/nearby")
async def get_nearby_intersections(
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    radius: float = Query(default=1000, gt=0, description="Search radius in metres")
) -> Dict[str, Any]:
    nodes = _get_graph().find_intersections_within(lat, lon, radius)
    return {"count": len(nodes), "nodes": [n.to_dict() for n in nodes]}


@router.get("/map/nearest")
async def get_nearest_node(
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180)
) -> Dict[str, Any]:
    node = _get_graph().find_nearest_node(lat, lon)
    if node is None:
        raise NotFoundError("No node found")
    return node.to_dict()
