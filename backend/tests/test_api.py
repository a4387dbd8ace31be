"""
API Tests

This module tests the REST endpoints against in-memory components:
- Root and health endpoints
- Corridor routing and telemetry
- Map inspection
- Signal priority API and the secure handshake
"""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from green_corridor import main
from green_corridor.main import app
from green_corridor.api import set_corridor_components, set_signal_components
from green_corridor.engine import CorridorOrchestrator
from green_corridor.interlock import PreArrivalScheduler, SignalInterlockController, SignalPriorityService
from green_corridor.models import RoadNode
from green_corridor.routing import RoadGraph, RouteFinder, load_road_graph


client = TestClient(app)

SAMPLE_GRAPH = Path(__file__).parent.parent / "data" / "sample_city.graphml"
TOKEN = "TEST_TOKEN"
AUTH = {"SecurityToken": TOKEN}

# Corners of the sample grid
NODE_1001 = {"lat": 26.8860, "lon": 75.7873}
NODE_1003 = {"lat": 26.8860, "lon": 75.8050}
NODE_1009 = {"lat": 26.9350, "lon": 75.8050}


@pytest.fixture(scope="module")
def sample_graph():
    graph, _ = load_road_graph(SAMPLE_GRAPH)
    return graph


@pytest.fixture
def emitter():
    return AsyncMock()


@pytest.fixture
def components(sample_graph, registry, fleet, emitter):
    """Wire fresh components into the routers"""
    orchestrator = CorridorOrchestrator(ws_emitter=emitter)
    controller = SignalInterlockController(registry)
    scheduler = PreArrivalScheduler(controller)
    service = SignalPriorityService(registry, scheduler)

    set_corridor_components(
        route_finder=RouteFinder(sample_graph),
        orchestrator=orchestrator,
        ws_emitter=emitter,
        registry=registry
    )
    set_signal_components(
        service=service,
        controller=controller,
        registry=registry,
        fleet=fleet,
        security_token=TOKEN,
        ws_emitter=emitter
    )

    yield {"orchestrator": orchestrator, "controller": controller, "scheduler": scheduler}

    scheduler.shutdown()
    set_corridor_components()
    set_signal_components()


def route_body(src, dst):
    return {"srcLat": src["lat"], "srcLon": src["lon"], "dstLat": dst["lat"], "dstLon": dst["lon"]}


# ============================================
# Root & Health Tests
# ============================================

class TestRootEndpoints:
    """Test root and health endpoints"""

    def test_root(self):
        response = client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Green Corridor Service"
        assert "route" in data["endpoints"]

    def test_health_before_startup(self):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "loading"
        assert data["service"] == "green-corridor"
        assert set(data["thresholds"]) == {"proximityM", "ttiSec"}

    @pytest.mark.asyncio
    async def test_malformed_graph_reported_as_error(self, tmp_path, monkeypatch):
        path = tmp_path / "city.json"
        path.write_text("{not json")
        cfg = MagicMock()
        cfg.resolve_path.return_value = path
        cfg.get.return_value = 1.0
        monkeypatch.setattr(main, "graph_error", None)

        await main.load_graph_in_background(cfg)

        assert main.graph_error.startswith("Malformed road graph city.json")

    def test_health_reports_graph_error(self, monkeypatch):
        monkeypatch.setattr(main, "graph_error", "Malformed road graph city.json")

        data = client.get("/health").json()

        assert data["status"] == "error"
        assert data["graphError"] == "Malformed road graph city.json"


# ============================================
# Corridor Tests
# ============================================

class TestEngineNotReady:
    """Endpoints answer 503 while the road graph loads"""

    def test_route_not_ready(self):
        set_corridor_components(route_finder=RouteFinder(), orchestrator=CorridorOrchestrator())
        try:
            response = client.post("/route", json=route_body(NODE_1001, NODE_1009))
        finally:
            set_corridor_components()

        assert response.status_code == 503
        assert response.json() == {
            "success": False,
            "error": "SERVICE_UNAVAILABLE",
            "message": "Engine still loading"
        }

    def test_telemetry_not_ready(self):
        response = client.post("/telemetry", json={"id": "AMB-001", "lat": 26.9, "lon": 75.8, "timestamp": 1})
        assert response.status_code == 503

    def test_map_not_ready(self):
        assert client.get("/map/nodes").status_code == 503


class TestRouteEndpoint:
    """Test POST /route"""

    def test_route_between_points(self, components, emitter):
        response = client.post("/route", json=route_body(NODE_1001, NODE_1009))

        assert response.status_code == 200
        data = response.json()
        assert data["distanceM"] == pytest.approx(7193.1)
        assert data["waypointCount"] == 5
        assert data["intersectionCount"] == 2
        assert [n["id"] for n in data["intersections"]] == ["1004", "1008"]

        emitter.emit_route_set.assert_awaited_once()
        status = components["orchestrator"].get_status()
        assert status["routeActive"] is True
        assert [t["id"] for t in status["intersections"]] == ["1004", "1008"]

    def test_multi_leg_route(self, components):
        response = client.post("/route", json={"waypoints": [NODE_1001, NODE_1003, NODE_1009]})

        assert response.status_code == 200
        data = response.json()
        assert [w["id"] for w in data["waypoints"]] == ["1001", "1002", "1003", "1006", "1009"]
        assert [n["id"] for n in data["intersections"]] == ["1002", "1006"]

    def test_merge_managed_intersections(self, components, sample_graph, registry):
        set_corridor_components(
            route_finder=RouteFinder(sample_graph),
            orchestrator=components["orchestrator"],
            registry=registry,
            merge_managed_intersections=True
        )
        response = client.post("/route", json=route_body(NODE_1001, NODE_1009))

        data = response.json()
        assert data["intersectionCount"] == 5
        assert [n["id"] for n in data["intersections"]][2:] == ["INT-MAIN", "INT-NORTH", "INT-EAST"]
        assert data["intersections"][2]["tag"] == "traffic_signals"

    def test_incomplete_body(self, components):
        response = client.post("/route", json={"srcLat": 26.88, "srcLon": 75.78})

        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    def test_invalid_coordinate(self, components):
        response = client.post("/route", json={"waypoints": [{"lat": 120, "lon": 75.78}, NODE_1009]})

        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    def test_single_waypoint(self, components):
        response = client.post("/route", json={"waypoints": [NODE_1001]})
        assert response.status_code == 400

    def test_no_route(self, components):
        graph = RoadGraph(
            [RoadNode(id="a", lat=0.0, lon=0.0), RoadNode(id="b", lat=1.0, lon=1.0)],
            []
        )
        set_corridor_components(route_finder=RouteFinder(graph), orchestrator=components["orchestrator"])

        response = client.post("/route", json={"srcLat": 0, "srcLon": 0, "dstLat": 1, "dstLon": 1})

        assert response.status_code == 404
        assert response.json()["error"] == "NO_ROUTE"


class TestTelemetryEndpoint:
    """Test POST /telemetry and vehicle state"""

    def test_digest_after_route(self, components, emitter):
        client.post("/route", json=route_body(NODE_1001, NODE_1009))

        sample = {"id": "AMB-001", "lat": NODE_1001["lat"], "lon": NODE_1001["lon"], "timestamp": 1718000000}
        response = client.post("/telemetry", json=sample)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        stats = data["stats"]
        assert stats["ambulanceId"] == "AMB-001"
        assert stats["nextIntersection"]["id"] == "1004"
        assert stats["ttiSeconds"] is None
        assert stats["remainingIntersections"] == 2
        assert stats["signalEvents"] == []

        emitter.emit_corridor_stats.assert_awaited_once()

    def test_invalid_sample(self, components):
        response = client.post("/telemetry", json={"id": "AMB-001", "lat": 95, "lon": 75.8, "timestamp": 1})

        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    def test_missing_vehicle_id(self, components):
        response = client.post("/telemetry", json={"lat": 26.9, "lon": 75.8, "timestamp": 1})
        assert response.status_code == 400

    def test_reset_vehicle(self, components):
        assert client.post("/vehicles/AMB-009/reset").status_code == 404

        client.post("/telemetry", json={"id": "AMB-009", "lat": 26.9, "lon": 75.8, "timestamp": 1})
        response = client.post("/vehicles/AMB-009/reset")

        assert response.status_code == 200
        assert response.json() == {"success": True, "vehicleId": "AMB-009"}

    def test_corridor_status(self, components):
        response = client.get("/corridor/status")

        assert response.status_code == 200
        data = response.json()
        assert data["routeActive"] is False
        assert data["thresholds"]["proximityM"] == 500


class TestMapEndpoints:
    """Test map inspection endpoints"""

    def test_nodes(self, components):
        data = client.get("/map/nodes").json()
        assert data["count"] == 9
        assert len(data["nodes"]) == 9

    def test_intersections(self, components):
        data = client.get("/map/intersections").json()
        assert data["count"] == 5
        assert {n["id"] for n in data["nodes"]} == {"1002", "1004", "1005", "1006", "1008"}

    def test_nearby_intersections(self, components):
        response = client.get("/map/intersections/nearby", params={"lat": 26.9124, "lon": 75.7960, "radius": 100})

        data = response.json()
        assert data["count"] == 1
        assert data["nodes"][0]["id"] == "1005"

    def test_nearest_node(self, components):
        response = client.get("/map/nearest", params={"lat": 26.8861, "lon": 75.7874})
        assert response.json()["id"] == "1001"

    def test_nearby_requires_coordinates(self, components):
        response = client.get("/map/intersections/nearby", params={"lat": 26.9})
        assert response.status_code == 400


# ============================================
# Signal API Tests
# ============================================

class TestSignalAPI:
    """Test /api/v1/signal endpoints"""

    def test_list_intersections(self, components):
        response = client.get("/api/v1/signal/intersections")

        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 3
        assert data["intersections"][0]["id"] == "INT-MAIN"
        assert data["intersections"][0]["signal_directions"] == ["N", "S", "E", "W"]

    @pytest.mark.parametrize("headers,body,status,code", [
        ({}, {"ambulance_id": "AMB-001", "signal_id": "N", "estimated_arrival_time": 5},
         401, "MISSING_SECURITY_TOKEN"),
        ({"SecurityToken": "WRONG"}, {"ambulance_id": "AMB-001", "signal_id": "N", "estimated_arrival_time": 5},
         401, "INVALID_SECURITY_TOKEN"),
        (AUTH, {"signal_id": "N", "estimated_arrival_time": 5},
         400, "MISSING_AMBULANCE_ID"),
        (AUTH, {"ambulance_id": "ROGUE-1", "signal_id": "N", "estimated_arrival_time": 5},
         403, "UNAUTHORIZED_VEHICLE"),
        (AUTH, {"ambulance_id": "AMB-001", "signal_id": "N"},
         400, "MISSING_FIELDS"),
        (AUTH, {"ambulance_id": "AMB-001", "signal_id": "N", "estimated_arrival_time": 5, "intersection_id": "INT-X"},
         400, "INVALID_INTERSECTION_ID"),
        (AUTH, {"ambulance_id": "AMB-001", "signal_id": "Q", "estimated_arrival_time": 5},
         400, "INVALID_SIGNAL_ID"),
        (AUTH, {"ambulance_id": "AMB-001", "signal_id": "N", "estimated_arrival_time": -3},
         400, "INVALID_ETA"),
    ])
    def test_priority_request_rejected(self, components, headers, body, status, code):
        response = client.post("/api/v1/signal/priority-request", json=body, headers=headers)

        assert response.status_code == status
        data = response.json()
        assert data["success"] is False
        assert data["error"] == code
        assert not components["controller"].is_overridden("INT-MAIN")

    def test_priority_request_immediate(self, components):
        body = {"ambulance_id": "AMB-001", "signal_id": "N", "estimated_arrival_time": 15}
        response = client.post("/api/v1/signal/priority-request", json=body, headers=AUTH)

        assert response.status_code == 200
        data = response.json()
        assert data["flush_status"] == "IMMEDIATE"
        assert data["activation_delay_seconds"] == 0
        assert data["vehicle"]["id"] == "AMB-001"
        assert data["intersection_state"]["N"]["state"] == "GREEN"
        assert data["intersection_state"]["E"]["state"] == "HARD_RED"
        assert data["intersection_state"]["W"]["state"] == "HARD_RED"
        assert data["intersection_state"]["S"]["state"] == "RED"

    def test_priority_request_scheduled(self, components):
        body = {"ambulance_id": "AMB-002", "signal_id": "e", "estimated_arrival_time": 30, "intersection_id": "INT-EAST"}
        response = client.post("/api/v1/signal/priority-request", json=body, headers=AUTH)

        data = response.json()
        assert data["flush_status"] == "SCHEDULED"
        assert data["activation_delay_seconds"] == 20
        assert data["safety_interlock"]["intersection_id"] == "INT-EAST"
        assert components["scheduler"].pending_count == 1

    def test_state_and_clear(self, components, emitter):
        body = {"ambulance_id": "AMB-001", "signal_id": "S", "estimated_arrival_time": 5}
        client.post("/api/v1/signal/priority-request", json=body, headers=AUTH)

        state = client.get("/api/v1/signal/state/INT-MAIN").json()
        assert state["override_active"] is True
        assert state["green_signal"] == "S"
        assert state["hard_red_signals"] == ["E", "W"]

        response = client.post("/api/v1/signal/clear", json={"intersection_id": "INT-MAIN"}, headers=AUTH)
        assert response.status_code == 200
        assert all(s["state"] == "RED" for s in response.json()["intersection_state"].values())
        emitter.emit_signal_state_updated.assert_awaited_once()

        state = client.get("/api/v1/signal/state/INT-MAIN").json()
        assert state["override_active"] is False
        assert state["green_signal"] is None

    def test_clear_defaults_to_main_intersection(self, components):
        response = client.post("/api/v1/signal/clear", headers=AUTH)

        assert response.status_code == 200
        assert response.json()["intersection_id"] == "INT-MAIN"

    def test_clear_requires_token(self, components):
        response = client.post("/api/v1/signal/clear", json={"intersection_id": "INT-MAIN"})
        assert response.status_code == 401

    def test_state_unknown_intersection(self, components):
        response = client.get("/api/v1/signal/state/INT-X")

        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_INTERSECTION_ID"
