"""
Signal Routes - Signal priority API

Endpoints:
- GET /api/v1/signal/intersections - Managed intersection list (public)
- POST /api/v1/signal/priority-request - Emergency priority override (SecurityToken)
- GET /api/v1/signal/state/{intersection_id} - Current intersection state
- POST /api/v1/signal/clear - Lift an override (SecurityToken)
"""

from fastapi import APIRouter, Body, Depends, Header
from pydantic import BaseModel
from typing import Optional, Dict, Any

from green_corridor.errors import NotReadyError
from green_corridor.security import AuthorizedFleet, check_security_token
from green_corridor.interlock import (
    IntersectionRegistry,
    SignalInterlockController,
    SignalPriorityService,
)

router = APIRouter(prefix="/api/v1/signal", tags=["signal"])


# ============================================
# Request Models
# ============================================

class ClearOverrideRequest(BaseModel):
    """Request to lift an interlock override"""
    intersection_id: Optional[str] = None


# Global references (set by main.py)
_service: Optional[SignalPriorityService] = None
_controller: Optional[SignalInterlockController] = None
_registry: Optional[IntersectionRegistry] = None
_fleet: Optional[AuthorizedFleet] = None
_security_token: Optional[str] = None
_ws_emitter = None


def set_signal_components(
    service: SignalPriorityService = None,
    controller: SignalInterlockController = None,
    registry: IntersectionRegistry = None,
    fleet: AuthorizedFleet = None,
    security_token: str = None,
    ws_emitter=None
):
    """Set global signal components"""
    global _service, _controller, _registry, _fleet, _security_token, _ws_emitter
    _service = service
    _controller = controller
    _registry = registry
    _fleet = fleet
    _security_token = security_token
    _ws_emitter = ws_emitter


def _get_service() -> SignalPriorityService:
    if _service is None:
        raise NotReadyError("Signal priority service not initialized")
    return _service


def _get_controller() -> SignalInterlockController:
    if _controller is None:
        raise NotReadyError("Signal interlock not initialized")
    return _controller


def _get_registry() -> IntersectionRegistry:
    if _registry is None:
        raise NotReadyError("Intersection registry not initialized")
    return _registry


async def require_security_token(
    security_token: Optional[str] = Header(default=None, alias="SecurityToken")
):
    """Step 1 of the secure handshake: SecurityToken header"""
    check_security_token(security_token, _security_token or "")


# ============================================
# Endpoints
# ============================================

@router.get("/intersections")
async def list_intersections() -> Dict[str, Any]:
    """Managed intersections with ids, names, coordinates and directions"""
    intersections = _get_registry().summaries()
    return {"success": True, "count": len(intersections), "intersections": intersections}


@router.post("/priority-request", dependencies=[Depends(require_security_token)])
async def priority_request(body: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
    """
    Emergency signal priority override

    Body:
        ambulance_id: Authorized fleet vehicle
        signal_id: N | S | E | W (any case)
        estimated_arrival_time: Seconds until arrival (>= 0)
        intersection_id: Optional, defaults to INT-MAIN

    Sets the approach GREEN, locks its conflict group HARD_RED and holds the
    rest at RED; activation is immediate for ETA <= 20s, otherwise planned
    for (ETA - 10)s from now.
    """
    service = _get_service()
    if _fleet is None:
        raise NotReadyError("Authorized fleet not loaded")

    vehicle_info = _fleet.require(body.get("ambulance_id"))
    return service.handle_request(body, vehicle_info)


@router.get("/state/{intersection_id}")
async def get_intersection_state(intersection_id: str) -> Dict[str, Any]:
    """Current snapshot (each head's default if never overridden)"""
    controller = _get_controller()
    snapshot = controller.get_state(intersection_id)
    return {
        "success": True,
        "intersection_id": snapshot.intersection_id,
        "intersection_name": snapshot.intersection_name,
        "override_active": controller.is_overridden(snapshot.intersection_id),
        "green_signal": snapshot.activated_signal.value if snapshot.activated_signal else None,
        "hard_red_signals": [d.value for d in snapshot.hard_red_signals],
        "intersection_state": snapshot.to_state_dict(),
    }


@router.post("/clear", dependencies=[Depends(require_security_token)])
async def clear_override(request: ClearOverrideRequest = Body(default=None)) -> Dict[str, Any]:
    """Lift the HARD_RED lockout at an intersection"""
    controller = _get_controller()
    intersection_id = (request.intersection_id if request else None) or _get_service().default_intersection

    snapshot = controller.clear_override(intersection_id)
    state = snapshot.to_state_dict()

    if _ws_emitter:
        await _ws_emitter.emit_signal_state_updated(snapshot.intersection_id, snapshot.intersection_id, state)

    return {
        "success": True,
        "intersection_id": snapshot.intersection_id,
        "intersection_name": snapshot.intersection_name,
        "intersection_state": state,
    }
