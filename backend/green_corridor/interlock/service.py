"""
Signal Priority Service

Validates an emergency priority request against the intersection registry,
runs it through the pre-arrival scheduler and builds the response body.
Shared by the HTTP route and the in-process signal client.
"""

import math
import uuid
from typing import Any, Dict, Optional

from green_corridor.clock import iso_utc
from green_corridor.errors import CorridorError, InternalError, ValidationError
from green_corridor.models import Direction
from green_corridor.interlock.intersections import IntersectionRegistry
from green_corridor.interlock.scheduler import PreArrivalScheduler


DEFAULT_INTERSECTION_ID = "INT-MAIN"
MAX_ETA_SECONDS = 24 * 60 * 60


def _plain_number(value: float):
    """15.0 -> 15, keep fractional values"""
    return int(value) if float(value).is_integer() else value


class SignalPriorityService:
    """
    Handle one priority request end to end

    Validation order (first failure wins):
        MISSING_FIELDS -> INVALID_INTERSECTION_ID -> INVALID_SIGNAL_ID -> INVALID_ETA

    ETAs above MAX_ETA_SECONDS (one day) are INVALID_ETA.
    """

    def __init__(
        self,
        registry: IntersectionRegistry,
        scheduler: PreArrivalScheduler,
        default_intersection: str = DEFAULT_INTERSECTION_ID
    ):
        self.registry = registry
        self.scheduler = scheduler
        self.default_intersection = default_intersection
        self.requests_handled = 0

    def _validate(self, body: Dict[str, Any]):
        signal_id = body.get("signal_id")
        raw_eta = body.get("estimated_arrival_time")

        if signal_id is None or raw_eta is None:
            raise ValidationError(
                "Request body must include 'signal_id' and 'estimated_arrival_time'.",
                code="MISSING_FIELDS"
            )

        intersection_id = body.get("intersection_id") or self.default_intersection
        intersection = self.registry.require(intersection_id)

        valid = [d.value for d in intersection.directions]
        try:
            direction = Direction.parse(signal_id)
        except ValueError:
            direction = None
        if direction is None or direction not in intersection.signals:
            raise ValidationError(
                f"'signal_id' must be one of: {', '.join(valid)}. Received: '{signal_id}'.",
                code="INVALID_SIGNAL_ID"
            )

        try:
            eta = float(raw_eta) if not isinstance(raw_eta, bool) else None
        except (TypeError, ValueError):
            eta = None
        if eta is None or math.isnan(eta) or math.isinf(eta) or eta < 0:
            raise ValidationError(
                "'estimated_arrival_time' must be a non-negative number (seconds).",
                code="INVALID_ETA"
            )
        if eta > MAX_ETA_SECONDS:
            raise ValidationError(
                f"'estimated_arrival_time' must not exceed {MAX_ETA_SECONDS} seconds. Received: {raw_eta}.",
                code="INVALID_ETA"
            )

        return intersection.id, direction, eta

    def handle_request(
        self,
        body: Dict[str, Any],
        vehicle_info: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Validate, schedule and describe a priority request

        Args:
            body: Request body (signal_id, estimated_arrival_time, intersection_id?)
            vehicle_info: Authorized fleet record of the requesting vehicle

        Returns:
            Response body for a successful request

        Raises:
            ValidationError / NotFoundError: invalid request (400)
            InternalError: the interlock could not be computed (500)
        """
        intersection_id, direction, eta = self._validate(body)

        try:
            result = self.scheduler.schedule(direction, eta, intersection_id)
        except CorridorError as e:
            raise InternalError(e.message) from e
        except Exception as e:
            raise InternalError(str(e)) from e

        request_id = str(uuid.uuid4())
        timestamp = iso_utc()
        snapshot = result.snapshot
        self.requests_handled += 1

        print(f"[PRIORITY REQUEST] id={request_id} vehicle={body.get('ambulance_id')} "
              f"signal={direction.value} eta={_plain_number(eta)}s "
              f"flush={result.status.value} at={timestamp}")

        return {
            "success": True,
            "request_id": request_id,
            "timestamp": timestamp,
            "vehicle": vehicle_info,
            "priority_request": {
                "signal_id": direction.value,
                "estimated_arrival_time_seconds": _plain_number(eta),
            },
            "flush_status": result.status.value,
            "activation_delay_seconds": _plain_number(result.delay_seconds),
            "activation_at_iso": result.activation_at_iso,
            "safety_interlock": {
                "green_signal": snapshot.activated_signal.value,
                "hard_red_signals": [d.value for d in snapshot.hard_red_signals],
                "intersection_id": snapshot.intersection_id,
                "intersection_name": snapshot.intersection_name,
            },
            "intersection_state": snapshot.to_state_dict(),
        }
