"""
Secure Handshake

Two checks guard every signal override:

    1. The SecurityToken header must match the configured token (401).
    2. The ambulance_id must belong to the authorized fleet (400 if
       missing, 403 if unknown).
"""

import hmac
from typing import Any, Dict, Optional

from green_corridor.errors import AuthenticationError, AuthorizationError, ValidationError


def check_security_token(provided: Optional[str], expected: str):
    """
    Raises:
        AuthenticationError: token missing or not matching
    """
    if not provided:
        raise AuthenticationError(
            "Request rejected: 'SecurityToken' header is required. "
            "All priority-override requests must carry a valid security token.",
            code="MISSING_SECURITY_TOKEN"
        )
    if not hmac.compare_digest(str(provided), str(expected)):
        raise AuthenticationError(
            "Request rejected: The provided SecurityToken does not match. Access denied."
        )


class AuthorizedFleet:
    """
    Vehicles allowed to request signal priority

    Loaded from config/fleet.yaml, keyed by ambulance_id.
    """

    def __init__(self, records: Optional[Dict[str, Dict[str, Any]]] = None):
        self._vehicles: Dict[str, Dict[str, Any]] = {}
        for vehicle_id, record in (records or {}).items():
            self._vehicles[str(vehicle_id)] = {"id": str(vehicle_id), **(record or {})}

    def __len__(self) -> int:
        return len(self._vehicles)

    def is_authorized(self, ambulance_id: str) -> bool:
        return ambulance_id in self._vehicles

    def get_vehicle_info(self, ambulance_id: str) -> Optional[Dict[str, Any]]:
        record = self._vehicles.get(ambulance_id)
        return dict(record) if record else None

    def require(self, ambulance_id: Optional[str]) -> Dict[str, Any]:
        """
        Fleet record for an authorized vehicle

        Raises:
            ValidationError: ambulance_id missing (MISSING_AMBULANCE_ID)
            AuthorizationError: vehicle not in the fleet
        """
        if not ambulance_id:
            raise ValidationError(
                "Request body must include 'ambulance_id'.",
                code="MISSING_AMBULANCE_ID"
            )
        record = self.get_vehicle_info(str(ambulance_id))
        if record is None:
            raise AuthorizationError(
                f"Vehicle '{ambulance_id}' is NOT in the authorized emergency fleet. "
                "Signal override denied."
            )
        return record
