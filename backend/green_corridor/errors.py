"""
Error Taxonomy

Exceptions raised by the corridor engine and the signal interlock.
Each carries a machine-readable code and the HTTP status the API layer
answers with, so route handlers never have to translate by hand.

    ValidationError    - malformed / missing / out-of-range input (400)
    NotFoundError      - no path, unknown id (404, or 400 at the signal API)
    NotReadyError      - road graph still loading (503, retryable)
    BridgeError        - downstream interlock call failed (never reaches telemetry)
    InternalError      - interlock could not be computed (500, no snapshot)
    ConfigurationError - invalid static configuration at startup
    AuthenticationError - missing or wrong SecurityToken (401)
    AuthorizationError - vehicle not in the authorized fleet (403)
"""

from typing import Any, Dict, Optional


class CorridorError(Exception):
    """Base class for all green corridor errors"""

    code = "CORRIDOR_ERROR"
    status_code = 500

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status_code: Optional[int] = None
    ):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        """Error body returned by the API"""
        return {
            "success": False,
            "error": self.code,
            "message": self.message,
        }


class ValidationError(CorridorError):
    code = "VALIDATION_ERROR"
    status_code = 400


class NotFoundError(CorridorError):
    code = "NOT_FOUND"
    status_code = 404


class NotReadyError(CorridorError):
    code = "SERVICE_UNAVAILABLE"
    status_code = 503


class BridgeError(CorridorError):
    code = "BRIDGE_ERROR"
    status_code = 502


class InternalError(CorridorError):
    code = "SIGNAL_OVERRIDE_FAILED"
    status_code = 500


class ConfigurationError(CorridorError):
    code = "CONFIGURATION_ERROR"
    status_code = 500


class AuthenticationError(CorridorError):
    code = "INVALID_SECURITY_TOKEN"
    status_code = 401


class AuthorizationError(CorridorError):
    code = "UNAUTHORIZED_VEHICLE"
    status_code = 403
