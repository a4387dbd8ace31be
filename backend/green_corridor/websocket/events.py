"""
WebSocket Event Type Definitions

Event names and payload models for the dashboard channel.

Events are categorized as:
- Server -> Client: corridor and signal updates pushed from the backend
- Client -> Server: dashboard room membership
"""

from enum import Enum
from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any


DASHBOARD_ROOM = "dashboard"


# ============================================
# Event Name Constants
# ============================================

class ServerEvent(str, Enum):
    """Events emitted from server to client"""

    # Connection
    CONNECTION_SUCCESS = "connection:success"

    # Corridor engine
    CORRIDOR_STATS = "corridor:stats"
    CORRIDOR_TRIGGER = "corridor:trigger"
    CORRIDOR_ROUTE_SET = "corridor:route_set"

    # Signal interlock
    SIGNAL_STATE_UPDATED = "signal:state_updated"
    SIGNAL_ACTIVATION = "signal:activation"
    BRIDGE_ERROR = "bridge:error"


class ClientEvent(str, Enum):
    """Events received from client"""

    # Connection
    CONNECT = "connect"
    DISCONNECT = "disconnect"

    # Rooms
    DASHBOARD_JOIN = "dashboard:join"
    DASHBOARD_LEAVE = "dashboard:leave"


# ============================================
# Server -> Client Event Data Models
# ============================================

class ConnectionSuccessData(BaseModel):
    """Data for connection:success event"""
    message: str = "Connected to Green Corridor Service"
    timestamp: float
    serverVersion: str = "1.0.0"


class RouteSetData(BaseModel):
    """Data for corridor:route_set event"""
    distanceM: float
    waypointCount: int
    intersectionCount: int
    intersections: List[Dict[str, Any]]
    waypoints: List[Dict[str, Any]]
    timestamp: float


class SignalStateUpdatedData(BaseModel):
    """Data for signal:state_updated event"""
    id: str                               # Triggered route node
    intersectionId: str                   # Managed intersection
    state: Dict[str, Dict[str, Any]]
    timestamp: float


class BridgeErrorData(BaseModel):
    """Data for bridge:error event"""
    ambulanceId: str
    intersectionId: str
    error: str
    message: str
    timestamp: float


class SignalActivationData(BaseModel):
    """Data for signal:activation event (deferred pre-arrival flush)"""
    intersectionId: str
    signalId: str
    etaSeconds: float
    scheduledFor: str
    activatedAt: Optional[str] = None


# ============================================
# Client -> Server Event Data Models
# ============================================

class DashboardJoinRequest(BaseModel):
    """Data for dashboard:join event"""
    clientName: Optional[str] = Field(default=None, max_length=64)
