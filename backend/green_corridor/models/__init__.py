"""
Data Models Package

All data models for the Green Corridor service.
Import from here for convenience.
"""

# Coordinate models
from .coordinates import GPSCoordinate

# Road network models
from .road import (
    RoadNode,
    RoadEdge,
    Route,
    GraphStats,
)

# Signal and intersection models
from .signal import (
    Direction,
    SignalColor,
    SignalHead,
    ManagedIntersection,
    SignalStateEntry,
    SignalStateSnapshot,
)

# Telemetry models
from .telemetry import (
    TelemetrySample,
    RouteRequest,
    TriggerEvent,
    TelemetryDigest,
)


__all__ = [
    # Coordinates
    "GPSCoordinate",

    # Road network
    "RoadNode",
    "RoadEdge",
    "Route",
    "GraphStats",

    # Signals
    "Direction",
    "SignalColor",
    "SignalHead",
    "ManagedIntersection",
    "SignalStateEntry",
    "SignalStateSnapshot",

    # Telemetry
    "TelemetrySample",
    "RouteRequest",
    "TriggerEvent",
    "TelemetryDigest",
]
