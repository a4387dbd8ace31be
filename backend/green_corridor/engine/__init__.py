"""
Corridor Engine Module

Velocity smoothing, time-to-intersection prediction, exactly-once trigger
sequencing and the bridge to the signal priority API.
"""

from .velocity import VelocitySmoother
from .tti import TTIResult, evaluate_tti
from .signal_bridge import (
    SignalBridge,
    BridgeResult,
    HttpSignalClient,
    LocalSignalClient,
    bearing_to_direction,
)
from .orchestrator import (
    CorridorOrchestrator,
    TrackedIntersection,
    VehicleTrackState,
)

__all__ = [
    'VelocitySmoother',
    'TTIResult',
    'evaluate_tti',
    'SignalBridge',
    'BridgeResult',
    'HttpSignalClient',
    'LocalSignalClient',
    'bearing_to_direction',
    'CorridorOrchestrator',
    'TrackedIntersection',
    'VehicleTrackState',
]
