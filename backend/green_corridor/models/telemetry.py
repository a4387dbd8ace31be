"""
Telemetry Data Models

Request bodies for telemetry ingestion and routing, plus the trigger event
and per-sample digest produced by the corridor orchestrator.
"""

from pydantic import BaseModel, Field
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any

from .coordinates import GPSCoordinate


class TelemetrySample(BaseModel):
    """One GPS sample from an emergency vehicle"""
    id: str = Field(..., min_length=1)
    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)
    timestamp: int                        # Unix seconds

    class Config:
        json_schema_extra = {
            "example": {
                "id": "AMB-001",
                "lat": 26.9124,
                "lon": 75.7873,
                "timestamp": 1718000000
            }
        }


class RouteRequest(BaseModel):
    """
    Route request

    Either an explicit source/destination pair or an ordered list of at
    least two waypoints (multi-leg).
    """
    srcLat: Optional[float] = None
    srcLon: Optional[float] = None
    dstLat: Optional[float] = None
    dstLon: Optional[float] = None
    waypoints: Optional[List[GPSCoordinate]] = None

    def coordinates(self) -> Optional[List[GPSCoordinate]]:
        """Resolved waypoint list, or None if the body is incomplete"""
        if self.waypoints is not None:
            return list(self.waypoints)
        values = [self.srcLat, self.srcLon, self.dstLat, self.dstLon]
        if any(v is None for v in values):
            return None
        return [
            GPSCoordinate(lat=self.srcLat, lon=self.srcLon),
            GPSCoordinate(lat=self.dstLat, lon=self.dstLon),
        ]


@dataclass
class TriggerEvent:
    """Fired once when a vehicle crosses both thresholds for an intersection"""
    ambulance_id: str
    intersection_id: str
    intersection_type: Optional[str]
    lat: float
    lon: float
    distance_m: float
    tti_s: float
    velocity_kmh: float
    triggered_at: str                     # ISO-8601 UTC

    def to_dict(self) -> Dict[str, Any]:
        return {
            'ambulanceId': self.ambulance_id,
            'intersectionId': self.intersection_id,
            'intersectionType': self.intersection_type,
            'lat': self.lat,
            'lon': self.lon,
            'distanceToSignalM': self.distance_m,
            'ttiSeconds': self.tti_s,
            'velocityKmh': self.velocity_kmh,
            'triggeredAt': self.triggered_at
        }


@dataclass
class TelemetryDigest:
    """Live monitoring summary published after every sample"""
    ambulance_id: str
    timestamp: int
    lat: float
    lon: float
    smooth_velocity_ms: float
    velocity_kmh: float
    next_intersection: Optional[Dict[str, Any]]
    distance_to_signal_m: Optional[float]
    tti_s: Optional[float]                # None while stationary
    should_trigger: bool
    remaining_intersections: int
    triggered_intersections: int
    signal_events: List[TriggerEvent] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'ambulanceId': self.ambulance_id,
            'timestamp': self.timestamp,
            'position': {'lat': self.lat, 'lon': self.lon},
            'smoothVelocityMs': self.smooth_velocity_ms,
            'velocityKmh': self.velocity_kmh,
            'nextIntersection': self.next_intersection,
            'distanceToSignalM': self.distance_to_signal_m,
            'ttiSeconds': self.tti_s,
            'shouldTrigger': self.should_trigger,
            'remainingIntersections': self.remaining_intersections,
            'triggeredIntersections': self.triggered_intersections,
            'signalEvents': [e.to_dict() for e in self.signal_events]
        }
