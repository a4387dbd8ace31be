"""
Green Corridor Orchestrator

Consumes vehicle telemetry, predicts arrival at each signalled
intersection on the active route and fires each intersection's trigger
exactly once. Triggers are broadcast immediately and handed to the signal
bridge in the background; bridge failures never block or roll back a
trigger.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from green_corridor.clock import iso_utc
from green_corridor.errors import BridgeError
from green_corridor.models import RoadNode, TelemetrySample, TriggerEvent, TelemetryDigest
from green_corridor.engine.velocity import VelocitySmoother, DEFAULT_WINDOW
from green_corridor.engine.tti import evaluate_tti
from green_corridor.geo import velocity_ms


@dataclass
class TrackedIntersection:
    """
    Route intersection plus its trigger flag

    PENDING -> TRIGGERED, never back.
    """
    node: RoadNode
    triggered: bool = False

    @property
    def id(self) -> str:
        return self.node.id

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.node.id,
            'lat': self.node.lat,
            'lon': self.node.lon,
            'tag': self.node.tag,
            'triggered': self.triggered
        }


@dataclass
class VehicleTrackState:
    """Per-vehicle motion state, created on the first sample"""
    vehicle_id: str
    smoother: VelocitySmoother
    last_lat: Optional[float] = None
    last_lon: Optional[float] = None
    last_timestamp: Optional[float] = None
    samples: int = 0
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    @property
    def has_last_point(self) -> bool:
        return self.last_timestamp is not None


class CorridorOrchestrator:
    """
    Manage green corridor triggering for emergency vehicles

    Responsibilities:
    - Track velocity per vehicle (moving average)
    - Evaluate TTI against every pending intersection
    - Fire each intersection at most once per route
    - Hand triggers to the signal bridge without blocking telemetry
    - Broadcast stats, triggers and signal updates

    Usage:
        orchestrator = CorridorOrchestrator(bridge=bridge, ws_emitter=emitter)
        orchestrator.set_route(route.intersections)
        digest = await orchestrator.process_telemetry(sample)
    """

    def __init__(
        self,
        bridge=None,
        ws_emitter=None,
        proximity_threshold_m: float = 500,
        tti_threshold_s: float = 20,
        smoothing_window: int = DEFAULT_WINDOW,
        fallback_target: Optional[RoadNode] = None
    ):
        """
        Initialize orchestrator

        Args:
            bridge: SignalBridge used for triggered intersections (optional)
            ws_emitter: WebSocket emitter for real-time updates (optional)
            proximity_threshold_m: Maximum distance for a trigger
            tti_threshold_s: Maximum time-to-intersection for a trigger
            smoothing_window: Velocity moving-average window
            fallback_target: Single target used while no route is active
        """
        self.bridge = bridge
        self.ws_emitter = ws_emitter
        self.proximity_threshold_m = proximity_threshold_m
        self.tti_threshold_s = tti_threshold_s
        self.smoothing_window = smoothing_window
        self.fallback_node = fallback_target

        self.vehicles: Dict[str, VehicleTrackState] = {}
        self.route_intersections: List[TrackedIntersection] = []
        self.fallback: Optional[TrackedIntersection] = (
            TrackedIntersection(fallback_target) if fallback_target else None
        )
        self.route_set_at: Optional[float] = None

        self._bridge_tasks: Set[asyncio.Task] = set()

        # Statistics
        self.samples_processed = 0
        self.triggers_fired = 0
        self.bridge_failures = 0

        print("[OK] Corridor orchestrator initialized")
        print(f"   Proximity: {proximity_threshold_m}m, TTI: {tti_threshold_s}s, window: {smoothing_window}")

    # ============================================
    # Route
    # ============================================

    def set_route(self, intersections: List[RoadNode]):
        """
        Replace the tracked intersections wholesale

        Every intersection starts PENDING. The fallback target is
        discarded while a route is active.
        """
        self.route_intersections = [TrackedIntersection(node) for node in intersections]
        self.fallback = None
        self.route_set_at = time.time()
        print(f"[CORRIDOR] Route set with {len(self.route_intersections)} intersection(s) to green")

    def clear_route(self):
        """Drop the active route and re-arm the fallback target"""
        self.route_intersections = []
        self.fallback = TrackedIntersection(self.fallback_node) if self.fallback_node else None
        self.route_set_at = None

    def _targets(self) -> List[TrackedIntersection]:
        if self.route_intersections:
            return self.route_intersections
        return [self.fallback] if self.fallback else []

    # ============================================
    # Vehicles
    # ============================================

    def _get_vehicle(self, vehicle_id: str) -> VehicleTrackState:
        state = self.vehicles.get(vehicle_id)
        if state is None:
            state = VehicleTrackState(
                vehicle_id=vehicle_id,
                smoother=VelocitySmoother(self.smoothing_window)
            )
            self.vehicles[vehicle_id] = state
        return state

    def reset_vehicle(self, vehicle_id: str) -> bool:
        """Forget a vehicle's motion state. Returns False if unknown."""
        removed = self.vehicles.pop(vehicle_id, None)
        if removed:
            print(f"[CORRIDOR] Vehicle state reset: {vehicle_id}")
        return removed is not None

    # ============================================
    # Telemetry
    # ============================================

    async def process_telemetry(self, sample: TelemetrySample) -> TelemetryDigest:
        """
        Process one GPS sample

        Args:
            sample: Validated telemetry sample

        Returns:
            TelemetryDigest for this tick (also broadcast as corridor:stats)
        """
        state = self._get_vehicle(sample.id)

        async with state.lock:
            smooth_velocity = state.smoother.average()
            if state.has_last_point:
                raw = velocity_ms(
                    state.last_lat, state.last_lon, state.last_timestamp,
                    sample.lat, sample.lon, sample.timestamp
                )
                smooth_velocity = state.smoother.push(raw)

            state.last_lat = sample.lat
            state.last_lon = sample.lon
            state.last_timestamp = sample.timestamp
            state.samples += 1
            velocity_kmh = round(smooth_velocity * 3.6, 2)

            events: List[TriggerEvent] = []
            for tracked in self._targets():
                if tracked.triggered:
                    continue

                result = evaluate_tti(
                    sample.lat, sample.lon,
                    tracked.node.lat, tracked.node.lon,
                    smooth_velocity,
                    self.proximity_threshold_m,
                    self.tti_threshold_s
                )
                if not result.should_trigger:
                    continue

                tracked.triggered = True
                event = TriggerEvent(
                    ambulance_id=sample.id,
                    intersection_id=tracked.id,
                    intersection_type=tracked.node.tag,
                    lat=tracked.node.lat,
                    lon=tracked.node.lon,
                    distance_m=result.distance_m,
                    tti_s=result.tti_s,
                    velocity_kmh=velocity_kmh,
                    triggered_at=iso_utc()
                )
                events.append(event)
                await self._fire(event, (sample.lat, sample.lon))

            digest = self._build_digest(sample, smooth_velocity, velocity_kmh, events)
            self.samples_processed += 1

        if self.ws_emitter:
            await self.ws_emitter.emit_corridor_stats(digest.to_dict())
        return digest

    def _build_digest(
        self,
        sample: TelemetrySample,
        smooth_velocity: float,
        velocity_kmh: float,
        events: List[TriggerEvent]
    ) -> TelemetryDigest:
        targets = self._targets()
        pending = [t for t in targets if not t.triggered]
        next_target = pending[0] if pending else None

        distance = tti = None
        should_trigger = False
        next_info = None
        if next_target:
            result = evaluate_tti(
                sample.lat, sample.lon,
                next_target.node.lat, next_target.node.lon,
                smooth_velocity,
                self.proximity_threshold_m,
                self.tti_threshold_s
            )
            distance, tti, should_trigger = result.distance_m, result.tti_or_none, result.should_trigger
            next_info = {'id': next_target.id, 'lat': next_target.node.lat, 'lon': next_target.node.lon}

        return TelemetryDigest(
            ambulance_id=sample.id,
            timestamp=sample.timestamp,
            lat=sample.lat,
            lon=sample.lon,
            smooth_velocity_ms=round(smooth_velocity, 3),
            velocity_kmh=velocity_kmh,
            next_intersection=next_info,
            distance_to_signal_m=distance,
            tti_s=tti,
            should_trigger=should_trigger,
            remaining_intersections=len(pending),
            triggered_intersections=sum(1 for t in targets if t.triggered),
            signal_events=events
        )

    # ============================================
    # Triggers & bridge
    # ============================================

    async def _fire(self, event: TriggerEvent, vehicle_position):
        self.triggers_fired += 1
        print(f"[CORRIDOR] GREEN {event.ambulance_id} -> node {event.intersection_id} ({event.intersection_type})"
              f" | dist: {event.distance_m}m | TTI: {event.tti_s}s")

        if self.ws_emitter:
            await self.ws_emitter.emit_corridor_trigger(event.to_dict())

        if self.bridge:
            task = asyncio.create_task(self._run_bridge(event, vehicle_position))
            self._bridge_tasks.add(task)
            task.add_done_callback(self._bridge_tasks.discard)

    async def _run_bridge(self, event: TriggerEvent, vehicle_position):
        try:
            result = await self.bridge.resolve_and_request(
                event.ambulance_id,
                vehicle_position,
                (event.lat, event.lon),
                event.tti_s
            )
        except BridgeError as e:
            await self._report_bridge_error(event, e.code, e.message)
            return
        except Exception as e:
            await self._report_bridge_error(event, "BRIDGE_ERROR", str(e))
            return

        if self.ws_emitter and result.intersection_state:
            await self.ws_emitter.emit_signal_state_updated(
                event.intersection_id,
                result.intersection_id,
                result.intersection_state
            )

    async def _report_bridge_error(self, event: TriggerEvent, code: str, message: str):
        self.bridge_failures += 1
        print(f"[ERROR] [BRIDGE] {event.intersection_id}: {message}")
        if self.ws_emitter:
            await self.ws_emitter.emit_bridge_error(event.ambulance_id, event.intersection_id, code, message)

    @property
    def pending_bridge_tasks(self) -> int:
        return len(self._bridge_tasks)

    async def drain(self):
        """Wait for every outstanding bridge call to finish"""
        while self._bridge_tasks:
            await asyncio.gather(*list(self._bridge_tasks), return_exceptions=True)

    # ============================================
    # Status
    # ============================================

    def get_status(self) -> Dict[str, Any]:
        """Corridor status for the API"""
        targets = self._targets()
        return {
            'routeActive': bool(self.route_intersections),
            'routeSetAt': iso_utc(self.route_set_at) if self.route_set_at else None,
            'intersections': [t.to_dict() for t in targets],
            'remainingIntersections': sum(1 for t in targets if not t.triggered),
            'triggeredIntersections': sum(1 for t in targets if t.triggered),
            'vehicleCount': len(self.vehicles),
            'samplesProcessed': self.samples_processed,
            'triggersFired': self.triggers_fired,
            'bridgeFailures': self.bridge_failures,
            'pendingBridgeCalls': self.pending_bridge_tasks,
            'thresholds': {
                'proximityM': self.proximity_threshold_m,
                'ttiSeconds': self.tti_threshold_s,
                'smoothingWindow': self.smoothing_window
            }
        }
