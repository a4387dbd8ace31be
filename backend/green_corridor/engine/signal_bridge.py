"""
Signal Bridge - Corridor Engine -> Signal Priority API

When the corridor engine fires a trigger, the bridge:
    1. finds the managed intersection nearest to the triggered node,
    2. works out the approach direction from the compass bearing
       vehicle -> intersection,
    3. submits a priority request through a signal client.

Two clients are available: HttpSignalClient posts to a remote Signal
Priority API, LocalSignalClient calls the in-process service directly.
"""

import asyncio
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

import aiohttp

from green_corridor.errors import BridgeError, CorridorError
from green_corridor.geo import bearing_deg
from green_corridor.models import Direction, ManagedIntersection
from green_corridor.security import AuthorizedFleet
from green_corridor.interlock import IntersectionRegistry, SignalPriorityService


PRIORITY_REQUEST_PATH = "/api/v1/signal/priority-request"


def bearing_to_direction(degrees: float) -> Direction:
    """
    Map a compass bearing to the approach signal

    90 degree sectors centred on the cardinals:
        [315, 360) + [0, 45) -> N, [45, 135) -> E, [135, 225) -> S, else W
    """
    degrees = degrees % 360
    if degrees >= 315 or degrees < 45:
        return Direction.N
    if degrees < 135:
        return Direction.E
    if degrees < 225:
        return Direction.S
    return Direction.W


class HttpSignalClient:
    """Priority requests over HTTP, authenticated by SecurityToken header"""

    def __init__(self, base_url: str, security_token: str, timeout_s: float = 5):
        self.base_url = base_url.rstrip("/")
        self.security_token = security_token
        self.timeout = aiohttp.ClientTimeout(total=timeout_s)
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
        return self._session

    async def request_priority(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST the priority request

        Raises:
            BridgeError: transport failure, timeout or non-2xx answer
        """
        url = f"{self.base_url}{PRIORITY_REQUEST_PATH}"
        headers = {"SecurityToken": self.security_token}

        try:
            session = await self._get_session()
            async with session.post(url, json=payload, headers=headers) as response:
                data = await response.json(content_type=None)
                if response.status >= 400:
                    message = (data or {}).get("message") or f"HTTP {response.status}"
                    raise BridgeError(
                        f"Signal API error {response.status}: {message}",
                        code=(data or {}).get("error") or BridgeError.code
                    )
                return data
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise BridgeError(f"Could not reach Signal Priority API: {e}") from e

    async def close(self):
        if self._session and not self._session.closed:
            await self._session.close()


class LocalSignalClient:
    """Priority requests handled by the in-process service"""

    def __init__(self, service: SignalPriorityService, fleet: AuthorizedFleet):
        self.service = service
        self.fleet = fleet

    async def request_priority(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            vehicle_info = self.fleet.require(payload.get("ambulance_id"))
            return self.service.handle_request(payload, vehicle_info)
        except CorridorError as e:
            raise BridgeError(e.message, code=e.code) from e

    async def close(self):
        pass


@dataclass
class BridgeResult:
    """Outcome of one successful bridge call"""
    intersection_id: str
    signal_id: Direction
    bearing_deg: float
    distance_m: float
    response: Dict[str, Any] = field(default_factory=dict)

    @property
    def intersection_state(self) -> Optional[Dict[str, Any]]:
        return self.response.get("intersection_state")


class SignalBridge:
    """
    Turn corridor triggers into signal priority requests

    Usage:
        bridge = SignalBridge(registry, LocalSignalClient(service, fleet))
        result = await bridge.resolve_and_request("AMB-001", (lat, lon), (ilat, ilon), 12.3)
    """

    def __init__(
        self,
        registry: IntersectionRegistry,
        client,
        vehicle_id_override: Optional[str] = None
    ):
        self.registry = registry
        self.client = client
        self.vehicle_id_override = vehicle_id_override
        self.requests_sent = 0
        self.requests_failed = 0

    def resolve_nearest(self, lat: float, lon: float) -> Tuple[ManagedIntersection, float]:
        nearest = self.registry.nearest(lat, lon)
        if nearest is None:
            raise BridgeError("No managed intersections configured")
        return nearest

    async def resolve_and_request(
        self,
        vehicle_id: str,
        vehicle_position: Tuple[float, float],
        intersection_position: Tuple[float, float],
        tti_seconds: float
    ) -> BridgeResult:
        """
        Resolve intersection + direction and submit the request

        Args:
            vehicle_id: Triggering vehicle
            vehicle_position: (lat, lon) of the vehicle
            intersection_position: (lat, lon) of the triggered route node
            tti_seconds: Time to intersection (rounded up for the request)

        Raises:
            BridgeError: the request could not be completed
        """
        intersection, distance = self.resolve_nearest(*intersection_position)
        bearing = bearing_deg(*vehicle_position, *intersection_position)
        direction = bearing_to_direction(bearing)

        print(f"[BRIDGE] {vehicle_id} -> {intersection.id} | bearing {bearing:.1f} -> signal {direction.value} | "
              f"dist {distance:.0f}m | TTI {tti_seconds}s")

        payload = {
            "ambulance_id": self.vehicle_id_override or vehicle_id,
            "signal_id": direction.value,
            "estimated_arrival_time": math.ceil(tti_seconds),
            "intersection_id": intersection.id,
        }

        try:
            response = await self.client.request_priority(payload)
        except BridgeError:
            self.requests_failed += 1
            raise

        self.requests_sent += 1
        state = response.get("intersection_state") or {}
        print("[BRIDGE] Override applied -> " +
              " | ".join(f"{d}:{s.get('state')}" for d, s in state.items()))

        return BridgeResult(
            intersection_id=intersection.id,
            signal_id=direction,
            bearing_deg=bearing,
            distance_m=distance,
            response=response
        )

    async def close(self):
        await self.client.close()
