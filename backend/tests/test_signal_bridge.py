"""
Signal Bridge Tests

Approach-direction mapping, payload construction and both signal clients.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer as AiohttpTestServer

from green_corridor.engine.signal_bridge import (
    PRIORITY_REQUEST_PATH,
    HttpSignalClient,
    LocalSignalClient,
    SignalBridge,
    bearing_to_direction,
)
from green_corridor.errors import BridgeError
from green_corridor.geo import destination_point
from green_corridor.interlock import PreArrivalScheduler, SignalInterlockController, SignalPriorityService
from green_corridor.models import Direction


INT_MAIN = (26.8860, 75.7880)


def approach_from(bearing_to_intersection, distance_m=200):
    """Vehicle position from which the intersection lies on the given bearing"""
    return destination_point(INT_MAIN[0], INT_MAIN[1], (bearing_to_intersection + 180) % 360, distance_m)


def make_client(response=None):
    client = MagicMock()
    client.request_priority = AsyncMock(return_value=response or {"success": True, "intersection_state": {}})
    client.close = AsyncMock()
    return client


@pytest.fixture
def service(registry):
    scheduler = PreArrivalScheduler(SignalInterlockController(registry))
    yield SignalPriorityService(registry, scheduler)
    scheduler.shutdown()


class TestBearingToDirection:
    """Test 90 degree sector mapping"""

    @pytest.mark.parametrize("bearing,expected", [
        (0, Direction.N),
        (44.9, Direction.N),
        (45, Direction.E),
        (134.9, Direction.E),
        (135, Direction.S),
        (224.9, Direction.S),
        (225, Direction.W),
        (314.9, Direction.W),
        (315, Direction.N),
        (359.9, Direction.N),
    ])
    def test_sectors(self, bearing, expected):
        assert bearing_to_direction(bearing) == expected


class TestSignalBridge:
    """Test intersection resolution and request payload"""

    @pytest.mark.asyncio
    async def test_payload_for_northbound_vehicle(self, registry):
        client = make_client()
        bridge = SignalBridge(registry, client)

        result = await bridge.resolve_and_request("AMB-001", approach_from(0), INT_MAIN, 12.3)

        client.request_priority.assert_awaited_once_with({
            "ambulance_id": "AMB-001",
            "signal_id": "N",
            "estimated_arrival_time": 13,
            "intersection_id": "INT-MAIN",
        })
        assert result.intersection_id == "INT-MAIN"
        assert result.signal_id == Direction.N
        assert result.distance_m == pytest.approx(0, abs=0.01)
        assert bridge.requests_sent == 1

    @pytest.mark.asyncio
    async def test_eastbound_vehicle_near_other_intersection(self, registry):
        client = make_client()
        bridge = SignalBridge(registry, client)

        # Route node a little off INT-EAST still resolves to it
        node = destination_point(26.9124, 75.8050, 0, 40)
        vehicle = destination_point(node[0], node[1], 270, 300)
        result = await bridge.resolve_and_request("AMB-002", vehicle, node, 9.0)

        payload = client.request_priority.await_args.args[0]
        assert payload["intersection_id"] == "INT-EAST"
        assert payload["signal_id"] == "E"
        assert payload["estimated_arrival_time"] == 9
        assert result.distance_m == pytest.approx(40, abs=0.5)

    @pytest.mark.asyncio
    async def test_vehicle_id_override(self, registry):
        client = make_client()
        bridge = SignalBridge(registry, client, vehicle_id_override="AMB-001")

        await bridge.resolve_and_request("SIM-42", approach_from(180), INT_MAIN, 5)

        payload = client.request_priority.await_args.args[0]
        assert payload["ambulance_id"] == "AMB-001"
        assert payload["signal_id"] == "S"

    @pytest.mark.asyncio
    async def test_client_failure_counted_and_raised(self, registry):
        client = make_client()
        client.request_priority.side_effect = BridgeError("timeout")
        bridge = SignalBridge(registry, client)

        with pytest.raises(BridgeError):
            await bridge.resolve_and_request("AMB-001", approach_from(90), INT_MAIN, 5)

        assert bridge.requests_failed == 1
        assert bridge.requests_sent == 0


class TestLocalSignalClient:
    """Test in-process priority requests"""

    @pytest.mark.asyncio
    async def test_applies_override(self, registry, fleet, service):
        client = LocalSignalClient(service, fleet)
        bridge = SignalBridge(registry, client)

        result = await bridge.resolve_and_request("AMB-001", approach_from(270), INT_MAIN, 8)

        state = result.intersection_state
        assert state["W"]["state"] == "GREEN"
        assert state["N"]["state"] == "HARD_RED"
        assert state["S"]["state"] == "HARD_RED"
        assert state["E"]["state"] == "RED"
        assert result.response["flush_status"] == "IMMEDIATE"

    @pytest.mark.asyncio
    async def test_unauthorized_vehicle(self, fleet, service):
        client = LocalSignalClient(service, fleet)

        with pytest.raises(BridgeError) as excinfo:
            await client.request_priority({
                "ambulance_id": "ROGUE-1",
                "signal_id": "N",
                "estimated_arrival_time": 5,
                "intersection_id": "INT-MAIN",
            })
        assert excinfo.value.code == "UNAUTHORIZED_VEHICLE"

    @pytest.mark.asyncio
    async def test_invalid_intersection(self, fleet, service):
        client = LocalSignalClient(service, fleet)

        with pytest.raises(BridgeError) as excinfo:
            await client.request_priority({
                "ambulance_id": "AMB-001",
                "signal_id": "N",
                "estimated_arrival_time": 5,
                "intersection_id": "INT-NOWHERE",
            })
        assert excinfo.value.code == "INVALID_INTERSECTION_ID"


class TestHttpSignalClient:
    """Test priority requests against a live HTTP endpoint"""

    @pytest.mark.asyncio
    async def test_posts_payload_with_token(self):
        received = {}

        async def handler(request):
            received["token"] = request.headers.get("SecurityToken")
            received["body"] = await request.json()
            return web.json_response({"success": True, "intersection_state": {"N": {"state": "GREEN"}}})

        app = web.Application()
        app.router.add_post(PRIORITY_REQUEST_PATH, handler)
        server = AiohttpTestServer(app)
        await server.start_server()

        client = HttpSignalClient(str(server.make_url("/")), "SECRET")
        try:
            data = await client.request_priority({"ambulance_id": "AMB-001", "signal_id": "N"})
        finally:
            await client.close()
            await server.close()

        assert received["token"] == "SECRET"
        assert received["body"] == {"ambulance_id": "AMB-001", "signal_id": "N"}
        assert data["intersection_state"]["N"]["state"] == "GREEN"

    @pytest.mark.asyncio
    async def test_error_status_raises_with_remote_code(self):
        async def handler(request):
            return web.json_response(
                {"success": False, "error": "UNAUTHORIZED_VEHICLE", "message": "denied"},
                status=403
            )

        app = web.Application()
        app.router.add_post(PRIORITY_REQUEST_PATH, handler)
        server = AiohttpTestServer(app)
        await server.start_server()

        client = HttpSignalClient(str(server.make_url("/")), "SECRET")
        try:
            with pytest.raises(BridgeError) as excinfo:
                await client.request_priority({"ambulance_id": "X"})
        finally:
            await client.close()
            await server.close()

        assert excinfo.value.code == "UNAUTHORIZED_VEHICLE"
        assert "403" in excinfo.value.message

    @pytest.mark.asyncio
    async def test_unreachable_server(self):
        client = HttpSignalClient("http://127.0.0.1:1", "SECRET", timeout_s=2)
        try:
            with pytest.raises(BridgeError) as excinfo:
                await client.request_priority({"ambulance_id": "AMB-001"})
        finally:
            await client.close()

        assert excinfo.value.code == "BRIDGE_ERROR"
