"""
WebSocket Event Emitter

Sends corridor and signal updates to dashboard clients. All
server -> client events go through here.

Delivery is at-most-once to the 'dashboard' room, no replay. Timer threads
(pre-arrival notices) hop back onto the event loop via emit_from_thread.
"""

import asyncio
import time
from typing import Dict, Any, Optional

from .events import (
    DASHBOARD_ROOM,
    ServerEvent,
    ConnectionSuccessData,
    RouteSetData,
    SignalStateUpdatedData,
    BridgeErrorData,
    SignalActivationData,
)


class WebSocketEmitter:
    """
    Centralized WebSocket event emitter

    Usage:
        emitter = WebSocketEmitter(sio)
        emitter.bind_loop(asyncio.get_running_loop())
        await emitter.emit_corridor_stats(digest.to_dict())
    """

    def __init__(self, sio, room: str = DASHBOARD_ROOM):
        """
        Initialize the WebSocket emitter

        Args:
            sio: Socket.IO AsyncServer instance
            room: Room every broadcast targets
        """
        self.sio = sio
        self.room = room
        self._loop: Optional[asyncio.AbstractEventLoop] = None

        # Statistics
        self._emit_count = 0
        self._error_count = 0
        self._last_emit_time = 0

    def bind_loop(self, loop: asyncio.AbstractEventLoop):
        """Event loop used for emits scheduled from other threads"""
        self._loop = loop

    # ============================================
    # Connection Events
    # ============================================

    async def emit_connection_success(self, sid: str):
        """Emit connection success to specific client"""
        data = ConnectionSuccessData(timestamp=time.time())
        await self._emit(ServerEvent.CONNECTION_SUCCESS.value, data.model_dump(), room=sid)

    # ============================================
    # Corridor Events
    # ============================================

    async def emit_corridor_stats(self, stats: Dict[str, Any]):
        """Per-sample telemetry digest"""
        await self._emit(ServerEvent.CORRIDOR_STATS.value, stats)

    async def emit_corridor_trigger(self, event: Dict[str, Any]):
        """An intersection fired for a vehicle"""
        await self._emit(ServerEvent.CORRIDOR_TRIGGER.value, event)

    async def emit_route_set(self, route: Dict[str, Any]):
        """A new active route replaced the previous one"""
        data = RouteSetData(timestamp=time.time(), **route)
        await self._emit(ServerEvent.CORRIDOR_ROUTE_SET.value, data.model_dump())

    # ============================================
    # Signal Events
    # ============================================

    async def emit_signal_state_updated(
        self,
        node_id: str,
        intersection_id: str,
        state: Dict[str, Dict[str, Any]]
    ):
        """
        Emit the intersection state produced by a bridge call

        Args:
            node_id: Triggered route node
            intersection_id: Managed intersection that was overridden
            state: Direction -> {direction, state, note}
        """
        data = SignalStateUpdatedData(
            id=node_id,
            intersectionId=intersection_id,
            state=state,
            timestamp=time.time()
        )
        await self._emit(ServerEvent.SIGNAL_STATE_UPDATED.value, data.model_dump())

    async def emit_bridge_error(
        self,
        ambulance_id: str,
        intersection_id: str,
        error: str,
        message: str
    ):
        data = BridgeErrorData(
            ambulanceId=ambulance_id,
            intersectionId=intersection_id,
            error=error,
            message=message,
            timestamp=time.time()
        )
        await self._emit(ServerEvent.BRIDGE_ERROR.value, data.model_dump())

    async def emit_signal_activation(self, payload: Dict[str, Any]):
        data = SignalActivationData(**payload)
        await self._emit(ServerEvent.SIGNAL_ACTIVATION.value, data.model_dump())

    def emit_activation_from_thread(self, payload: Dict[str, Any]):
        """Scheduler timer callback; safe to call off the event loop"""
        if self._loop is None or self._loop.is_closed():
            return
        asyncio.run_coroutine_threadsafe(self.emit_signal_activation(payload), self._loop)

    # ============================================
    # Internal Methods
    # ============================================

    async def _emit(self, event: str, data: Any, room: str = None):
        """
        Internal emit with error handling and statistics

        Args:
            event: Event name
            data: Event data
            room: Target room or sid (default: dashboard room)
        """
        try:
            await self.sio.emit(event, data, room=room or self.room)

            self._emit_count += 1
            self._last_emit_time = time.time()

        except Exception as e:
            self._error_count += 1
            print(f"[WS ERROR] Failed to emit {event}: {e}")

    def get_stats(self) -> Dict[str, Any]:
        """Get emitter statistics"""
        return {
            "totalEmits": self._emit_count,
            "errorCount": self._error_count,
            "lastEmitTime": self._last_emit_time,
            "room": self.room
        }


# Global emitter instance (initialized in main.py)
emitter: Optional[WebSocketEmitter] = None


def get_emitter() -> Optional[WebSocketEmitter]:
    """Get the global WebSocket emitter instance"""
    return emitter


def set_emitter(e: WebSocketEmitter):
    """Set the global WebSocket emitter instance"""
    global emitter
    emitter = e
