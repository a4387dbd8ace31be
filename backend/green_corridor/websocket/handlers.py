"""
WebSocket Client Event Handlers

Connection bookkeeping and dashboard room membership.
All handlers are registered with the Socket.IO server in main.py.
"""

import time
from typing import Dict, Any, Optional

from pydantic import ValidationError

from .events import ClientEvent, DashboardJoinRequest
from .emitter import WebSocketEmitter


class WebSocketHandlers:
    """
    Centralized WebSocket event handlers

    Dashboards connect, then emit dashboard:join to start receiving
    corridor and signal broadcasts.
    """

    def __init__(self, sio, emitter: WebSocketEmitter):
        """
        Initialize handlers

        Args:
            sio: Socket.IO AsyncServer instance
            emitter: WebSocket emitter instance
        """
        self.sio = sio
        self.emitter = emitter

        # Track connected clients
        self._clients: Dict[str, Dict[str, Any]] = {}

        self._register_handlers()

    def _register_handlers(self):
        """Register all Socket.IO event handlers"""
        self.sio.on(ClientEvent.CONNECT.value, self.handle_connect)
        self.sio.on(ClientEvent.DISCONNECT.value, self.handle_disconnect)
        self.sio.on(ClientEvent.DASHBOARD_JOIN.value, self.handle_dashboard_join)
        self.sio.on(ClientEvent.DASHBOARD_LEAVE.value, self.handle_dashboard_leave)

    # ============================================
    # Connection Handlers
    # ============================================

    async def handle_connect(self, sid: str, environ: Dict, auth: Optional[Dict] = None):
        """
        Handle client connection

        Args:
            sid: Session ID
            environ: Connection environment
            auth: Optional auth payload (unused)
        """
        client_info = {
            "sid": sid,
            "connected_at": time.time(),
            "remote_addr": environ.get("REMOTE_ADDR", "unknown"),
            "dashboard": False,
            "name": None
        }
        self._clients[sid] = client_info

        print(f"[WS] Client connected: {sid} from {client_info['remote_addr']}")
        await self.emitter.emit_connection_success(sid)

    async def handle_disconnect(self, sid: str, *args):
        """Handle client disconnection"""
        if sid in self._clients:
            client = self._clients.pop(sid)
            duration = time.time() - client["connected_at"]
            print(f"[WS] Client disconnected: {sid} (duration: {duration:.1f}s)")

    # ============================================
    # Room Handlers
    # ============================================

    async def handle_dashboard_join(self, sid: str, data: Optional[Dict[str, Any]] = None):
        """
        Join the dashboard broadcast room

        Returns:
            Acknowledgement dict sent back to the client
        """
        try:
            request = DashboardJoinRequest(**(data or {}))
        except ValidationError as e:
            return {"success": False, "error": "VALIDATION_ERROR", "message": str(e)}

        await self.sio.enter_room(sid, self.emitter.room)

        client = self._clients.setdefault(sid, {"sid": sid, "connected_at": time.time()})
        client["dashboard"] = True
        client["name"] = request.clientName

        print(f"[WS] {sid} joined '{self.emitter.room}'" +
              (f" as {request.clientName}" if request.clientName else ""))
        return {"success": True, "room": self.emitter.room}

    async def handle_dashboard_leave(self, sid: str, data: Optional[Dict[str, Any]] = None):
        await self.sio.leave_room(sid, self.emitter.room)
        if sid in self._clients:
            self._clients[sid]["dashboard"] = False
        return {"success": True}

    # ============================================
    # Utility Methods
    # ============================================

    def get_connected_clients(self) -> Dict[str, Dict[str, Any]]:
        """Get all connected clients"""
        return self._clients.copy()

    def get_client_count(self) -> int:
        """Get number of connected clients"""
        return len(self._clients)

    def get_dashboard_count(self) -> int:
        return sum(1 for c in self._clients.values() if c.get("dashboard"))


# Global handlers instance
handlers: Optional[WebSocketHandlers] = None


def get_handlers() -> Optional[WebSocketHandlers]:
    """Get the global handlers instance"""
    return handlers


def set_handlers(h: WebSocketHandlers):
    """Set the global handlers instance"""
    global handlers
    handlers = h
