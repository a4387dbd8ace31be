"""
WebSocket Package

Real-time dashboard communication for the Green Corridor Service using
Socket.IO.

Components:
- events: Event type definitions and data models
- emitter: Server -> Client event emission
- handlers: Client -> Server event handling

Usage:
    from green_corridor.websocket import WebSocketEmitter, WebSocketHandlers

    emitter = WebSocketEmitter(sio)
    handlers = WebSocketHandlers(sio, emitter)
"""

from .events import ServerEvent, ClientEvent, DASHBOARD_ROOM
from .emitter import WebSocketEmitter, get_emitter, set_emitter
from .handlers import WebSocketHandlers, get_handlers, set_handlers

__all__ = [
    "ServerEvent",
    "ClientEvent",
    "DASHBOARD_ROOM",
    "WebSocketEmitter",
    "WebSocketHandlers",
    "get_emitter",
    "set_emitter",
    "get_handlers",
    "set_handlers",
]
