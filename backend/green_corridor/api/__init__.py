"""
API Routes Package

This module exports all FastAPI routers for the Green Corridor Service.
"""

from .corridor_routes import router as corridor_router, set_corridor_components
from .signal_routes import router as signal_router, set_signal_components

__all__ = [
    "corridor_router",
    "signal_router",
    "set_corridor_components",
    "set_signal_components",
]
