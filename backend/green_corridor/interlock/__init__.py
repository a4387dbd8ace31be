"""
Signal Interlock Module

Managed intersection registry, the GREEN / HARD_RED safety interlock,
pre-arrival activation timing and the priority request service.
"""

from .intersections import IntersectionRegistry, validate_conflict_groups
from .controller import SignalInterlockController
from .scheduler import (
    PreArrivalScheduler,
    ScheduleResult,
    FlushStatus,
)
from .service import SignalPriorityService

__all__ = [
    'IntersectionRegistry',
    'validate_conflict_groups',
    'SignalInterlockController',
    'PreArrivalScheduler',
    'ScheduleResult',
    'FlushStatus',
    'SignalPriorityService',
]
