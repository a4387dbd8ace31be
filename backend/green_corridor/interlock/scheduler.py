"""
Pre-Arrival Flush Scheduler

Decides when the priority green should take effect relative to the
vehicle's ETA, so standing traffic has time to clear:

    ETA <= 20s  ->  IMMEDIATE, activate now
    ETA >  20s  ->  SCHEDULED, activate (ETA - 10)s from now

The interlock state is applied once, synchronously, when the request is
scheduled. Only the activation notification is deferred, on a daemon
timer thread.
"""

import itertools
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional

from green_corridor.clock import iso_utc
from green_corridor.models import SignalStateSnapshot
from green_corridor.interlock.controller import SignalInterlockController


IMMEDIATE_THRESHOLD_SECONDS = 20
EARLY_ACTIVATION_BUFFER_SECONDS = 10


class FlushStatus(str, Enum):
    IMMEDIATE = "IMMEDIATE"
    SCHEDULED = "SCHEDULED"


@dataclass
class ScheduleResult:
    """Timing decision plus the interlock snapshot it produced"""
    status: FlushStatus
    delay_seconds: float
    activation_at: float                  # Unix timestamp
    snapshot: SignalStateSnapshot

    @property
    def activation_at_iso(self) -> str:
        return iso_utc(self.activation_at)


class PreArrivalScheduler:
    """
    Schedule priority activations against vehicle ETA

    Usage:
        scheduler = PreArrivalScheduler(controller, on_activation=emitter.emit_from_thread)
        result = scheduler.schedule("N", 30, "INT-MAIN")
        # result.status == SCHEDULED, result.delay_seconds == 20
    """

    def __init__(
        self,
        controller: SignalInterlockController,
        immediate_threshold_s: float = IMMEDIATE_THRESHOLD_SECONDS,
        early_buffer_s: float = EARLY_ACTIVATION_BUFFER_SECONDS,
        on_activation: Optional[Callable[[Dict[str, Any]], None]] = None
    ):
        self.controller = controller
        self.immediate_threshold_s = immediate_threshold_s
        self.early_buffer_s = early_buffer_s
        self.on_activation = on_activation

        self._timers: Dict[int, threading.Timer] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()
        self._shut_down = False

    def compute_delay(self, eta_seconds: float):
        """(status, delay_seconds) for an ETA"""
        if eta_seconds <= self.immediate_threshold_s:
            return FlushStatus.IMMEDIATE, 0
        return FlushStatus.SCHEDULED, eta_seconds - self.early_buffer_s

    def schedule(
        self,
        direction,
        eta_seconds: float,
        intersection_id: str
    ) -> ScheduleResult:
        """
        Apply the interlock and plan its activation notice

        Args:
            direction: Target signal direction
            eta_seconds: Seconds until the vehicle arrives
            intersection_id: Managed intersection ID

        Returns:
            ScheduleResult with status, delay, activation time and snapshot
        """
        status, delay = self.compute_delay(eta_seconds)
        activation_at = time.time() + delay
        # Formatted before the override is stored so a failure leaves no state behind
        scheduled_for = iso_utc(activation_at)

        snapshot = self.controller.apply_override(direction, intersection_id)

        if delay > 0:
            self._start_timer(delay, {
                'intersectionId': snapshot.intersection_id,
                'signalId': snapshot.activated_signal.value,
                'etaSeconds': eta_seconds,
                'scheduledFor': scheduled_for,
            })

        return ScheduleResult(
            status=status,
            delay_seconds=delay,
            activation_at=activation_at,
            snapshot=snapshot
        )

    def _start_timer(self, delay: float, payload: Dict[str, Any]):
        with self._lock:
            if self._shut_down:
                return
            key = next(self._ids)
            timer = threading.Timer(delay, self._fire, args=(key, payload))
            timer.daemon = True
            self._timers[key] = timer
        timer.start()

    def _fire(self, key: int, payload: Dict[str, Any]):
        with self._lock:
            self._timers.pop(key, None)

        payload = dict(payload, activatedAt=iso_utc())
        print(f"[PRE-ARRIVAL] Signal {payload['signalId']} set to GREEN at {payload['activatedAt']} "
              f"(ETA was {payload['etaSeconds']}s, intersection: {payload['intersectionId']})")

        if self.on_activation:
            self.on_activation(payload)

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._timers)

    def shutdown(self):
        """Cancel every pending activation notice"""
        with self._lock:
            self._shut_down = True
            timers = list(self._timers.values())
            self._timers.clear()

        for timer in timers:
            timer.cancel()

        if timers:
            print(f"[PRE-ARRIVAL] Cancelled {len(timers)} pending activation(s)")
