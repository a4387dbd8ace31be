"""
Signal Interlock Controller - Safety State Machine

Computes the full 4-way state of a managed intersection when an emergency
vehicle is granted priority:

    1. The requested direction turns GREEN.
    2. Every direction in its conflict group is forced to HARD_RED, a
       lockout that holds until the override is cleared.
    3. All remaining directions (parallel to the corridor) are held at RED.

A snapshot is always recomputed wholesale from the static configuration,
never patched, so no two perpendicular directions can be GREEN together.
"""

import threading
from typing import Dict

from green_corridor.errors import ValidationError
from green_corridor.models import (
    Direction,
    SignalColor,
    ManagedIntersection,
    SignalStateEntry,
    SignalStateSnapshot,
)
from green_corridor.interlock.intersections import IntersectionRegistry


NOTE_GREEN = "Priority override — emergency vehicle corridor active"
NOTE_HARD_RED = (
    "Safety interlock active — perpendicular to emergency corridor. "
    "Signal locked out until priority request is cleared."
)
NOTE_RED = "Held at red during emergency flush window"
NOTE_DEFAULT = "Normal signal cycle"


class SignalInterlockController:
    """
    Authoritative signal state per managed intersection

    Usage:
        controller = SignalInterlockController(registry)
        snapshot = controller.apply_override(Direction.N, "INT-MAIN")
        controller.clear_override("INT-MAIN")
    """

    def __init__(self, registry: IntersectionRegistry):
        self.registry = registry
        self._states: Dict[str, SignalStateSnapshot] = {}
        # Timer threads read state while the event loop writes it
        self._lock = threading.Lock()
        self.overrides_applied = 0

    def _resolve(self, direction, intersection_id: str):
        intersection = self.registry.require(intersection_id)
        try:
            target = Direction.parse(direction)
        except ValueError:
            target = None

        if target is None or target not in intersection.signals:
            valid = ", ".join(d.value for d in intersection.directions)
            raise ValidationError(
                f"Invalid signal_id '{direction}'. Valid directions for {intersection_id} are: {valid}",
                code="INVALID_SIGNAL_ID"
            )
        return intersection, target

    def compute_override(
        self,
        intersection: ManagedIntersection,
        target: Direction
    ) -> SignalStateSnapshot:
        """Pure state computation for one override"""
        conflicting = intersection.conflict_group(target)
        states: Dict[Direction, SignalStateEntry] = {}

        for direction, head in intersection.signals.items():
            if direction == target:
                state, note = SignalColor.GREEN, NOTE_GREEN
            elif direction in conflicting:
                state, note = SignalColor.HARD_RED, NOTE_HARD_RED
            else:
                state, note = SignalColor.RED, NOTE_RED
            states[direction] = SignalStateEntry(direction=head.direction, state=state, note=note)

        return SignalStateSnapshot(
            intersection_id=intersection.id,
            intersection_name=intersection.name,
            activated_signal=target,
            hard_red_signals=conflicting,
            states=states
        )

    def apply_override(self, direction, intersection_id: str) -> SignalStateSnapshot:
        """
        Grant GREEN to one approach and lock out its conflicts

        Args:
            direction: Target direction (Direction or N/S/E/W, any case)
            intersection_id: Managed intersection ID

        Returns:
            The new snapshot, which replaces the stored state

        Raises:
            NotFoundError: unknown intersection (INVALID_INTERSECTION_ID)
            ValidationError: direction not configured (INVALID_SIGNAL_ID)
        """
        intersection, target = self._resolve(direction, intersection_id)
        snapshot = self.compute_override(intersection, target)

        with self._lock:
            self._states[intersection.id] = snapshot
            self.overrides_applied += 1

        print(f"[INTERLOCK] {intersection.id}: {target.value} GREEN, "
              f"HARD_RED {[d.value for d in snapshot.hard_red_signals]}")
        return snapshot

    def _default_snapshot(self, intersection: ManagedIntersection) -> SignalStateSnapshot:
        return SignalStateSnapshot(
            intersection_id=intersection.id,
            intersection_name=intersection.name,
            states={
                direction: SignalStateEntry(
                    direction=head.direction,
                    state=head.default_state,
                    note=NOTE_DEFAULT
                )
                for direction, head in intersection.signals.items()
            }
        )

    def get_state(self, intersection_id: str) -> SignalStateSnapshot:
        """Current snapshot, or each head's default if never overridden"""
        intersection = self.registry.require(intersection_id)
        with self._lock:
            snapshot = self._states.get(intersection.id)
        return snapshot or self._default_snapshot(intersection)

    def is_overridden(self, intersection_id: str) -> bool:
        with self._lock:
            return intersection_id in self._states

    def clear_override(self, intersection_id: str) -> SignalStateSnapshot:
        """Lift the HARD_RED lockout and return every head to its default"""
        intersection = self.registry.require(intersection_id)
        with self._lock:
            self._states.pop(intersection.id, None)

        print(f"[INTERLOCK] {intersection.id}: override cleared")
        return self._default_snapshot(intersection)
