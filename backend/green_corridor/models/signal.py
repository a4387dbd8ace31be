"""
Signal and Managed Intersection Data Models

Closed vocabularies for approach directions and signal states, the static
configuration of a managed 4-way intersection, and the state snapshot
produced by the safety interlock.
"""

from pydantic import BaseModel, Field
from typing import Dict, List, Optional
from enum import Enum
import time

from .coordinates import GPSCoordinate


class Direction(str, Enum):
    """Approach direction of a signal head"""
    N = "N"
    S = "S"
    E = "E"
    W = "W"

    @property
    def label(self) -> str:
        return _DIRECTION_LABELS[self]

    @property
    def axis(self) -> str:
        """'NS' or 'EW' - directions on different axes are perpendicular"""
        return "NS" if self in (Direction.N, Direction.S) else "EW"

    def is_perpendicular_to(self, other: "Direction") -> bool:
        return self.axis != other.axis

    @classmethod
    def parse(cls, value) -> "Direction":
        """
        Parse a direction code, case-insensitive

        Raises:
            ValueError: if value is not one of N/S/E/W
        """
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().upper())


_DIRECTION_LABELS = {
    Direction.N: "North",
    Direction.S: "South",
    Direction.E: "East",
    Direction.W: "West",
}


class SignalColor(str, Enum):
    """
    Signal states under interlock control

    HARD_RED is an enforced lockout: the head cannot turn green until the
    override is explicitly cleared. RED is ordinary "not your turn".
    """
    GREEN = "GREEN"
    RED = "RED"
    HARD_RED = "HARD_RED"


class SignalHead(BaseModel):
    """A single directional signal head at a managed intersection"""
    direction: str                        # Human label, e.g. "North"
    default_state: SignalColor = SignalColor.RED


class ManagedIntersection(BaseModel):
    """
    Physical intersection under direct signal control

    Static configuration loaded at startup; read-only at runtime.
    """
    id: str
    name: str
    location: GPSCoordinate
    signals: Dict[Direction, SignalHead]
    conflict_groups: Dict[Direction, List[Direction]]

    class Config:
        json_schema_extra = {
            "example": {
                "id": "INT-MAIN",
                "name": "C-Scheme Area Crossing",
                "location": {"lat": 26.8860, "lon": 75.7880},
                "conflict_groups": {"N": ["E", "W"], "E": ["N", "S"]}
            }
        }

    @property
    def directions(self) -> List[Direction]:
        return list(self.signals.keys())

    def conflict_group(self, direction: Direction) -> List[Direction]:
        return list(self.conflict_groups.get(direction, []))

    def summary(self) -> Dict:
        """Public listing entry"""
        return {
            "id": self.id,
            "name": self.name,
            "location": self.location.model_dump(),
            "signal_directions": [d.value for d in self.directions],
        }


class SignalStateEntry(BaseModel):
    """State of one direction inside a snapshot"""
    direction: str
    state: SignalColor
    note: str


class SignalStateSnapshot(BaseModel):
    """
    Full 4-way intersection state

    Always recomputed wholesale, never patched.
    """
    intersection_id: str
    intersection_name: str
    activated_signal: Optional[Direction] = None
    hard_red_signals: List[Direction] = Field(default_factory=list)
    states: Dict[Direction, SignalStateEntry]
    computed_at: float = Field(default_factory=time.time)

    def counts(self) -> Dict[SignalColor, int]:
        """Number of heads in each state"""
        totals = {color: 0 for color in SignalColor}
        for entry in self.states.values():
            totals[entry.state] += 1
        return totals

    def state_of(self, direction: Direction) -> SignalColor:
        return self.states[direction].state

    def to_state_dict(self) -> Dict[str, Dict[str, str]]:
        """Wire format: {"N": {"direction", "state", "note"}, ...}"""
        return {
            direction.value: entry.model_dump(mode="json")
            for direction, entry in self.states.items()
        }
