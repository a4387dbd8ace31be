"""
Managed Intersection Registry

Static configuration of the physical intersections under signal control,
loaded from config/intersections.yaml and validated once at startup.
"""

from typing import Any, Dict, List, Optional, Tuple

from green_corridor.errors import ConfigurationError, NotFoundError
from green_corridor.geo import haversine_m
from green_corridor.models import Direction, ManagedIntersection


def validate_conflict_groups(intersection: ManagedIntersection):
    """
    Check the conflict groups of one intersection

    Rules:
    - every group member is a configured signal direction
    - a direction never conflicts with itself
    - only perpendicular directions conflict
    - the relation is symmetric (N conflicts with E iff E conflicts with N)
    - exactly one signal head per direction N, S, E, W

    Raises:
        ConfigurationError: on the first violation
    """
    directions = set(intersection.directions)

    for direction, group in intersection.conflict_groups.items():
        if direction not in directions:
            raise ConfigurationError(
                f"{intersection.id}: conflict group for unconfigured signal {direction.value}"
            )
        for other in group:
            if other not in directions:
                raise ConfigurationError(
                    f"{intersection.id}: {direction.value} conflicts with unconfigured signal {other.value}"
                )
            if other == direction:
                raise ConfigurationError(
                    f"{intersection.id}: {direction.value} cannot conflict with itself"
                )
            if not direction.is_perpendicular_to(other):
                raise ConfigurationError(
                    f"{intersection.id}: {direction.value} and {other.value} are parallel, not conflicting"
                )
            if direction not in intersection.conflict_groups.get(other, []):
                raise ConfigurationError(
                    f"{intersection.id}: conflict {direction.value} -> {other.value} is not symmetric"
                )

    missing = [d.value for d in Direction if d not in directions]
    if missing:
        raise ConfigurationError(
            f"{intersection.id}: needs 4 directional signal heads, missing {', '.join(missing)}"
        )


class IntersectionRegistry:
    """
    Read-only registry of managed intersections

    Shared by the signal bridge (nearest lookup) and the interlock
    controller (state computation), so both always agree on ids and
    coordinates.
    """

    def __init__(self, intersections: List[ManagedIntersection]):
        self._intersections: Dict[str, ManagedIntersection] = {}
        for intersection in intersections:
            validate_conflict_groups(intersection)
            self._intersections[intersection.id] = intersection

    @classmethod
    def from_config(cls, raw: Optional[Dict[str, Any]]) -> "IntersectionRegistry":
        """
        Build the registry from the 'intersections' config section

        Raises:
            ConfigurationError: malformed entry or invalid conflict groups
        """
        if not raw:
            raise ConfigurationError("No managed intersections configured")

        intersections = []
        for intersection_id, entry in raw.items():
            try:
                intersections.append(ManagedIntersection(id=str(intersection_id), **entry))
            except (TypeError, ValueError) as e:
                raise ConfigurationError(f"Invalid intersection '{intersection_id}': {e}") from e

        registry = cls(intersections)
        print(f"[OK] Intersection registry loaded: {', '.join(registry.ids)}")
        return registry

    @property
    def ids(self) -> List[str]:
        return list(self._intersections.keys())

    def __len__(self) -> int:
        return len(self._intersections)

    def __contains__(self, intersection_id: str) -> bool:
        return intersection_id in self._intersections

    def get(self, intersection_id: str) -> Optional[ManagedIntersection]:
        return self._intersections.get(intersection_id)

    def require(self, intersection_id: str) -> ManagedIntersection:
        """Look up an intersection, raising INVALID_INTERSECTION_ID if unknown"""
        intersection = self._intersections.get(intersection_id)
        if intersection is None:
            raise NotFoundError(
                f"Unknown intersection '{intersection_id}'. Valid IDs are: {', '.join(self.ids)}.",
                code="INVALID_INTERSECTION_ID",
                status_code=400
            )
        return intersection

    def all(self) -> List[ManagedIntersection]:
        return list(self._intersections.values())

    def summaries(self) -> List[Dict[str, Any]]:
        return [i.summary() for i in self._intersections.values()]

    def signal_ids(self, intersection_id: str) -> List[Direction]:
        return self.require(intersection_id).directions

    def nearest(self, lat: float, lon: float) -> Optional[Tuple[ManagedIntersection, float]]:
        """Closest managed intersection by exhaustive haversine scan"""
        best: Optional[Tuple[ManagedIntersection, float]] = None
        for intersection in self._intersections.values():
            distance = haversine_m(lat, lon, intersection.location.lat, intersection.location.lon)
            if best is None or distance < best[1]:
                best = (intersection, distance)
        return best
