"""
Road Network Data Models

Nodes, edges and routes of the in-memory road graph.
Nodes carrying a tag (OSM highway value such as traffic_signals) are
intersections and are the only nodes a corridor can trigger on.
"""

from dataclasses import dataclass
from typing import List, Optional, Dict, Any


@dataclass(frozen=True)
class RoadNode:
    """
    Road graph node

    Immutable after load. A non-null tag marks a signalled intersection.
    """
    id: str
    lat: float
    lon: float
    tag: Optional[str] = None

    @property
    def is_intersection(self) -> bool:
        """True when the node is a signal-interlock trigger candidate"""
        return self.tag is not None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API response"""
        return {
            'id': self.id,
            'lat': self.lat,
            'lon': self.lon,
            'tag': self.tag
        }


@dataclass(frozen=True)
class RoadEdge:
    """Road segment between two nodes (traversable both ways)"""
    source_id: str
    target_id: str
    length_m: float


@dataclass(frozen=True)
class Route:
    """
    Solved route through the road graph

    Created per routing request and never mutated; a new route for the
    same vehicle context supersedes it.
    """
    path: List[str]                       # Node IDs in travel order
    waypoints: List[RoadNode]             # Full route geometry
    intersections: List[RoadNode]         # Tagged nodes only, path order
    total_distance_m: float

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API response"""
        return {
            'distanceM': round(self.total_distance_m, 2),
            'waypointCount': len(self.waypoints),
            'intersectionCount': len(self.intersections),
            'intersections': [n.to_dict() for n in self.intersections],
            'waypoints': [n.to_dict() for n in self.waypoints]
        }

    @classmethod
    def concatenate(cls, legs: List["Route"]) -> "Route":
        """
        Join independently solved legs into one route

        Consecutive legs share their boundary waypoint once. Intersections
        are unioned by id, keeping first-occurrence order.
        """
        path: List[str] = []
        waypoints: List[RoadNode] = []
        intersections: List[RoadNode] = []
        seen_intersections = set()
        total = 0.0

        for leg in legs:
            total += leg.total_distance_m

            skip = 1 if path and leg.path and path[-1] == leg.path[0] else 0
            path.extend(leg.path[skip:])
            waypoints.extend(leg.waypoints[skip:])

            for node in leg.intersections:
                if node.id not in seen_intersections:
                    seen_intersections.add(node.id)
                    intersections.append(node)

        return cls(
            path=path,
            waypoints=waypoints,
            intersections=intersections,
            total_distance_m=total
        )


@dataclass
class GraphStats:
    """Summary of a loaded graph"""
    node_count: int = 0
    edge_count: int = 0
    intersection_count: int = 0
    load_time_s: float = 0.0
    source: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            'nodeCount': self.node_count,
            'edgeCount': self.edge_count,
            'intersectionCount': self.intersection_count,
            'loadTime': round(self.load_time_s, 3),
            'source': self.source
        }
