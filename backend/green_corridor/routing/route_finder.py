"""
Route Finder - Dijkstra

Shortest path over the road graph for emergency vehicles, plus the ordered
list of signalled intersections the vehicle will pass.
"""

from typing import List, Dict, Optional, Sequence
import heapq
import itertools
import time
from dataclasses import dataclass, field

from green_corridor.errors import NotFoundError, ValidationError, NotReadyError
from green_corridor.models import GPSCoordinate, RoadNode, Route
from green_corridor.routing.road_graph import RoadGraph


@dataclass(order=True)
class PathNode:
    """
    Frontier entry in Dijkstra

    Ordered by cost, then by insertion sequence so that equal-cost entries
    pop in the order they were discovered.
    """
    cost: float
    seq: int
    node_id: str = field(compare=False)


class RouteFinder:
    """
    Calculate shortest routes through the road graph

    Features:
    - Dijkstra over non-negative edge lengths (binary heap)
    - Intersection extraction in path order
    - Multi-leg routing through ordered waypoints

    Usage:
        finder = RouteFinder(graph)
        route = finder.find_route("n1", "n9")
        route = finder.find_multi_leg_route([src, via, dst])
    """

    def __init__(self, graph: Optional[RoadGraph] = None):
        self.graph = graph

    def set_graph(self, graph: RoadGraph):
        """Attach the road graph once loading finishes"""
        self.graph = graph

    def _require_graph(self) -> RoadGraph:
        if self.graph is None:
            raise NotReadyError("Road graph is still loading")
        return self.graph

    def find_route(self, source_id: str, dest_id: str) -> Optional[Route]:
        """
        Find the shortest route between two graph nodes

        Args:
            source_id: Start node ID
            dest_id: Destination node ID

        Returns:
            Route, or None if either node is unknown or no path exists
        """
        graph = self._require_graph()

        if not graph.has_node(source_id) or not graph.has_node(dest_id):
            return None

        start_time = time.time()

        if source_id == dest_id:
            return self._build_route([source_id], 0.0)

        counter = itertools.count()
        open_set: List[PathNode] = [PathNode(0.0, next(counter), source_id)]
        distances: Dict[str, float] = {source_id: 0.0}
        parents: Dict[str, str] = {}
        settled = set()

        while open_set:
            current = heapq.heappop(open_set)

            if current.node_id in settled:
                continue
            settled.add(current.node_id)

            if current.node_id == dest_id:
                path = self._reconstruct_path(parents, dest_id, source_id)
                elapsed = (time.time() - start_time) * 1000
                print(f"[ROUTE] Path found: {len(path)} nodes, {current.cost:.1f}m, {elapsed:.1f}ms")
                return self._build_route(path, current.cost)

            for neighbor_id, weight in graph.neighbors(current.node_id):
                if neighbor_id in settled:
                    continue

                tentative = current.cost + weight
                # Strict improvement only: the first path found keeps ties
                if neighbor_id in distances and tentative >= distances[neighbor_id]:
                    continue

                distances[neighbor_id] = tentative
                parents[neighbor_id] = current.node_id
                heapq.heappush(open_set, PathNode(tentative, next(counter), neighbor_id))

        print(f"[WARN] No path found: {source_id} -> {dest_id}")
        return None

    def _reconstruct_path(
        self,
        parents: Dict[str, str],
        end_id: str,
        start_id: str
    ) -> List[str]:
        """Walk parent links back from the goal"""
        path = [end_id]
        current = end_id

        while current != start_id:
            current = parents[current]
            path.append(current)

        path.reverse()
        return path

    def _build_route(self, path: List[str], distance: float) -> Route:
        waypoints = [self.graph.nodes[node_id] for node_id in path]
        return Route(
            path=path,
            waypoints=waypoints,
            intersections=[node for node in waypoints if node.is_intersection],
            total_distance_m=distance
        )

    def snap(self, lat: float, lon: float) -> RoadNode:
        """Nearest graph node to a coordinate"""
        node = self._require_graph().find_nearest_node(lat, lon)
        if node is None:
            raise NotFoundError("Road graph has no nodes")
        return node

    def find_route_between(self, src: GPSCoordinate, dst: GPSCoordinate) -> Route:
        """Snap both endpoints to the graph and solve a single leg"""
        return self.find_multi_leg_route([src, dst])

    def find_multi_leg_route(self, coordinates: Sequence[GPSCoordinate]) -> Route:
        """
        Route through an ordered list of waypoints

        Each consecutive pair is snapped and solved independently, then the
        legs are concatenated.

        Raises:
            ValidationError: fewer than two waypoints
            NotFoundError: any leg has no path
        """
        if len(coordinates) < 2:
            raise ValidationError("At least two waypoints are required")

        node_ids = [self.snap(c.lat, c.lon).id for c in coordinates]

        legs: List[Route] = []
        for index, (source_id, dest_id) in enumerate(zip(node_ids, node_ids[1:])):
            leg = self.find_route(source_id, dest_id)
            if leg is None:
                raise NotFoundError(
                    f"No route for leg {index + 1}: {source_id} -> {dest_id}",
                    code="NO_ROUTE"
                )
            legs.append(leg)

        return legs[0] if len(legs) == 1 else Route.concatenate(legs)
