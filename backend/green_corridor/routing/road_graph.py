"""
Road Graph

Immutable in-memory road network built once at startup.

Edges are stored bidirectionally regardless of the source file's
directionality so the graph is never under-connected. Node coordinates are
kept in numpy arrays for vectorised nearest-node and radius queries.
"""

from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np

from green_corridor.geo import EARTH_RADIUS_M
from green_corridor.models import RoadNode, RoadEdge


class RoadGraph:
    """
    Road network graph

    Features:
    - Bidirectional adjacency with the shortest parallel edge kept
    - Nearest node / nearest intersection snapping
    - Intersection listing and radius search

    Usage:
        graph = RoadGraph(nodes, edges)
        node = graph.find_nearest_node(26.91, 75.78)
        for neighbour_id, weight in graph.neighbors(node.id):
            ...
    """

    def __init__(self, nodes: Iterable[RoadNode], edges: Iterable[RoadEdge]):
        self.nodes: Dict[str, RoadNode] = {}
        self.edges: List[RoadEdge] = []
        self.adjacency: Dict[str, Dict[str, float]] = {}
        self.skipped_edges = 0

        for node in nodes:
            self.nodes[node.id] = node
            self.adjacency[node.id] = {}

        for edge in edges:
            if edge.length_m < 0:
                raise ValueError(
                    f"Negative edge length {edge.length_m} on {edge.source_id} -> {edge.target_id}"
                )
            if edge.source_id not in self.nodes or edge.target_id not in self.nodes:
                self.skipped_edges += 1
                continue

            self.edges.append(edge)
            self._link(edge.source_id, edge.target_id, edge.length_m)
            self._link(edge.target_id, edge.source_id, edge.length_m)

        self._build_spatial_arrays()

    def _link(self, a: str, b: str, weight: float):
        current = self.adjacency[a].get(b)
        if current is None or weight < current:
            self.adjacency[a][b] = weight

    def _build_spatial_arrays(self):
        """Pack node coordinates into arrays for vectorised lookups"""
        self._node_ids: List[str] = list(self.nodes.keys())
        self._coords = np.array(
            [(n.lat, n.lon) for n in self.nodes.values()],
            dtype=float
        ).reshape(-1, 2)

        self._intersection_ids: List[str] = [
            n.id for n in self.nodes.values() if n.is_intersection
        ]
        self._intersection_coords = np.array(
            [(self.nodes[i].lat, self.nodes[i].lon) for i in self._intersection_ids],
            dtype=float
        ).reshape(-1, 2)

    # ============================================
    # Graph access
    # ============================================

    @property
    def node_count(self) -> int:
        return len(self.nodes)

    @property
    def edge_count(self) -> int:
        return len(self.edges)

    def has_node(self, node_id: str) -> bool:
        return node_id in self.nodes

    def get_node(self, node_id: str) -> Optional[RoadNode]:
        return self.nodes.get(node_id)

    def neighbors(self, node_id: str) -> Iterable[Tuple[str, float]]:
        """(neighbour_id, edge_length_m) pairs"""
        return self.adjacency.get(node_id, {}).items()

    def edge_weight(self, a: str, b: str) -> Optional[float]:
        return self.adjacency.get(a, {}).get(b)

    def get_intersection_nodes(self) -> List[RoadNode]:
        """Nodes tagged as intersections (signals, crossings, stops...)"""
        return [self.nodes[i] for i in self._intersection_ids]

    # ============================================
    # Spatial queries
    # ============================================

    @staticmethod
    def _closest(ids: List[str], coords: np.ndarray, lat: float, lon: float) -> Optional[str]:
        """Closest point by squared degree distance (fine for snapping)"""
        if not ids:
            return None
        d2 = (coords[:, 0] - lat) ** 2 + (coords[:, 1] - lon) ** 2
        return ids[int(np.argmin(d2))]

    def find_nearest_node(self, lat: float, lon: float) -> Optional[RoadNode]:
        """Snap an arbitrary coordinate onto the road network"""
        node_id = self._closest(self._node_ids, self._coords, lat, lon)
        return self.nodes[node_id] if node_id else None

    def find_intersections_within(
        self,
        lat: float,
        lon: float,
        radius_m: float
    ) -> List[RoadNode]:
        """
        Intersections within a great-circle radius

        Args:
            lat: Centre latitude
            lon: Centre longitude
            radius_m: Search radius in metres

        Returns:
            Matching intersection nodes, closest first
        """
        if not self._intersection_ids:
            return []

        lat_r = np.radians(self._intersection_coords[:, 0])
        lon_r = np.radians(self._intersection_coords[:, 1])
        lat0 = np.radians(lat)
        lon0 = np.radians(lon)

        a = (
            np.sin((lat_r - lat0) / 2) ** 2 +
            np.cos(lat0) * np.cos(lat_r) * np.sin((lon_r - lon0) / 2) ** 2
        )
        distances = EARTH_RADIUS_M * 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))

        order = np.argsort(distances)
        return [
            self.nodes[self._intersection_ids[i]]
            for i in order
            if distances[i] <= radius_m
        ]
