"""
Routing Module

Road graph loading, spatial lookup and shortest-path routing.
"""

from .road_graph import RoadGraph
from .graph_loader import load_road_graph, parse_json_graph
from .route_finder import RouteFinder

__all__ = [
    'RoadGraph',
    'load_road_graph',
    'parse_json_graph',
    'RouteFinder',
]
