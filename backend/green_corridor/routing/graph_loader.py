"""
Road Graph Loader

Reduces a road-network file to RoadNode / RoadEdge records.

Supported formats:
- GraphML as exported by OSMnx (node attrs y/x/highway, edge attr length)
- JSON: {"nodes": {id: {lat, lon, tag}}, "edges": [{source, target, lengthMeters}]}
"""

import json
import time
from xml.etree.ElementTree import ParseError
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import networkx as nx

from green_corridor.errors import ConfigurationError
from green_corridor.models import RoadNode, RoadEdge, GraphStats
from green_corridor.routing.road_graph import RoadGraph


DEFAULT_EDGE_LENGTH_M = 1.0

# Raised by json, networkx and the record parsers on a malformed file
MALFORMED_GRAPH_ERRORS = (
    ValueError, KeyError, TypeError, AttributeError, OSError, ParseError, nx.NetworkXError
)


def _as_float(value: Any) -> Optional[float]:
    """OSMnx writes every attribute as a string"""
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _as_tag(value: Any) -> Optional[str]:
    if value is None:
        return None
    tag = str(value).strip()
    return tag or None


def _edge_length(raw: Any, default_length: float, source: str, target: str) -> float:
    length = _as_float(raw)
    if length is None:
        return default_length
    if length < 0:
        raise ConfigurationError(f"Negative edge length {length} on {source} -> {target}")
    return length


def parse_graphml(path: Path, default_length: float) -> Tuple[List[RoadNode], List[RoadEdge]]:
    """Read an OSMnx GraphML export"""
    graph = nx.read_graphml(str(path), node_type=str, force_multigraph=True)

    nodes: List[RoadNode] = []
    for node_id, attrs in graph.nodes(data=True):
        lat = _as_float(attrs.get("y"))
        lon = _as_float(attrs.get("x"))
        if lat is None or lon is None:
            # Nodes without a position cannot be snapped to
            continue
        nodes.append(RoadNode(id=str(node_id), lat=lat, lon=lon, tag=_as_tag(attrs.get("highway"))))

    edges: List[RoadEdge] = []
    for source, target, attrs in graph.edges(data=True):
        edges.append(RoadEdge(
            source_id=str(source),
            target_id=str(target),
            length_m=_edge_length(attrs.get("length"), default_length, source, target)
        ))

    return nodes, edges


def parse_json_graph(data: Dict[str, Any], default_length: float) -> Tuple[List[RoadNode], List[RoadEdge]]:
    """Read the {nodes, edges} JSON graph format"""
    raw_nodes = data.get("nodes", {})
    if isinstance(raw_nodes, list):
        raw_nodes = {str(n["id"]): n for n in raw_nodes}

    nodes: List[RoadNode] = []
    for node_id, attrs in raw_nodes.items():
        lat = _as_float(attrs.get("lat"))
        lon = _as_float(attrs.get("lon"))
        if lat is None or lon is None:
            continue
        nodes.append(RoadNode(id=str(node_id), lat=lat, lon=lon, tag=_as_tag(attrs.get("tag"))))

    edges: List[RoadEdge] = []
    for edge in data.get("edges", []):
        source = str(edge["source"])
        target = str(edge["target"])
        raw_length = edge.get("lengthMeters", edge.get("length"))
        edges.append(RoadEdge(
            source_id=source,
            target_id=target,
            length_m=_edge_length(raw_length, default_length, source, target)
        ))

    return nodes, edges


def load_road_graph(
    path: Path,
    default_edge_length: float = DEFAULT_EDGE_LENGTH_M
) -> Tuple[RoadGraph, GraphStats]:
    """
    Load a road graph file

    Args:
        path: GraphML or JSON file
        default_edge_length: Length used for edges without one

    Returns:
        (RoadGraph, GraphStats)

    Raises:
        ConfigurationError: missing file, unsupported format or bad data
    """
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Road graph file not found: {path}")

    start_time = time.time()
    print(f"[GRAPH] Loading road graph: {path.name}")

    suffix = path.suffix.lower()
    if suffix not in (".graphml", ".json"):
        raise ConfigurationError(f"Unsupported road graph format: {suffix}")

    try:
        if suffix == ".graphml":
            nodes, edges = parse_graphml(path, default_edge_length)
        else:
            with open(path, "r") as f:
                nodes, edges = parse_json_graph(json.load(f), default_edge_length)
        graph = RoadGraph(nodes, edges)
    except MALFORMED_GRAPH_ERRORS as e:
        raise ConfigurationError(f"Malformed road graph {path.name}: {e!r}") from e

    if graph.skipped_edges:
        print(f"   [WARN] Skipped {graph.skipped_edges} edges with unknown endpoints")

    stats = GraphStats(
        node_count=graph.node_count,
        edge_count=graph.edge_count,
        intersection_count=len(graph.get_intersection_nodes()),
        load_time_s=time.time() - start_time,
        source=str(path)
    )

    print(f"[OK] Road graph loaded: {stats.node_count} nodes, {stats.edge_count} edges, "
          f"{stats.intersection_count} intersections ({stats.load_time_s:.2f}s)")
    return graph, stats
