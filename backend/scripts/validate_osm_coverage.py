from __future__ import annotations

import argparse
import json
import math
from collections import deque
from pathlib import Path
from typing import Any

import numpy as np
from scipy.spatial import cKDTree

from routemap.geo import EARTH_RADIUS_MILES
from routemap.graph import RoadGraph
from routemap.osm_loader import load_osm_xml


def _to_xy_miles(points: list[tuple[float, float]], mean_lat: float | None = None) -> tuple[np.ndarray, float]:
    """Equirectangular projection of (lon, lat) pairs; good enough for city-sized extracts."""
    if not points:
        return np.zeros((0, 2), dtype=np.float64), 0.0
    arr = np.asarray(points, dtype=np.float64)
    lon_rad = np.radians(arr[:, 0])
    lat_rad = np.radians(arr[:, 1])
    if mean_lat is None:
        mean_lat = float(np.mean(lat_rad))
    x = lon_rad * (EARTH_RADIUS_MILES * math.cos(mean_lat))
    y = lat_rad * EARTH_RADIUS_MILES
    return np.column_stack((x, y)), mean_lat


def _component_sizes(graph: RoadGraph) -> list[int]:
    seen: set[int] = set()
    sizes: list[int] = []
    for start in graph.vertices():
        if start in seen:
            continue
        seen.add(start)
        queue = deque([start])
        size = 0
        while queue:
            node = queue.popleft()
            size += 1
            for nxt in graph.adjacent(node):
                if nxt not in seen:
                    seen.add(nxt)
                    queue.append(nxt)
        sizes.append(size)
    return sorted(sizes, reverse=True)


def validate(
    *,
    source: Path,
    min_nodes: int,
    max_place_dist_miles: float,
) -> dict[str, Any]:
    data = load_osm_xml(source)
    graph = data.graph
    node_count = len(graph)
    if node_count < min_nodes:
        raise RuntimeError(f"Graph node count too low: {node_count} < {min_nodes}")

    components = _component_sizes(graph)
    largest = components[0] if components else 0

    graph_points = [(graph.lon(n), graph.lat(n)) for n in graph.vertices()]
    place_points = [(record.lon, record.lat) for record in data.locations.records()]
    worst_place_dist = 0.0
    if graph_points and place_points:
        graph_xy, mean_lat = _to_xy_miles(graph_points)
        place_xy, _ = _to_xy_miles(place_points, mean_lat)
        tree = cKDTree(graph_xy)
        distances, _indices = tree.query(place_xy, k=1)
        worst_place_dist = float(np.max(distances))
        if worst_place_dist > max_place_dist_miles:
            raise RuntimeError(
                f"Place coverage check failed: place->nearest-node max distance "
                f"{worst_place_dist:.3f}mi exceeds threshold {max_place_dist_miles:.3f}mi"
            )

    return {
        "source": str(source),
        "nodes": node_count,
        "edges": graph.edge_count(),
        "places": len(place_points),
        "components": len(components),
        "largest_component_nodes": largest,
        "largest_component_ratio": round(largest / node_count, 6) if node_count else 0.0,
        "worst_place_nearest_node_miles": round(worst_place_dist, 6),
        "coverage_passed": True,
    }


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Validate an OSM extract: graph size, connectivity and place coverage.")
    parser.add_argument("--source", type=Path, required=True, help="OSM XML file to load.")
    parser.add_argument("--min-nodes", type=int, default=1)
    parser.add_argument(
        "--max-place-dist-miles",
        type=float,
        default=1.0,
        help="Maximum allowed distance from a named place to its nearest routable node.",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    report = validate(
        source=args.source,
        min_nodes=max(1, int(args.min_nodes)),
        max_place_dist_miles=max(0.0, float(args.max_place_dist_miles)),
    )
    print(json.dumps(report, indent=2))


if __name__ == "__main__":
    main()
