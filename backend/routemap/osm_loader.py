from __future__ import annotations

import time
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO

from .graph import RoadGraph
from .logging_utils import log_event
from .prefix_index import LocationIndex, LocationRecord, PrefixIndex

ALLOWED_HIGHWAYS = {
    "motorway",
    "trunk",
    "primary",
    "secondary",
    "tertiary",
    "unclassified",
    "residential",
    "living_street",
    "motorway_link",
    "trunk_link",
    "primary_link",
    "secondary_link",
    "tertiary_link",
}


@dataclass
class MapData:
    graph: RoadGraph = field(default_factory=RoadGraph)
    prefixes: PrefixIndex = field(default_factory=PrefixIndex)
    locations: LocationIndex = field(default_factory=LocationIndex)

    def add_place(self, node_id: int, lon: float, lat: float, name: str) -> None:
        self.locations.add(LocationRecord(id=node_id, lon=lon, lat=lat, name=name))
        self.prefixes.insert(name)


def _tags(elem: ET.Element) -> dict[str, str]:
    tags: dict[str, str] = {}
    for child in elem:
        if child.tag != "tag":
            continue
        key = str(child.attrib.get("k", "")).strip()
        if key:
            tags[key] = str(child.attrib.get("v", "")).strip()
    return tags


def _read_node(data: MapData, elem: ET.Element) -> None:
    try:
        node_id = int(elem.attrib["id"])
        lon = float(elem.attrib["lon"])
        lat = float(elem.attrib["lat"])
    except (KeyError, ValueError):
        return
    name = _tags(elem).get("name") or None
    data.graph.add_node(node_id, lon, lat, name=name)
    if name:
        data.add_place(node_id, lon, lat, name)


def _read_way(data: MapData, elem: ET.Element) -> bool:
    tags = _tags(elem)
    if tags.get("highway", "").strip().lower() not in ALLOWED_HIGHWAYS:
        return False
    try:
        way_id = int(elem.attrib.get("id", "0"))
    except ValueError:
        way_id = 0
    way_name = tags.get("name") or None
    refs: list[int] = []
    for child in elem:
        if child.tag != "nd":
            continue
        try:
            ref = int(child.attrib.get("ref", ""))
        except ValueError:
            continue
        if ref in data.graph:
            refs.append(ref)
    if len(refs) < 2:
        return False
    for ref in refs:
        data.graph.attach_way(ref, way_id=way_id, way_name=way_name)
    for a, b in zip(refs, refs[1:]):
        if a != b:
            data.graph.add_edge(a, b)
    return True


def load_osm_xml(source: str | Path | IO[bytes]) -> MapData:
    """Build the road graph and place indexes from an OSM XML extract.

    Nodes must precede the ways that reference them, as in standard OSM
    exports. The graph is cleaned (and frozen) before returning.
    """
    t0 = time.monotonic()
    data = MapData()
    ways_kept = 0
    root: ET.Element | None = None
    for event, elem in ET.iterparse(source, events=("start", "end")):
        if event == "start":
            if root is None:
                root = elem
            continue
        if elem.tag == "node":
            _read_node(data, elem)
        elif elem.tag == "way":
            if _read_way(data, elem):
                ways_kept += 1
        elif elem.tag != "relation":
            continue
        # Top-level elements are fully consumed; drop them from the tree.
        root.clear()
    nodes_seen = len(data.graph)
    removed = data.graph.clean()
    log_event(
        "graph_loaded",
        source=str(source) if isinstance(source, (str, Path)) else "<stream>",
        nodes_seen=nodes_seen,
        nodes_kept=len(data.graph),
        nodes_removed=removed,
        edges=data.graph.edge_count(),
        ways=ways_kept,
        places=len(data.locations),
        elapsed_ms=round((time.monotonic() - t0) * 1000.0, 3),
    )
    return data
