from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from .directions import DirectionSegment, route_directions
from .graph import RoadGraph
from .logging_utils import log_event
from .osm_loader import MapData, load_osm_xml
from .pathfinder import RouteResult, shortest_path
from .prefix_index import LocationRecord
from .settings import settings
from .tiles import TileSelection, TileSelector


class MapQueryService:
    """The four read-only query interfaces over one loaded dataset."""

    def __init__(self, data: MapData, tiles: TileSelector | None = None) -> None:
        if not data.graph.frozen:
            data.graph.clean()
        self.data = data
        self.tiles = tiles or TileSelector.from_settings()

    @classmethod
    def from_settings(cls) -> MapQueryService:
        path = str(settings.osm_db_path or "").strip()
        if not path:
            log_event(
                "graph_source_missing",
                level=logging.WARNING,
                detail="OSM_DB_PATH not set; serving an empty graph",
            )
            return cls(MapData())
        return cls(load_osm_xml(Path(path)))

    @property
    def graph(self) -> RoadGraph:
        return self.data.graph

    def route(
        self,
        start_lon: float,
        start_lat: float,
        dest_lon: float,
        dest_lat: float,
        *,
        max_explored: int | None = None,
        deadline_ms: float | None = None,
    ) -> RouteResult:
        return shortest_path(
            self.data.graph,
            start_lon,
            start_lat,
            dest_lon,
            dest_lat,
            max_explored=max_explored,
            deadline_ms=deadline_ms,
        )

    def directions(self, route: Sequence[int]) -> list[DirectionSegment]:
        return route_directions(self.data.graph, route)

    def raster(
        self,
        ullon: float,
        ullat: float,
        lrlon: float,
        lrlat: float,
        w: float,
        h: float | None = None,
    ) -> TileSelection:
        return self.tiles.select(ullon, ullat, lrlon, lrlat, w, h)

    def autocomplete(self, prefix: str | None) -> list[str]:
        names = self.data.prefixes.lookup(prefix)
        log_event("autocomplete_lookup", prefix=prefix, matches=len(names))
        return names

    def locations(self, location_name: str | None) -> list[LocationRecord]:
        return self.data.locations.get(location_name)
