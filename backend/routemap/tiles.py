from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

from .logging_utils import log_event
from .settings import settings

# Absorbs float error when a query edge lands exactly on a tile boundary.
_INDEX_EPS = 1e-9


@dataclass(frozen=True)
class BoundingBox:
    ul_lon: float
    ul_lat: float
    lr_lon: float
    lr_lat: float

    @property
    def width_deg(self) -> float:
        return self.lr_lon - self.ul_lon

    @property
    def height_deg(self) -> float:
        return self.ul_lat - self.lr_lat

    def is_finite(self) -> bool:
        return all(math.isfinite(v) for v in (self.ul_lon, self.ul_lat, self.lr_lon, self.lr_lat))

    def intersects(self, other: BoundingBox) -> bool:
        return (
            self.ul_lon < other.lr_lon
            and self.lr_lon > other.ul_lon
            and self.ul_lat > other.lr_lat
            and self.lr_lat < other.ul_lat
        )


@dataclass(frozen=True)
class TileSelection:
    grid: list[list[str]] = field(default_factory=list)
    box: BoundingBox | None = None
    depth: int = 0
    success: bool = False
    reason: str = ""

    def as_response(self) -> dict[str, Any]:
        box = self.box or BoundingBox(0.0, 0.0, 0.0, 0.0)
        return {
            "render_grid": [list(row) for row in self.grid],
            "raster_ul_lon": box.ul_lon,
            "raster_ul_lat": box.ul_lat,
            "raster_lr_lon": box.lr_lon,
            "raster_lr_lat": box.lr_lat,
            "depth": self.depth,
            "query_success": self.success,
        }


def tile_id(depth: int, x: int, y: int) -> str:
    return f"d{depth}_x{x}_y{y}"


class TileSelector:
    """Chooses tiles of a fixed pyramid over ``root`` for a viewport query.

    Depth ``d`` splits each axis of the root box into ``2**d`` tiles of
    ``tile_size`` pixels. The selected depth is the coarsest one whose
    longitude-per-pixel is no coarser than the query asks for.
    """

    def __init__(self, root: BoundingBox, *, tile_size: int = 256, max_depth: int = 7) -> None:
        if root.width_deg <= 0 or root.height_deg <= 0:
            raise ValueError("root bounding box must have positive extent")
        self.root = root
        self.tile_size = int(tile_size)
        self.max_depth = int(max_depth)

    @classmethod
    def from_settings(cls) -> TileSelector:
        return cls(
            BoundingBox(
                ul_lon=settings.root_ul_lon,
                ul_lat=settings.root_ul_lat,
                lr_lon=settings.root_lr_lon,
                lr_lat=settings.root_lr_lat,
            ),
            tile_size=settings.tile_size_px,
            max_depth=settings.tile_max_depth,
        )

    def depth_for(self, query_width_deg: float, width_px: float) -> int:
        map_lon_dpp = self.root.width_deg / self.tile_size
        goal_lon_dpp = query_width_deg / width_px
        ratio = map_lon_dpp / goal_lon_dpp
        if ratio <= 1.0:
            return 0
        depth = math.ceil(math.log2(ratio) - _INDEX_EPS)
        return max(0, min(self.max_depth, int(depth)))

    def select(
        self,
        ul_lon: float,
        ul_lat: float,
        lr_lon: float,
        lr_lat: float,
        width_px: float,
        height_px: float | None = None,
    ) -> TileSelection:
        # height_px is accepted for interface parity; depth is longitude-driven.
        query = BoundingBox(ul_lon=ul_lon, ul_lat=ul_lat, lr_lon=lr_lon, lr_lat=lr_lat)
        if not query.is_finite() or not math.isfinite(width_px):
            return self._fail("non_finite_query")
        if query.width_deg <= 0 or query.height_deg <= 0 or width_px <= 0:
            return self._fail("non_positive_dimensions")
        if not query.intersects(self.root):
            return self._fail("outside_root")

        depth = self.depth_for(query.width_deg, width_px)
        tiles_per_axis = 2**depth
        pix_lon = self.root.width_deg / tiles_per_axis
        pix_lat = self.root.height_deg / tiles_per_axis
        last = tiles_per_axis - 1

        x0 = max(0, math.floor((query.ul_lon - self.root.ul_lon) / pix_lon + _INDEX_EPS))
        x1 = min(last, math.ceil((query.lr_lon - self.root.ul_lon) / pix_lon - _INDEX_EPS) - 1)
        y0 = max(0, math.floor((self.root.ul_lat - query.ul_lat) / pix_lat + _INDEX_EPS))
        y1 = min(last, math.ceil((self.root.ul_lat - query.lr_lat) / pix_lat - _INDEX_EPS) - 1)
        if x1 < x0 or y1 < y0 or x0 > last or y0 > last:
            return self._fail("empty_tile_range")

        grid = [[tile_id(depth, x, y) for x in range(x0, x1 + 1)] for y in range(y0, y1 + 1)]
        box = BoundingBox(
            ul_lon=self.root.ul_lon + x0 * pix_lon,
            ul_lat=self.root.ul_lat - y0 * pix_lat,
            lr_lon=self.root.ul_lon + (x1 + 1) * pix_lon,
            lr_lat=self.root.ul_lat - (y1 + 1) * pix_lat,
        )
        log_event(
            "raster_selected",
            depth=depth,
            rows=len(grid),
            cols=len(grid[0]),
            query_success=True,
        )
        return TileSelection(grid=grid, box=box, depth=depth, success=True)

    def _fail(self, reason: str) -> TileSelection:
        log_event("raster_selected", depth=0, rows=0, cols=0, query_success=False, reason=reason)
        return TileSelection(success=False, reason=reason)
