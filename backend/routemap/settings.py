from __future__ import annotations

from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_out_dir() -> str:
    # Keep runtime artifacts (logs) in backend/out by default.
    return str(Path(__file__).resolve().parents[1] / "out")


class Settings(BaseSettings):
    """Validated settings (env-driven) for the map query service."""

    model_config = SettingsConfigDict(
        # Support both "repo root/.env" and "backend/.env" (local dev)
        env_file=(".env", "../.env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    osm_db_path: str = Field(default="", alias="OSM_DB_PATH")

    out_dir: str = Field(default_factory=_default_out_dir, alias="OUT_DIR")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Root of the tile pyramid; every tile id is relative to this box.
    root_ul_lon: float = Field(default=-122.2998046875, ge=-180.0, le=180.0, alias="ROOT_ULLON")
    root_ul_lat: float = Field(default=37.892195547244356, ge=-90.0, le=90.0, alias="ROOT_ULLAT")
    root_lr_lon: float = Field(default=-122.2119140625, ge=-180.0, le=180.0, alias="ROOT_LRLON")
    root_lr_lat: float = Field(default=37.82280243352756, ge=-90.0, le=90.0, alias="ROOT_LRLAT")
    tile_size_px: int = Field(default=256, ge=1, alias="TILE_SIZE_PX")
    tile_max_depth: int = Field(default=7, ge=0, le=20, alias="TILE_MAX_DEPTH")

    route_max_explored_nodes: int = Field(
        default=2_000_000,
        ge=1,
        alias="ROUTE_MAX_EXPLORED_NODES",
    )
    route_search_deadline_ms: float = Field(
        default=10_000.0,
        ge=0.0,
        le=600_000.0,
        alias="ROUTE_SEARCH_DEADLINE_MS",
    )

    @model_validator(mode="after")
    def _check_root_box(self) -> "Settings":
        if self.root_ul_lon >= self.root_lr_lon:
            raise ValueError("ROOT_ULLON must be west of ROOT_LRLON")
        if self.root_ul_lat <= self.root_lr_lat:
            raise ValueError("ROOT_ULLAT must be north of ROOT_LRLAT")
        return self


settings = Settings()
