from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from .directions import TurnCategory


class RouteRequest(BaseModel):
    start_lon: float = Field(..., ge=-180, le=180)
    start_lat: float = Field(..., ge=-90, le=90)
    end_lon: float = Field(..., ge=-180, le=180)
    end_lat: float = Field(..., ge=-90, le=90)


class DirectionOut(BaseModel):
    category: TurnCategory
    way: str
    distance_miles: float
    text: str


class RouteResponse(BaseModel):
    status: Literal["ok"] = "ok"
    route: list[int]
    distance_miles: float
    explored: int
    directions: list[DirectionOut]


class RasterResponse(BaseModel):
    render_grid: list[list[str]]
    raster_ul_lon: float
    raster_ul_lat: float
    raster_lr_lon: float
    raster_lr_lat: float
    depth: int = Field(..., ge=0)
    query_success: bool


class LocationOut(BaseModel):
    lat: float
    lon: float
    name: str
    id: int


class AutocompleteResponse(BaseModel):
    prefix: str
    names: list[str]


class LocationsResponse(BaseModel):
    query: str
    locations: list[LocationOut]
