from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware

from .directions import render_direction
from .errors import QueryError, error_detail
from .logging_utils import log_event
from .models import (
    AutocompleteResponse,
    DirectionOut,
    LocationOut,
    LocationsResponse,
    RasterResponse,
    RouteRequest,
    RouteResponse,
)
from .service import MapQueryService


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.service = MapQueryService.from_settings()
    yield
    app.state.service = None


app = FastAPI(title="Road Map Query Service", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


def map_service(request: Request) -> MapQueryService:
    service: MapQueryService | None = getattr(request.app.state, "service", None)  # type: ignore[attr-defined]
    if service is None:
        raise HTTPException(status_code=503, detail=error_detail("graph_unavailable", "map data not loaded"))
    return service


ServiceDep = Annotated[MapQueryService, Depends(map_service)]


def _reject(exc: QueryError) -> HTTPException:
    return HTTPException(status_code=422, detail=error_detail(exc.reason_code, exc.message, details=exc.details))


@app.get("/")
async def root() -> dict[str, str]:
    return {"message": "Backend is running. Visit /docs for the API UI.", "docs": "/docs"}


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/route", response_model=RouteResponse)
def compute_route(req: RouteRequest, service: ServiceDep) -> RouteResponse:
    result = service.route(req.start_lon, req.start_lat, req.end_lon, req.end_lat)
    if result.status == "no_route":
        raise HTTPException(status_code=404, detail=error_detail(result.status, result.detail))
    if result.status == "search_aborted":
        raise HTTPException(status_code=503, detail=error_detail(result.status, result.detail))

    directions = [
        DirectionOut(
            category=segment.category,
            way=segment.way,
            distance_miles=round(segment.distance_miles, 6),
            text=render_direction(segment),
        )
        for segment in service.directions(result.nodes)
    ]
    return RouteResponse(
        route=list(result.nodes),
        distance_miles=round(result.cost, 6),
        explored=result.explored,
        directions=directions,
    )


@app.get("/raster", response_model=RasterResponse)
def raster(
    service: ServiceDep,
    ullon: float,
    ullat: float,
    lrlon: float,
    lrlat: float,
    w: float,
    h: float | None = None,
) -> RasterResponse:
    selection = service.raster(ullon, ullat, lrlon, lrlat, w, h)
    return RasterResponse(**selection.as_response())


@app.get("/autocomplete", response_model=AutocompleteResponse)
def autocomplete(
    service: ServiceDep,
    prefix: Annotated[str, Query(min_length=1)],
) -> AutocompleteResponse:
    try:
        names = service.autocomplete(prefix)
    except QueryError as exc:
        raise _reject(exc) from exc
    return AutocompleteResponse(prefix=prefix, names=names)


@app.get("/locations", response_model=LocationsResponse)
def locations(
    service: ServiceDep,
    name: Annotated[str, Query(min_length=1)],
) -> LocationsResponse:
    try:
        records = service.locations(name)
    except QueryError as exc:
        raise _reject(exc) from exc
    log_event("locations_lookup", query=name, matches=len(records))
    return LocationsResponse(query=name, locations=[LocationOut(**r.as_dict()) for r in records])
