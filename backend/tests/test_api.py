from __future__ import annotations

from collections import Counter
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from routemap.graph import RoadGraph
from routemap.main import app, map_service
from routemap.osm_loader import MapData, load_osm_xml
from routemap.service import MapQueryService
from routemap.settings import settings
from routemap.tiles import BoundingBox, TileSelector

SAMPLE = Path(__file__).parent / "fixtures" / "berkeley_sample.osm"
ROOT = BoundingBox(
    ul_lon=-122.2998046875,
    ul_lat=37.892195547244356,
    lr_lon=-122.2119140625,
    lr_lat=37.82280243352756,
)


def _sample_service() -> MapQueryService:
    return MapQueryService(load_osm_xml(SAMPLE), TileSelector(ROOT))


def _split_service() -> MapQueryService:
    graph = RoadGraph()
    graph.add_node(1, -122.26, 37.86)
    graph.add_node(2, -122.259, 37.86)
    graph.add_node(3, -122.22, 37.84)
    graph.add_node(4, -122.219, 37.84)
    graph.add_edge(1, 2)
    graph.add_edge(3, 4)
    return MapQueryService(MapData(graph=graph), TileSelector(ROOT))


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(settings, "osm_db_path", "")
    service = _sample_service()
    app.dependency_overrides[map_service] = lambda: service
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()


def test_health(client: TestClient) -> None:
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_route_returns_path_and_directions(client: TestClient) -> None:
    resp = client.post(
        "/route",
        json={"start_lon": -122.2550, "start_lat": 37.8600, "end_lon": -122.2500, "end_lat": 37.8650},
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert data["route"] == [4, 1, 2, 3, 9]
    assert data["distance_miles"] > 0
    assert [(d["category"], d["way"]) for d in data["directions"]] == [
        ("start", "Gamma Way"),
        ("right", "Beta Avenue"),
        ("right", "unknown road"),
    ]
    assert data["directions"][0]["text"].startswith("Start on Gamma Way and continue for ")
    assert data["directions"][1]["text"].startswith("Turn right on Beta Avenue")
    total = sum(d["distance_miles"] for d in data["directions"])
    assert total == pytest.approx(data["distance_miles"], abs=1e-5)


def test_route_to_same_node_is_single_vertex(client: TestClient) -> None:
    resp = client.post(
        "/route",
        json={"start_lon": -122.2600, "start_lat": 37.8600, "end_lon": -122.2601, "end_lat": 37.8601},
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["route"] == [1]
    assert data["distance_miles"] == 0.0


def test_route_rejects_out_of_range_coordinates(client: TestClient) -> None:
    resp = client.post(
        "/route",
        json={"start_lon": -122.26, "start_lat": 137.0, "end_lon": -122.25, "end_lat": 37.865},
    )
    assert resp.status_code == 422


def test_route_between_components_is_404() -> None:
    service = _split_service()
    app.dependency_overrides[map_service] = lambda: service
    try:
        c = TestClient(app)
        resp = c.post(
            "/route",
            json={"start_lon": -122.26, "start_lat": 37.86, "end_lon": -122.219, "end_lat": 37.84},
        )
    finally:
        app.dependency_overrides.clear()
    assert resp.status_code == 404
    assert resp.json()["detail"]["reason_code"] == "no_route"


def test_route_over_budget_is_503(client: TestClient, monkeypatch) -> None:
    monkeypatch.setattr(settings, "route_max_explored_nodes", 1)
    resp = client.post(
        "/route",
        json={"start_lon": -122.2550, "start_lat": 37.8600, "end_lon": -122.2500, "end_lat": 37.8650},
    )
    assert resp.status_code == 503
    assert resp.json()["detail"]["reason_code"] == "search_aborted"


def test_raster_for_full_root_is_single_tile(client: TestClient) -> None:
    resp = client.get(
        "/raster",
        params={
            "ullon": ROOT.ul_lon,
            "ullat": ROOT.ul_lat,
            "lrlon": ROOT.lr_lon,
            "lrlat": ROOT.lr_lat,
            "w": 256,
            "h": 256,
        },
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["query_success"] is True
    assert data["depth"] == 0
    assert data["render_grid"] == [["d0_x0_y0"]]
    assert data["raster_ul_lon"] == pytest.approx(ROOT.ul_lon)
    assert data["raster_lr_lat"] == pytest.approx(ROOT.lr_lat)


def test_raster_inverted_box_fails_softly(client: TestClient) -> None:
    resp = client.get(
        "/raster",
        params={"ullon": -122.22, "ullat": 37.88, "lrlon": -122.28, "lrlat": 37.83, "w": 512},
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["query_success"] is False
    assert data["render_grid"] == []
    assert data["depth"] == 0


def test_autocomplete_and_locations(client: TestClient) -> None:
    resp = client.get("/autocomplete", params={"prefix": "to"})
    assert resp.status_code == 200
    assert Counter(resp.json()["names"]) == Counter(["Top Dog", "Top Dog", "Toast!"])

    resp = client.get("/autocomplete", params={"prefix": "xyz"})
    assert resp.json()["names"] == []

    resp = client.get("/locations", params={"name": "top dog"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["query"] == "top dog"
    assert [loc["id"] for loc in body["locations"]] == [6, 8]
    assert body["locations"][0] == {"lat": 37.866, "lon": -122.258, "name": "Top Dog", "id": 6}


def test_autocomplete_rejects_empty_prefix(client: TestClient) -> None:
    assert client.get("/autocomplete", params={"prefix": ""}).status_code == 422
    assert client.get("/autocomplete").status_code == 422
    assert client.get("/locations", params={"name": ""}).status_code == 422


def test_missing_service_is_503() -> None:
    app.dependency_overrides.clear()
    c = TestClient(app)
    resp = c.get("/autocomplete", params={"prefix": "to"})
    assert resp.status_code == 503
    assert resp.json()["detail"]["reason_code"] == "graph_unavailable"
