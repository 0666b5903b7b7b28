from __future__ import annotations

import json
from pathlib import Path

import pytest

import ecoroute.graph_assets as graph_assets
from ecoroute.engine_errors import RouteEngineError
from ecoroute.graph_assets import (
    clear_graph_caches,
    graph_from_payload,
    load_graph_payload,
    load_road_graph,
)
from ecoroute.travel_modes import TravelMode


def _write_asset(path: Path, *, air_quality: list[dict[str, object]] | None = None) -> Path:
    doc = {
        "nodes": [
            {"NODE-NO": 1, "XCOORD": 0.0, "YCOORD": 51.0},
            {"NODE-NO": 2, "XCOORD": 0.01, "YCOORD": 51.0},
            {"NODE-NO": 3, "location": {"coordinates": [0.02, 51.0]}},
        ],
        "links": [
            {"FROMNODENO": 1, "TONODENO": 2, "LENGTH": "0.7km", "TSYSSET": "CAR,BIKE,W"},
            {"FROMNODENO": 2, "TONODENO": 3, "LENGTH": "0.7km", "TSYSSET": "W"},
        ],
        "air_quality": air_quality or [],
    }
    path.write_text(json.dumps(doc), encoding="utf-8")
    return path


def test_load_graph_payload_builds_mode_graphs(tmp_path: Path) -> None:
    payload = load_graph_payload(_write_asset(tmp_path / "road_graph.json"))

    assert payload.coordinates["3"] == (0.02, 51.0)
    assert len(payload.links) == 2
    assert payload.station_count == 0

    driving = graph_from_payload(payload, TravelMode.DRIVING)
    walking = graph_from_payload(payload, TravelMode.WALKING)
    assert driving.neighbors("3") == ()
    assert [link.neighbor for link in walking.neighbors("3")] == ["2"]
    assert driving.source == str(tmp_path / "road_graph.json")


def test_air_quality_readings_enrich_links(tmp_path: Path) -> None:
    path = _write_asset(
        tmp_path / "road_graph.json",
        air_quality=[{"aqi": 100, "location": {"coordinates": [0.0, 51.0]}}],
    )

    payload = load_graph_payload(path)
    graph = graph_from_payload(payload, TravelMode.DRIVING)

    assert payload.station_count == 1
    assert all("pollutionFactor" in link for link in payload.links)
    factor = graph.neighbors("1")[0].segment.pollution_factor
    assert 0.01 <= factor <= 0.2


def test_missing_asset_is_reported(tmp_path: Path) -> None:
    with pytest.raises(RouteEngineError) as excinfo:
        load_graph_payload(tmp_path / "nope.json")

    assert excinfo.value.reason_code == "graph_asset_unavailable"


@pytest.mark.parametrize("content", ["{not json", "[]", '{"links": {}}'])
def test_invalid_asset_is_reported(tmp_path: Path, content: str) -> None:
    path = tmp_path / "bad.json"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(RouteEngineError) as excinfo:
        load_graph_payload(path)

    assert excinfo.value.reason_code == "graph_asset_invalid"


def test_cached_loader_uses_settings_path(monkeypatch, tmp_path: Path) -> None:
    path = _write_asset(tmp_path / "road_graph.json")
    monkeypatch.setattr(graph_assets.settings, "road_graph_asset_path", str(path))
    clear_graph_caches()
    try:
        first = load_road_graph(TravelMode.WALKING)
        second = load_road_graph(TravelMode.WALKING)
        assert first is not None
        assert first is second
        assert first.mode is TravelMode.WALKING
    finally:
        clear_graph_caches()


def test_cached_loader_returns_none_when_asset_missing(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setattr(graph_assets.settings, "road_graph_asset_path", str(tmp_path / "missing.json"))
    clear_graph_caches()
    try:
        assert load_road_graph(TravelMode.DRIVING) is None
    finally:
        clear_graph_caches()
