from __future__ import annotations

import json
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any

from .engine_errors import RouteEngineError
from .graph_model import Coordinate, RoadGraph, build_coordinate_lookup, build_road_graph
from .logging_utils import log_event, log_warning
from .pollution import apply_link_pollution, interpolate_node_pollution, parse_readings
from .settings import settings
from .travel_modes import TravelMode


@dataclass(frozen=True)
class GraphPayload:
    """Parsed contents of a road-graph asset, before mode filtering."""

    source: str
    coordinates: dict[str, Coordinate]
    links: list[dict[str, Any]] = field(default_factory=list)
    station_count: int = 0


def _graph_asset_path() -> Path:
    return Path(settings.road_graph_asset_path)


def load_graph_payload(path: str | Path) -> GraphPayload:
    """Read a ``{"nodes", "links", "air_quality"}`` document.

    Link pollution is interpolated from ``air_quality`` readings when any are
    present; otherwise the links keep whatever factor they carry.
    """
    asset = Path(path)
    if not asset.exists():
        raise RouteEngineError(
            reason_code="graph_asset_unavailable",
            message=f"graph asset not found: {asset}",
            details={"path": str(asset)},
        )
    try:
        doc = json.loads(asset.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise RouteEngineError(
            reason_code="graph_asset_invalid",
            message=f"graph asset could not be read: {e}",
            details={"path": str(asset)},
        ) from e
    if not isinstance(doc, dict) or not isinstance(doc.get("links"), list):
        raise RouteEngineError(
            reason_code="graph_asset_invalid",
            message="graph asset must be an object with a 'links' list",
            details={"path": str(asset)},
        )

    coordinates = build_coordinate_lookup(doc.get("nodes") or [])
    links = [dict(item) for item in doc["links"] if isinstance(item, dict)]
    readings = parse_readings(doc.get("air_quality") or [])
    if readings:
        node_pollution = interpolate_node_pollution(coordinates, readings)
        links = apply_link_pollution(links, node_pollution)
    log_event(
        "graph_asset_loaded",
        source=str(asset),
        node_count=len(coordinates),
        link_count=len(links),
        station_count=len(readings),
    )
    return GraphPayload(
        source=str(asset),
        coordinates=coordinates,
        links=links,
        station_count=len(readings),
    )


def graph_from_payload(payload: GraphPayload, mode: TravelMode | None) -> RoadGraph:
    return build_road_graph(
        payload.links,
        payload.coordinates,
        mode=mode,
        source=payload.source,
    )


@lru_cache(maxsize=1)
def load_road_graph_asset() -> GraphPayload | None:
    try:
        return load_graph_payload(_graph_asset_path())
    except RouteEngineError as e:
        log_warning("graph_asset_unavailable", reason_code=e.reason_code, detail=e.message)
        return None


@lru_cache(maxsize=8)
def load_road_graph(mode: TravelMode | None) -> RoadGraph | None:
    payload = load_road_graph_asset()
    if payload is None:
        return None
    return graph_from_payload(payload, mode)


def clear_graph_caches() -> None:
    load_road_graph.cache_clear()
    load_road_graph_asset.cache_clear()
