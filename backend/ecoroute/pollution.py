from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from .graph_model import (
    _FROM_KEYS,
    _TO_KEYS,
    Coordinate,
    _coerce_coordinate,
    _coerce_float,
    _first_present,
    _haversine_m,
)
from .settings import settings

# Node value when no station is within range.
BACKGROUND_POLLUTION = 0.05
MIN_LINK_POLLUTION = 0.01


@dataclass(frozen=True)
class AirQualityReading:
    lon: float
    lat: float
    value: float
    station_id: str | None = None


def parse_reading(raw: object, *, max_aqi: float | None = None) -> AirQualityReading | None:
    """Parse one station reading; ``aqi`` wins over ``pm25`` and is clamped to the scale."""
    if not isinstance(raw, Mapping):
        return None
    location = raw.get("location")
    if isinstance(location, Mapping):
        coord = _coerce_coordinate(location.get("coordinates"))
    else:
        coord = _coerce_coordinate((raw.get("lon"), raw.get("lat")))
    value = _coerce_float(_first_present(raw, ("aqi", "pm25")))
    if coord is None or value is None or value < 0:
        return None
    ceiling = settings.pollution_max_aqi if max_aqi is None else float(max_aqi)
    station = _first_present(raw, ("station_id", "stationId", "id"))
    return AirQualityReading(
        lon=coord[0],
        lat=coord[1],
        value=min(value, ceiling),
        station_id=str(station) if station is not None else None,
    )


def parse_readings(records: Iterable[object], *, max_aqi: float | None = None) -> list[AirQualityReading]:
    out: list[AirQualityReading] = []
    for raw in records:
        reading = parse_reading(raw, max_aqi=max_aqi)
        if reading is not None:
            out.append(reading)
    return out


def interpolate_node_pollution(
    coordinates: Mapping[str, Coordinate],
    readings: Iterable[AirQualityReading],
    *,
    radius_m: float | None = None,
    power: float | None = None,
    max_aqi: float | None = None,
) -> dict[str, float]:
    """Inverse-distance-weighted pollution per node, normalised to ``[0, 1]``.

    Stations farther than ``radius_m`` are ignored; each remaining station
    weighs ``1 / (d + 1) ** power`` with ``d`` in metres.
    """
    radius = settings.pollution_influence_radius_m if radius_m is None else float(radius_m)
    exponent = settings.pollution_idw_power if power is None else float(power)
    ceiling = settings.pollution_max_aqi if max_aqi is None else float(max_aqi)
    stations = list(readings)

    out: dict[str, float] = {}
    for node_id, (lon, lat) in coordinates.items():
        weighted = 0.0
        weight_total = 0.0
        for station in stations:
            d = _haversine_m(lat, lon, station.lat, station.lon)
            if d > radius:
                continue
            w = 1.0 / ((d + 1.0) ** exponent)
            weighted += w * station.value
            weight_total += w
        if weight_total <= 0.0:
            out[node_id] = BACKGROUND_POLLUTION
        else:
            out[node_id] = min(1.0, (weighted / weight_total) / ceiling)
    return out


def link_pollution(from_node: str, to_node: str, node_pollution: Mapping[str, float]) -> float:
    a = node_pollution.get(str(from_node))
    b = node_pollution.get(str(to_node))
    if a is not None and b is not None:
        value = (a + b) / 2.0
    elif a is not None:
        value = a
    elif b is not None:
        value = b
    else:
        value = BACKGROUND_POLLUTION
    return max(MIN_LINK_POLLUTION, value)


def apply_link_pollution(
    links: Iterable[Mapping[str, Any]],
    node_pollution: Mapping[str, float],
) -> list[dict[str, Any]]:
    """Copy raw link records with ``pollutionFactor`` set from their endpoints."""
    out: list[dict[str, Any]] = []
    for raw in links:
        record = dict(raw)
        u = _first_present(record, _FROM_KEYS)
        v = _first_present(record, _TO_KEYS)
        if u is not None and v is not None:
            record.pop("pollution_factor", None)
            record["pollutionFactor"] = link_pollution(str(u), str(v), node_pollution)
        out.append(record)
    return out
