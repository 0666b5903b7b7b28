from __future__ import annotations

import math
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Any

from .engine_errors import RouteEngineError
from .logging_utils import log_event, log_warning
from .settings import settings
from .travel_modes import TravelMode, mode_profile

EARTH_RADIUS_M = 6_371_000.0

DEFAULT_SEGMENT_LENGTH_KM = 0.1
DEFAULT_POLLUTION_FACTOR = 0.3

Coordinate = tuple[float, float]  # (lon, lat)

_NUMBER_RE = re.compile(r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")


def _haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = phi2 - phi1
    dlambda = math.radians(lon2 - lon1)
    a = (
        math.sin(dphi / 2.0) ** 2
        + (math.cos(phi1) * math.cos(phi2) * (math.sin(dlambda / 2.0) ** 2))
    )
    return 2.0 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(max(0.0, a))))


def _coerce_float(raw: object) -> float | None:
    """Parse numbers as exported by the network model, e.g. ``"0.25km"`` or ``"40km/h"``."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float, Decimal)):
        value = float(raw)
    elif isinstance(raw, str):
        match = _NUMBER_RE.search(raw.strip())
        if match is None:
            return None
        value = float(match.group(0))
    else:
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    return value


def _positive_or_none(raw: object) -> float | None:
    value = _coerce_float(raw)
    if value is None or value <= 0:
        return None
    return value


def _coerce_coordinate(raw: object) -> Coordinate | None:
    if not isinstance(raw, (list, tuple)) or len(raw) < 2:
        return None
    lon = _coerce_float(raw[0])
    lat = _coerce_float(raw[1])
    if lon is None or lat is None:
        return None
    if not (-180.0 <= lon <= 180.0 and -90.0 <= lat <= 90.0):
        return None
    return (lon, lat)


def _parse_line(raw: object) -> tuple[Coordinate, ...] | None:
    if isinstance(raw, Mapping):
        raw = raw.get("coordinates")
    if not isinstance(raw, (list, tuple)):
        return None
    points = tuple(pt for pt in (_coerce_coordinate(item) for item in raw) if pt is not None)
    if len(points) < 2:
        return None
    return points


@dataclass(frozen=True)
class Segment:
    """A directed road link with its physical/environmental attributes.

    Endpoint coordinates are resolved once when the segment is built (see
    ``make_segment``); geometry code only ever reads ``line``.
    """

    from_node: str
    to_node: str
    length_km: float = DEFAULT_SEGMENT_LENGTH_KM
    speed_bike_kph: float | None = None
    speed_car_kph: float | None = None
    speed_mc_kph: float | None = None
    pollution_factor: float = DEFAULT_POLLUTION_FACTOR
    name: str | None = None
    link_id: str | None = None
    geometry: tuple[Coordinate, ...] | None = None
    from_coord: Coordinate | None = None
    to_coord: Coordinate | None = None

    def __post_init__(self) -> None:
        # Missing, zero or negative attributes fall back to the network defaults.
        object.__setattr__(self, "length_km", _positive_or_none(self.length_km) or DEFAULT_SEGMENT_LENGTH_KM)
        object.__setattr__(
            self, "pollution_factor", _positive_or_none(self.pollution_factor) or DEFAULT_POLLUTION_FACTOR
        )
        for name in ("speed_bike_kph", "speed_car_kph", "speed_mc_kph"):
            object.__setattr__(self, name, _positive_or_none(getattr(self, name)))

    @property
    def feature_id(self) -> str:
        return self.link_id or f"{self.from_node}-{self.to_node}"

    @property
    def display_name(self) -> str:
        return self.name or "Unnamed Road"

    @property
    def line(self) -> tuple[Coordinate, ...]:
        if self.geometry:
            return self.geometry
        if self.from_coord is None or self.to_coord is None:
            raise RouteEngineError(
                reason_code="geometry_unresolved",
                message=f"segment {self.feature_id} has no geometry and unresolved endpoints",
                details={"from_node": self.from_node, "to_node": self.to_node},
            )
        return (self.from_coord, self.to_coord)

    def speed_hint(self, field_name: str | None) -> float | None:
        if not field_name:
            return None
        return getattr(self, field_name, None)

    def reverse_direction(self) -> "Segment":
        return Segment(
            from_node=self.to_node,
            to_node=self.from_node,
            length_km=self.length_km,
            speed_bike_kph=self.speed_bike_kph,
            speed_car_kph=self.speed_car_kph,
            speed_mc_kph=self.speed_mc_kph,
            pollution_factor=self.pollution_factor,
            name=self.name,
            link_id=self.link_id,
            geometry=tuple(reversed(self.geometry)) if self.geometry else None,
            from_coord=self.to_coord,
            to_coord=self.from_coord,
        )


def make_segment(
    from_node: object,
    to_node: object,
    *,
    coordinates: Mapping[str, Coordinate] | None = None,
    length_km: object = None,
    speed_bike_kph: object = None,
    speed_car_kph: object = None,
    speed_mc_kph: object = None,
    pollution_factor: object = None,
    name: object = None,
    link_id: object = None,
    geometry: object = None,
    origin_fallback: bool | None = None,
) -> Segment:
    """Build a segment, applying attribute defaults and resolving its geometry."""
    u = str(from_node)
    v = str(to_node)
    coordinates = coordinates or {}
    line = _parse_line(geometry)
    from_coord = coordinates.get(u)
    to_coord = coordinates.get(v)
    if line is not None:
        # Explicit geometry wins; its ends stand in for unknown node locations.
        from_coord = from_coord or line[0]
        to_coord = to_coord or line[-1]
    elif from_coord is None or to_coord is None:
        fallback = settings.geometry_origin_fallback if origin_fallback is None else origin_fallback
        if not fallback:
            raise RouteEngineError(
                reason_code="geometry_unresolved",
                message=f"no geometry and no coordinates for link {u}->{v}",
                details={
                    "from_node": u,
                    "to_node": v,
                    "missing": [n for n, c in ((u, from_coord), (v, to_coord)) if c is None],
                },
            )
        log_warning("segment_origin_fallback", from_node=u, to_node=v)
        from_coord = from_coord or (0.0, 0.0)
        to_coord = to_coord or (0.0, 0.0)

    display_name = str(name).strip() if name is not None else ""
    return Segment(
        from_node=u,
        to_node=v,
        length_km=length_km,
        speed_bike_kph=speed_bike_kph,
        speed_car_kph=speed_car_kph,
        speed_mc_kph=speed_mc_kph,
        pollution_factor=pollution_factor,
        name=display_name or None,
        link_id=str(link_id) if link_id is not None and str(link_id).strip() else None,
        geometry=line,
        from_coord=from_coord,
        to_coord=to_coord,
    )


@dataclass(frozen=True)
class GraphLink:
    neighbor: str
    segment: Segment


@dataclass(frozen=True)
class RoadGraph:
    """Read-only adjacency: node id -> outgoing (neighbor, segment) links."""

    coordinates: dict[str, Coordinate]
    adjacency: dict[str, tuple[GraphLink, ...]]
    source: str = "memory"
    mode: TravelMode | None = None

    def neighbors(self, node_id: object) -> tuple[GraphLink, ...]:
        return self.adjacency.get(str(node_id), ())

    def coordinate(self, node_id: object) -> Coordinate | None:
        return self.coordinates.get(str(node_id))

    def has_node(self, node_id: object) -> bool:
        key = str(node_id)
        return key in self.adjacency or key in self.coordinates

    @property
    def link_count(self) -> int:
        return sum(len(links) for links in self.adjacency.values())

    @classmethod
    def from_segments(
        cls,
        segments: Iterable[Segment],
        *,
        coordinates: Mapping[str, Coordinate] | None = None,
        source: str = "memory",
    ) -> "RoadGraph":
        lookup = dict(coordinates or {})
        adjacency_mut: dict[str, list[GraphLink]] = {}
        for segment in segments:
            if segment.from_coord is None or segment.to_coord is None:
                segment = replace(
                    segment,
                    from_coord=segment.from_coord or lookup.get(segment.from_node),
                    to_coord=segment.to_coord or lookup.get(segment.to_node),
                )
            adjacency_mut.setdefault(segment.from_node, []).append(
                GraphLink(neighbor=segment.to_node, segment=segment)
            )
            adjacency_mut.setdefault(segment.to_node, [])
        return cls(
            coordinates=lookup,
            adjacency={node: tuple(links) for node, links in adjacency_mut.items()},
            source=source,
        )


@dataclass(frozen=True)
class LinkRecord:
    from_node: str
    to_node: str
    attributes: dict[str, Any] = field(default_factory=dict)
    network_tokens: frozenset[str] = frozenset()
    oneway: bool = False


_FROM_KEYS = ("from_node", "FROMNODENO", "fromNode", "u")
_TO_KEYS = ("to_node", "TONODENO", "toNode", "v")
_LINK_FIELD_KEYS: dict[str, tuple[str, ...]] = {
    "length_km": ("length_km", "LENGTH", "lengthKm", "length"),
    "speed_bike_kph": ("speed_bike_kph", "VCUR_PRTSYS(BIKE)", "VCUR_PRTSYS_BIKE", "vCurPrtSysBike"),
    "speed_car_kph": ("speed_car_kph", "VCUR_PRTSYS(CAR)", "VCUR_PRTSYS_CAR", "vCurPrtSysCar"),
    "speed_mc_kph": ("speed_mc_kph", "VCUR_PRTSYS(MC)", "VCUR_PRTSYS_MC", "vCurPrtSysMc"),
    "pollution_factor": ("pollution_factor", "pollutionFactor"),
    "name": ("name", "NAME"),
    "link_id": ("link_id", "linkNo", "LINK:NO", "LINKNO"),
    "geometry": ("geometry",),
}
_TSYS_KEYS = ("tsys", "TSYSSET", "allowed_modes")


def _first_present(raw: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return value
    return None


def _network_tokens(raw: object) -> frozenset[str]:
    if raw is None:
        return frozenset()
    if isinstance(raw, str):
        items: Iterable[object] = raw.split(",")
    elif isinstance(raw, (list, tuple, set, frozenset)):
        items = raw
    else:
        return frozenset()
    return frozenset(tok for tok in (str(item).strip().lower() for item in items) if tok)


def parse_link_record(raw: object) -> LinkRecord | None:
    if not isinstance(raw, Mapping):
        return None
    u = _first_present(raw, _FROM_KEYS)
    v = _first_present(raw, _TO_KEYS)
    if u is None or v is None:
        return None
    attributes = {name: _first_present(raw, keys) for name, keys in _LINK_FIELD_KEYS.items()}
    return LinkRecord(
        from_node=str(u),
        to_node=str(v),
        attributes=attributes,
        network_tokens=_network_tokens(_first_present(raw, _TSYS_KEYS)),
        oneway=bool(raw.get("oneway", False)),
    )


def parse_node_record(raw: object) -> tuple[str, float, float] | None:
    """Return ``(node_id, lon, lat)`` or ``None`` for unusable records."""
    if not isinstance(raw, Mapping):
        return None
    node_id = _first_present(raw, ("node_id", "NODE-NO", "id"))
    if node_id is None:
        return None
    location = raw.get("location")
    if isinstance(location, Mapping):
        coord = _coerce_coordinate(location.get("coordinates"))
    else:
        coord = _coerce_coordinate(
            (_first_present(raw, ("lon", "XCOORD")), _first_present(raw, ("lat", "YCOORD")))
        )
    if coord is None:
        return None
    return (str(node_id), coord[0], coord[1])


def build_coordinate_lookup(records: Iterable[object]) -> dict[str, Coordinate]:
    lookup: dict[str, Coordinate] = {}
    for raw in records:
        parsed = parse_node_record(raw)
        if parsed is not None:
            node_id, lon, lat = parsed
            lookup[node_id] = (lon, lat)
    return lookup


def link_allowed_for_mode(record: LinkRecord, mode: TravelMode | None) -> bool:
    if not record.network_tokens:
        return True
    if mode is None:
        return False
    return bool(record.network_tokens & mode_profile(mode).network_tokens)


def build_road_graph(
    links: Iterable[LinkRecord | Mapping[str, Any]],
    coordinates: Mapping[str, Coordinate],
    *,
    mode: TravelMode | None,
    bidirectional: bool = True,
    origin_fallback: bool | None = None,
    source: str = "memory",
) -> RoadGraph:
    """Build the mode-filtered adjacency the search runs on.

    Links the mode may not use are dropped; two-way links also get a reverse
    edge with reversed geometry. A link whose geometry cannot be resolved is
    skipped rather than failing the whole build.
    """
    adjacency_mut: dict[str, list[GraphLink]] = {}
    seen = 0
    kept = 0
    skipped_malformed = 0
    skipped_mode = 0
    skipped_geometry = 0

    for raw in links:
        seen += 1
        record = raw if isinstance(raw, LinkRecord) else parse_link_record(raw)
        if record is None:
            skipped_malformed += 1
            continue
        if not link_allowed_for_mode(record, mode):
            skipped_mode += 1
            continue
        try:
            segment = make_segment(
                record.from_node,
                record.to_node,
                coordinates=coordinates,
                origin_fallback=origin_fallback,
                **record.attributes,
            )
        except RouteEngineError:
            skipped_geometry += 1
            continue
        adjacency_mut.setdefault(segment.from_node, []).append(
            GraphLink(neighbor=segment.to_node, segment=segment)
        )
        adjacency_mut.setdefault(segment.to_node, [])
        kept += 1
        if bidirectional and not record.oneway:
            reverse = segment.reverse_direction()
            adjacency_mut[reverse.from_node].append(GraphLink(neighbor=reverse.to_node, segment=reverse))
            kept += 1

    if skipped_geometry:
        log_warning(
            "road_graph_links_skipped",
            reason_code="geometry_unresolved",
            skipped=skipped_geometry,
            source=source,
        )
    log_event(
        "road_graph_built",
        source=source,
        mode=mode.value if mode is not None else "generic",
        links_seen=seen,
        directed_links_kept=kept,
        skipped_malformed=skipped_malformed,
        skipped_mode=skipped_mode,
        skipped_geometry=skipped_geometry,
        node_count=len(adjacency_mut),
    )
    return RoadGraph(
        coordinates=dict(coordinates),
        adjacency={node: tuple(items) for node, items in adjacency_mut.items()},
        source=source,
        mode=mode,
    )


def nearest_node(
    graph: RoadGraph,
    *,
    lon: float,
    lat: float,
    max_distance_m: float | None = None,
) -> tuple[str | None, float]:
    """Closest routable node to a point, within ``max_distance_m``."""
    limit = settings.nearest_node_max_distance_m if max_distance_m is None else float(max_distance_m)
    best_id: str | None = None
    best_d = float("inf")
    for node_id, (node_lon, node_lat) in graph.coordinates.items():
        if node_id not in graph.adjacency:
            continue
        d = _haversine_m(lat, lon, node_lat, node_lon)
        if d < best_d:
            best_id, best_d = node_id, d
    if best_id is None or best_d > limit:
        return None, float("inf")
    return best_id, best_d
