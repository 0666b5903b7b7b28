from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, model_validator

from .criteria import CriteriaProfile
from .travel_modes import TravelMode


class LonLat(BaseModel):
    lon: float = Field(..., ge=-180, le=180)
    lat: float = Field(..., ge=-90, le=90)


class GeoJSONLineString(BaseModel):
    type: Literal["LineString"] = "LineString"
    coordinates: list[tuple[float, float]]  # [lon, lat]


class GeoJSONMultiLineString(BaseModel):
    type: Literal["MultiLineString"] = "MultiLineString"
    coordinates: list[list[tuple[float, float]]]  # one [lon, lat] line per segment


class SegmentMetrics(BaseModel):
    time: float  # seconds
    distance: float  # km
    pollution: float
    emission: float
    health: float


class RouteMetrics(BaseModel):
    """Aggregate metrics for one route.

    ``avg_pollution`` and ``avg_emission`` are means over segments while
    ``health`` is a plain sum. All averages are 0 for an empty route.
    """

    time: float = 0.0  # minutes
    distance: float = 0.0  # km
    avg_pollution: float = 0.0
    avg_emission: float = 0.0
    health: float = 0.0
    segment_count: int = Field(default=0, ge=0)


class SegmentRecord(BaseModel):
    from_node: str
    to_node: str
    link_id: str | None = None
    name: str | None = None
    length_km: float
    pollution_factor: float
    metrics: SegmentMetrics


class SegmentFeatureProperties(BaseModel):
    id: str
    name: str
    length: float
    mode: str
    from_node: str
    to_node: str


class SegmentFeature(BaseModel):
    type: Literal["Feature"] = "Feature"
    properties: SegmentFeatureProperties
    geometry: GeoJSONLineString


class RouteCandidate(BaseModel):
    id: str
    name: str
    mode: str
    path: list[str]
    segments: list[SegmentRecord] = Field(default_factory=list)
    metrics: RouteMetrics = Field(default_factory=RouteMetrics)
    scores: dict[str, float] = Field(default_factory=dict)
    geometry: GeoJSONMultiLineString
    segment_features: list[SegmentFeature] = Field(default_factory=list)


class BestRouteSummary(BaseModel):
    id: str
    score: float
    metrics: RouteMetrics


class SearchDiagnostics(BaseModel):
    explored_states: int = 0
    emitted_paths: int = 0
    duplicate_paths: int = 0
    skipped_edges: int = 0
    termination_reason: str = "exhausted"
    max_depth: int = 0
    max_routes: int = 0
    duration_ms: float = 0.0


class RouteSearchResult(BaseModel):
    start_node: str
    end_node: str
    mode: str
    criterion: str
    routes: list[RouteCandidate] = Field(default_factory=list)
    best: BestRouteSummary | None = None
    diagnostics: SearchDiagnostics = Field(default_factory=SearchDiagnostics)


class RouteSearchRequest(BaseModel):
    start_node: str | None = None
    end_node: str | None = None
    start: LonLat | None = None
    end: LonLat | None = None
    mode: TravelMode = TravelMode.DRIVING
    criterion: str | None = None
    max_routes: int | None = Field(default=None, ge=1)

    @model_validator(mode="after")
    def _require_endpoints(self) -> "RouteSearchRequest":
        if self.start_node is None and self.start is None:
            raise ValueError("start_node or start coordinates are required")
        if self.end_node is None and self.end is None:
            raise ValueError("end_node or end coordinates are required")
        return self


class ModeInfo(BaseModel):
    id: TravelMode
    label: str
    default_speed_kph: float
    emission_factor: float
    health_factor: float


class ModeListResponse(BaseModel):
    modes: list[ModeInfo]


class CriteriaListResponse(BaseModel):
    default: str
    criteria: list[CriteriaProfile]
