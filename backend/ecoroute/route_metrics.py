from __future__ import annotations

from collections.abc import Sequence

from .graph_model import RoadGraph, Segment
from .logging_utils import log_warning
from .models import RouteMetrics, SegmentMetrics
from .travel_modes import TravelMode, mode_profile


def segments_for_path(graph: RoadGraph, path: Sequence[str]) -> list[Segment]:
    """Resolve the segment used between each consecutive node pair.

    A pair without a matching link is skipped and logged; the rest of the path
    is still resolved.
    """
    segments: list[Segment] = []
    for idx in range(len(path) - 1):
        u = str(path[idx])
        v = str(path[idx + 1])
        segment = next((link.segment for link in graph.neighbors(u) if link.neighbor == v), None)
        if segment is None:
            log_warning("path_edge_missing", from_node=u, to_node=v, path_length=len(path))
            continue
        segments.append(segment)
    return segments


def speed_for_mode(segment: Segment, mode: TravelMode | None) -> float:
    profile = mode_profile(mode)
    hint = segment.speed_hint(profile.speed_field)
    if hint is not None and hint > 0:
        return float(hint)
    return profile.default_speed_kph


def segment_metrics(segment: Segment, mode: TravelMode | None) -> SegmentMetrics:
    profile = mode_profile(mode)
    distance = segment.length_km
    speed = speed_for_mode(segment, mode)
    return SegmentMetrics(
        time=(distance / speed) * 3600.0,
        distance=distance,
        pollution=segment.pollution_factor,
        emission=distance * profile.emission_factor,
        health=distance * profile.health_factor,
    )


def route_metrics(
    segments: Sequence[Segment],
    mode: TravelMode | None,
    *,
    per_segment: Sequence[SegmentMetrics] | None = None,
) -> RouteMetrics:
    if per_segment is None:
        per_segment = [segment_metrics(segment, mode) for segment in segments]
    count = len(per_segment)
    total_time_s = sum(m.time for m in per_segment)
    total_pollution = sum(m.pollution for m in per_segment)
    total_emission = sum(m.emission for m in per_segment)
    return RouteMetrics(
        time=total_time_s / 60.0,
        distance=sum(m.distance for m in per_segment),
        avg_pollution=total_pollution / count if count else 0.0,
        avg_emission=total_emission / count if count else 0.0,
        health=sum(m.health for m in per_segment),
        segment_count=count,
    )
