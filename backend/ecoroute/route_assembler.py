from __future__ import annotations

from collections.abc import Sequence

from .criteria import scores_for_all_profiles
from .graph_model import RoadGraph, Segment
from .models import (
    GeoJSONLineString,
    GeoJSONMultiLineString,
    RouteCandidate,
    SegmentFeature,
    SegmentFeatureProperties,
    SegmentMetrics,
    SegmentRecord,
)
from .route_metrics import route_metrics, segment_metrics, segments_for_path
from .travel_modes import TravelMode, mode_label


def build_route_geometry(segments: Sequence[Segment]) -> GeoJSONMultiLineString:
    """One [lon, lat] line per segment, in path order."""
    return GeoJSONMultiLineString(coordinates=[list(segment.line) for segment in segments])


def build_segment_features(segments: Sequence[Segment], mode: TravelMode | None) -> list[SegmentFeature]:
    label = mode_label(mode)
    return [
        SegmentFeature(
            properties=SegmentFeatureProperties(
                id=segment.feature_id,
                name=segment.display_name,
                length=segment.length_km,
                mode=label,
                from_node=segment.from_node,
                to_node=segment.to_node,
            ),
            geometry=GeoJSONLineString(coordinates=list(segment.line)),
        )
        for segment in segments
    ]


def _segment_record(segment: Segment, metrics: SegmentMetrics) -> SegmentRecord:
    return SegmentRecord(
        from_node=segment.from_node,
        to_node=segment.to_node,
        link_id=segment.link_id,
        name=segment.name,
        length_km=segment.length_km,
        pollution_factor=segment.pollution_factor,
        metrics=metrics,
    )


def assemble_route(
    graph: RoadGraph,
    path: Sequence[str],
    index: int,
    mode: TravelMode | None,
) -> RouteCandidate:
    """Build the candidate record for the ``index``-th (1-based) enumerated path."""
    segments = segments_for_path(graph, path)
    per_segment = [segment_metrics(segment, mode) for segment in segments]
    metrics = route_metrics(segments, mode, per_segment=per_segment)
    return RouteCandidate(
        id=f"route_{index}",
        name=f"Route {index}",
        mode=mode_label(mode),
        path=[str(node) for node in path],
        segments=[_segment_record(s, m) for s, m in zip(segments, per_segment, strict=True)],
        metrics=metrics,
        scores=scores_for_all_profiles(metrics),
        geometry=build_route_geometry(segments),
        segment_features=build_segment_features(segments, mode),
    )


def assemble_routes(
    graph: RoadGraph,
    paths: Sequence[Sequence[str]],
    mode: TravelMode | None,
) -> list[RouteCandidate]:
    return [assemble_route(graph, path, i, mode) for i, path in enumerate(paths, start=1)]
