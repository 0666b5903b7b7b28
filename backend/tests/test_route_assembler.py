from __future__ import annotations

import pytest

from ecoroute.graph_model import RoadGraph, build_road_graph
from ecoroute.route_assembler import assemble_route, assemble_routes, build_route_geometry
from ecoroute.route_metrics import segments_for_path
from ecoroute.travel_modes import TravelMode

COORDS = {"A": (0.0, 51.0), "B": (0.01, 51.0), "C": (0.02, 51.0)}


def _graph(links: list[dict[str, object]] | None = None) -> RoadGraph:
    if links is None:
        links = [
            {"FROMNODENO": "A", "TONODENO": "B", "LENGTH": "1.0km", "linkNo": "L1", "NAME": "High St"},
            {"FROMNODENO": "B", "TONODENO": "C", "LENGTH": "1.0km"},
        ]
    return build_road_graph(links, COORDS, mode=TravelMode.DRIVING)


def test_one_line_per_segment_in_lon_lat_order() -> None:
    route = assemble_route(_graph(), ("A", "B", "C"), 1, TravelMode.DRIVING)

    assert route.geometry.type == "MultiLineString"
    assert len(route.geometry.coordinates) == len(route.path) - 1
    assert route.geometry.coordinates[0] == [(0.0, 51.0), (0.01, 51.0)]
    assert route.geometry.coordinates[1] == [(0.01, 51.0), (0.02, 51.0)]


def test_segment_features_carry_display_properties() -> None:
    route = assemble_route(_graph(), ("A", "B", "C"), 1, TravelMode.DRIVING)
    first, second = route.segment_features

    assert first.type == "Feature"
    assert first.geometry.type == "LineString"
    assert first.properties.id == "L1"
    assert first.properties.name == "High St"
    assert first.properties.length == pytest.approx(1.0)
    assert first.properties.mode == "driving"
    assert (first.properties.from_node, first.properties.to_node) == ("A", "B")
    assert second.properties.id == "B-C"
    assert second.properties.name == "Unnamed Road"


def test_reverse_traversal_uses_reversed_coordinates() -> None:
    route = assemble_route(_graph(), ("C", "B", "A"), 1, TravelMode.DRIVING)

    assert route.geometry.coordinates == [
        [(0.02, 51.0), (0.01, 51.0)],
        [(0.01, 51.0), (0.0, 51.0)],
    ]
    assert route.segment_features[1].properties.id == "L1"


def test_explicit_geometry_wins_over_node_coordinates() -> None:
    shape = [[0.0, 51.0], [0.005, 51.002], [0.01, 51.0]]
    graph = _graph(
        [{"FROMNODENO": "A", "TONODENO": "B", "geometry": {"type": "LineString", "coordinates": shape}}]
    )
    segments = segments_for_path(graph, ("A", "B"))

    geometry = build_route_geometry(segments)

    assert geometry.coordinates == [[(0.0, 51.0), (0.005, 51.002), (0.01, 51.0)]]
    back = build_route_geometry(segments_for_path(graph, ("B", "A")))
    assert back.coordinates == [[(0.01, 51.0), (0.005, 51.002), (0.0, 51.0)]]


def test_assemble_routes_numbers_from_one_and_scores_every_profile() -> None:
    routes = assemble_routes(_graph(), [("A", "B"), ("A", "B", "C")], TravelMode.DRIVING)

    assert [r.id for r in routes] == ["route_1", "route_2"]
    assert [r.name for r in routes] == ["Route 1", "Route 2"]
    assert routes[1].metrics.distance == pytest.approx(2.0)
    assert routes[1].segments[0].metrics.time == pytest.approx(90.0)
    assert set(routes[0].scores) == {"balanced", "fastest", "least_polluted", "least_emission", "healthiest"}


def test_route_serializes_as_geojson() -> None:
    route = assemble_route(_graph(), ("A", "B"), 1, TravelMode.DRIVING)

    payload = route.model_dump(mode="json")

    assert payload["geometry"] == {
        "type": "MultiLineString",
        "coordinates": [[[0.0, 51.0], [0.01, 51.0]]],
    }
    assert payload["segment_features"][0]["geometry"]["coordinates"] == [[0.0, 51.0], [0.01, 51.0]]
