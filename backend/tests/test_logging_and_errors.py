from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import ecoroute.route_service as route_service
from ecoroute.engine_errors import FROZEN_REASON_CODES, RouteEngineError, normalize_reason_code
from ecoroute.graph_model import RoadGraph, Segment
from ecoroute.logging_utils import (
    LOG_FILE_NAME,
    _parse_level,
    configure_logging,
    get_logger,
    log_event,
    log_warning,
)
from ecoroute.travel_modes import TravelMode


def test_parse_level_accepts_names_and_numbers() -> None:
    assert _parse_level("debug") == logging.DEBUG
    assert _parse_level(logging.ERROR) == logging.ERROR
    assert _parse_level("not_a_level") == logging.INFO


def test_logging_writes_json_lines_to_out_dir(tmp_path: Path) -> None:
    try:
        logger = configure_logging(level="INFO", out_dir=str(tmp_path))
        assert get_logger() is logger
        handlers_before = len(logger.handlers)
        assert get_logger().handlers == logger.handlers
        assert len(logger.handlers) == handlers_before

        log_event("unit_test_event", route_count=3)
        log_warning("unit_test_warning", reason_code="geometry_unresolved")

        lines = (tmp_path / "logs" / LOG_FILE_NAME).read_text(encoding="utf-8").strip().splitlines()
        records = [json.loads(line) for line in lines]
        assert [r["event"] for r in records] == ["unit_test_event", "unit_test_warning"]
        assert records[0]["route_count"] == 3
        assert records[0]["level"] == "INFO"
        assert records[1]["level"] == "WARNING"
        assert records[1]["reason_code"] == "geometry_unresolved"
    finally:
        configure_logging(file_output=False)


def test_route_search_emits_structured_event(monkeypatch) -> None:
    events: list[tuple[str, dict[str, Any]]] = []

    def _capture_log_event(event: str, **fields: Any) -> None:
        events.append((event, fields))

    monkeypatch.setattr(route_service, "log_event", _capture_log_event)
    graph = RoadGraph.from_segments(
        [Segment(from_node="a", to_node="b", from_coord=(0.0, 51.0), to_coord=(0.01, 51.0))]
    )

    route_service.find_routes(graph, "a", "b", TravelMode.CYCLING)

    assert [name for name, _ in events] == ["route_search"]
    fields = events[0][1]
    assert fields["route_count"] == 1
    assert fields["termination_reason"] == "exhausted"
    assert fields["mode"] == "cycling"
    assert fields["best_route_id"] == "route_1"
    assert fields["duration_ms"] >= 0


def test_route_engine_error_carries_reason_code() -> None:
    err = RouteEngineError(reason_code="node_not_found", message="no such node", details={"node": "x"})

    assert isinstance(err, ValueError)
    assert str(err) == "no such node"
    assert err.details == {"node": "x"}
    assert err.as_detail() == {
        "reason_code": "node_not_found",
        "message": "no such node",
        "details": {"node": "x"},
    }
    assert RouteEngineError(reason_code="odd", message="m").as_detail() == {
        "reason_code": "graph_asset_invalid",
        "message": "m",
    }


def test_reason_code_normalisation() -> None:
    assert "geometry_unresolved" in FROZEN_REASON_CODES
    assert normalize_reason_code(" unknown_criterion ") == "unknown_criterion"
    assert normalize_reason_code("made_up") == "graph_asset_invalid"
    assert normalize_reason_code("", default="no_route_candidates") == "no_route_candidates"
