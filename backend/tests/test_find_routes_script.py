from __future__ import annotations

import json
from pathlib import Path

import scripts.find_routes as find_routes_script


def _write_asset(path: Path) -> Path:
    doc = {
        "nodes": [
            {"NODE-NO": 1, "XCOORD": 0.0, "YCOORD": 51.0},
            {"NODE-NO": 2, "XCOORD": 0.01, "YCOORD": 51.0},
            {"NODE-NO": 3, "XCOORD": 0.02, "YCOORD": 51.0},
        ],
        "links": [
            {"FROMNODENO": 1, "TONODENO": 2, "LENGTH": "0.7km"},
            {"FROMNODENO": 2, "TONODENO": 3, "LENGTH": "0.7km"},
            {"FROMNODENO": 1, "TONODENO": 3, "LENGTH": "2.0km"},
        ],
    }
    path.write_text(json.dumps(doc), encoding="utf-8")
    return path


def test_find_routes_cli_writes_result(tmp_path: Path, capsys) -> None:
    asset = _write_asset(tmp_path / "road_graph.json")
    out = tmp_path / "result" / "routes.json"

    rc = find_routes_script.main(
        [
            "--graph",
            str(asset),
            "--start",
            "1",
            "--end",
            "3",
            "--mode",
            "cycling",
            "--criterion",
            "healthiest",
            "--output",
            str(out),
        ]
    )

    assert rc == 0
    summary = json.loads(capsys.readouterr().out)
    assert summary["route_count"] == 2
    payload = json.loads(out.read_text(encoding="utf-8"))
    assert payload["criterion"] == "healthiest"
    assert payload["mode"] == "cycling"
    assert {tuple(r["path"]) for r in payload["routes"]} == {("1", "2", "3"), ("1", "3")}


def test_find_routes_cli_snaps_lonlat_and_prints(tmp_path: Path, capsys) -> None:
    asset = _write_asset(tmp_path / "road_graph.json")

    rc = find_routes_script.main(
        ["--graph", str(asset), "--start-lonlat", "0.0001,51.0", "--end", "2", "--max-routes", "1"]
    )

    assert rc == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["start_node"] == "1"
    assert len(payload["routes"]) == 1


def test_find_routes_cli_reports_engine_errors(tmp_path: Path, capsys) -> None:
    rc = find_routes_script.main(["--graph", str(tmp_path / "missing.json"), "--start", "1", "--end", "2"])

    assert rc == 2
    err = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
    assert err["reason_code"] == "graph_asset_unavailable"
