from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Sequence

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from ecoroute.engine_errors import RouteEngineError
from ecoroute.graph_assets import graph_from_payload, load_graph_payload
from ecoroute.graph_model import nearest_node
from ecoroute.logging_utils import configure_logging
from ecoroute.route_service import find_routes
from ecoroute.settings import settings
from ecoroute.travel_modes import resolve_travel_mode


def _parse_lonlat(raw: str) -> tuple[float, float]:
    parts = [p.strip() for p in str(raw).split(",")]
    if len(parts) != 2:
        raise argparse.ArgumentTypeError("expected 'lon,lat'")
    try:
        return float(parts[0]), float(parts[1])
    except ValueError as e:
        raise argparse.ArgumentTypeError("expected 'lon,lat'") from e


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Enumerate and rank routes between two nodes of a road-graph asset."
    )
    parser.add_argument("--graph", default=settings.road_graph_asset_path)
    start = parser.add_mutually_exclusive_group(required=True)
    start.add_argument("--start", default=None, help="start node id")
    start.add_argument("--start-lonlat", type=_parse_lonlat, default=None)
    end = parser.add_mutually_exclusive_group(required=True)
    end.add_argument("--end", default=None, help="end node id")
    end.add_argument("--end-lonlat", type=_parse_lonlat, default=None)
    parser.add_argument("--mode", default="driving")
    parser.add_argument("--criterion", default=None)
    parser.add_argument("--max-depth", type=int, default=None)
    parser.add_argument("--max-routes", type=int, default=None)
    parser.add_argument("--deadline-ms", type=int, default=None)
    parser.add_argument("--output", default=None, help="write the result JSON here instead of stdout")
    parser.add_argument("--log-level", default=None)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(list(argv) if argv is not None else None)
    if args.log_level:
        configure_logging(level=args.log_level)

    try:
        mode = resolve_travel_mode(args.mode)
        graph = graph_from_payload(load_graph_payload(args.graph), mode)
        endpoints: list[str] = []
        for node_id, point in ((args.start, args.start_lonlat), (args.end, args.end_lonlat)):
            if node_id is not None:
                endpoints.append(str(node_id))
                continue
            snapped, _distance_m = nearest_node(graph, lon=point[0], lat=point[1])
            if snapped is None:
                raise RouteEngineError(
                    reason_code="node_not_found",
                    message=f"no routable node near {point[0]},{point[1]}",
                )
            endpoints.append(snapped)
        result = find_routes(
            graph,
            endpoints[0],
            endpoints[1],
            mode,
            criterion=args.criterion,
            max_depth=args.max_depth,
            max_routes=args.max_routes,
            deadline_ms=args.deadline_ms,
        )
    except RouteEngineError as e:
        print(json.dumps({"reason_code": e.reason_code, "message": e.message}), file=sys.stderr)
        return 2

    text = json.dumps(result.model_dump(mode="json"), indent=2)
    if args.output:
        out = Path(args.output)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(text, encoding="utf-8")
        print(json.dumps({"output": str(out), "route_count": len(result.routes)}, indent=2))
    else:
        print(text)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
