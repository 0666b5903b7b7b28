from __future__ import annotations

import time

from .criteria import Criterion, resolve_criterion
from .engine_errors import RouteEngineError
from .graph_model import RoadGraph
from .logging_utils import log_event
from .models import RouteSearchResult, SearchDiagnostics
from .ranking import best_route_summary, rank_routes
from .route_assembler import assemble_routes
from .route_enumerator import find_paths_with_stats
from .settings import settings
from .travel_modes import TravelMode, mode_label, resolve_travel_mode


def _bound(value: int | None, default: int, *, name: str, minimum: int) -> int:
    resolved = default if value is None else int(value)
    if resolved < minimum:
        raise RouteEngineError(
            reason_code="invalid_search_bounds",
            message=f"{name} must be >= {minimum}",
            details={name: resolved},
        )
    return resolved


def find_routes(
    graph: RoadGraph,
    start: object,
    end: object,
    mode: TravelMode | str | None,
    *,
    criterion: Criterion | str | None = None,
    max_depth: int | None = None,
    max_routes: int | None = None,
    deadline_ms: int | None = None,
    max_node_visits: int | None = None,
) -> RouteSearchResult:
    """Enumerate, measure, score and rank the routes between two nodes.

    Unknown nodes and unreachable targets give an empty result; only invalid
    inputs (criterion, strict travel mode, bounds) raise ``RouteEngineError``.
    """
    t0 = time.perf_counter()
    resolved_mode = resolve_travel_mode(mode)
    resolved_criterion = resolve_criterion(criterion or settings.default_criterion)
    depth = _bound(max_depth, settings.route_search_max_depth, name="max_depth", minimum=0)
    limit = _bound(max_routes, settings.route_search_max_routes, name="max_routes", minimum=1)
    budget_ms = settings.route_search_deadline_ms if deadline_ms is None else int(deadline_ms)
    visits = settings.route_search_max_node_visits if max_node_visits is None else int(max_node_visits)

    deadline = time.monotonic() + (budget_ms / 1000.0) if budget_ms > 0 else None
    paths, stats = find_paths_with_stats(
        graph,
        start,
        end,
        max_depth=depth,
        max_routes=limit,
        deadline_monotonic_s=deadline,
        max_node_visits=visits if visits > 0 else None,
    )

    routes = rank_routes(assemble_routes(graph, paths, resolved_mode), resolved_criterion)
    skipped_edges = sum(max(0, len(r.path) - 1) - r.metrics.segment_count for r in routes)
    best = best_route_summary(routes, resolved_criterion)

    diagnostics = SearchDiagnostics(
        explored_states=int(stats["explored_states"]),
        emitted_paths=int(stats["emitted_paths"]),
        duplicate_paths=int(stats["duplicate_paths"]),
        skipped_edges=skipped_edges,
        termination_reason=str(stats["termination_reason"]),
        max_depth=depth,
        max_routes=limit,
        duration_ms=round((time.perf_counter() - t0) * 1000, 2),
    )
    log_event(
        "route_search",
        start_node=str(start),
        end_node=str(end),
        mode=mode_label(resolved_mode),
        criterion=resolved_criterion.value,
        graph_source=graph.source,
        route_count=len(routes),
        best_route_id=best.id if best is not None else None,
        **diagnostics.model_dump(),
    )
    return RouteSearchResult(
        start_node=str(start),
        end_node=str(end),
        mode=mode_label(resolved_mode),
        criterion=resolved_criterion.value,
        routes=routes,
        best=best,
        diagnostics=diagnostics,
    )
