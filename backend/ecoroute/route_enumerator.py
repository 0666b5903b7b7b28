from __future__ import annotations

import time
from collections.abc import Iterator

from .graph_model import GraphLink, RoadGraph

Path = tuple[str, ...]


def find_paths_with_stats(
    graph: RoadGraph,
    start: object,
    end: object,
    max_depth: int = 50,
    max_routes: int = 1000,
    *,
    deadline_monotonic_s: float | None = None,
    max_node_visits: int | None = None,
) -> tuple[tuple[Path, ...], dict[str, int | str]]:
    """Enumerate distinct simple paths from ``start`` to ``end`` depth-first.

    Behaves like recursive backtracking: a node is entered (marked visited and
    pushed on the path) only while ``depth <= max_depth`` and fewer than
    ``max_routes`` paths were found, and is released when all of its neighbors
    are exhausted. The explicit stack keeps the same neighbor order, so results
    come out in enumeration order.

    All traversal state lives in this call. The deadline and node-visit budget
    stop the walk early and return whatever was found so far.
    """
    start_id = str(start)
    end_id = str(end)
    results: list[Path] = []
    seen_paths: set[Path] = set()
    visited: set[str] = set()
    current_path: list[str] = []
    stack: list[Iterator[GraphLink]] = []
    explored = 0
    duplicates = 0
    termination_reason = "exhausted"

    def halted() -> bool:
        nonlocal termination_reason
        if termination_reason in ("deadline_exceeded", "node_visit_budget_exceeded"):
            return True
        if len(results) >= max_routes:
            termination_reason = "max_routes_reached"
            return True
        if max_node_visits is not None and max_node_visits > 0 and explored >= max_node_visits:
            termination_reason = "node_visit_budget_exceeded"
            return True
        if deadline_monotonic_s is not None and time.monotonic() >= float(deadline_monotonic_s):
            termination_reason = "deadline_exceeded"
            return True
        return False

    def enter(node: str) -> bool:
        nonlocal explored, duplicates
        depth = len(current_path)
        if depth > max_depth or halted():
            return False
        explored += 1
        visited.add(node)
        current_path.append(node)
        if node == end_id:
            path = tuple(current_path)
            if path in seen_paths:
                duplicates += 1
            else:
                seen_paths.add(path)
                results.append(path)
            # Reaching the goal ends this branch.
            stack.append(iter(()))
        else:
            stack.append(iter(graph.neighbors(node)))
        return True

    if not graph.has_node(start_id) or not graph.has_node(end_id):
        termination_reason = "node_not_found"
    else:
        enter(start_id)
    while stack:
        for link in stack[-1]:
            if link.neighbor not in visited and enter(link.neighbor):
                break
        else:
            stack.pop()
            visited.discard(current_path.pop())
    if termination_reason == "exhausted" and len(results) >= max_routes:
        termination_reason = "max_routes_reached"

    return tuple(results), {
        "explored_states": int(explored),
        "emitted_paths": len(results),
        "duplicate_paths": int(duplicates),
        "termination_reason": termination_reason,
        "max_depth": int(max_depth),
        "max_routes": int(max_routes),
    }


def find_paths(
    graph: RoadGraph,
    start: object,
    end: object,
    max_depth: int = 50,
    max_routes: int = 1000,
    *,
    deadline_monotonic_s: float | None = None,
    max_node_visits: int | None = None,
) -> tuple[Path, ...]:
    paths, _stats = find_paths_with_stats(
        graph,
        start,
        end,
        max_depth=max_depth,
        max_routes=max_routes,
        deadline_monotonic_s=deadline_monotonic_s,
        max_node_visits=max_node_visits,
    )
    return paths
