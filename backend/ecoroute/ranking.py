from __future__ import annotations

from collections.abc import Iterable

from .criteria import Criterion
from .models import BestRouteSummary, RouteCandidate


def _criterion_key(criterion: Criterion | str) -> str:
    return criterion.value if isinstance(criterion, Criterion) else str(criterion)


def rank_routes(routes: Iterable[RouteCandidate], criterion: Criterion | str) -> list[RouteCandidate]:
    """Order routes by descending score under ``criterion``.

    ``sorted`` is stable, so equal scores keep enumeration order. A route with
    no score for the criterion ranks as if it scored 0.
    """
    key = _criterion_key(criterion)
    return sorted(routes, key=lambda r: r.scores.get(key, 0.0), reverse=True)


def best_route_summary(
    routes: Iterable[RouteCandidate],
    criterion: Criterion | str,
) -> BestRouteSummary | None:
    ranked = rank_routes(routes, criterion)
    if not ranked:
        return None
    top = ranked[0]
    return BestRouteSummary(
        id=top.id,
        score=top.scores.get(_criterion_key(criterion), 0.0),
        metrics=top.metrics,
    )
