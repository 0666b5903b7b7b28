from __future__ import annotations

from dataclasses import dataclass
from typing import Any

# Reason codes a caller may see. Structural absences (unknown node, no path)
# are reported through empty results; these codes name the failures that raise
# or that the HTTP layer maps to a status.
FROZEN_REASON_CODES: frozenset[str] = frozenset(
    {
        "unknown_travel_mode",
        "unknown_criterion",
        "invalid_search_bounds",
        "geometry_unresolved",
        "graph_asset_unavailable",
        "graph_asset_invalid",
        "node_not_found",
        "no_route_candidates",
    }
)


def normalize_reason_code(reason_code: str, *, default: str = "graph_asset_invalid") -> str:
    code = str(reason_code or "").strip()
    if code in FROZEN_REASON_CODES:
        return code
    return default


@dataclass
class RouteEngineError(ValueError):
    reason_code: str
    message: str
    details: dict[str, Any] | None = None

    def __str__(self) -> str:
        return self.message

    def as_detail(self) -> dict[str, Any]:
        detail: dict[str, Any] = {
            "reason_code": normalize_reason_code(self.reason_code),
            "message": self.message,
        }
        if self.details:
            detail["details"] = self.details
        return detail
