from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field, field_validator

from .engine_errors import RouteEngineError

if TYPE_CHECKING:
    from .models import RouteMetrics


class Criterion(str, Enum):
    BALANCED = "balanced"
    FASTEST = "fastest"
    LEAST_POLLUTED = "least_polluted"
    LEAST_EMISSION = "least_emission"
    HEALTHIEST = "healthiest"

    @classmethod
    def _missing_(cls, value: object) -> "Criterion | None":
        if not isinstance(value, str):
            return None
        key = value.strip().lower().replace("-", "_").replace(" ", "_")
        key = _CRITERION_ALIASES.get(key, key)
        for member in cls:
            if member.value == key:
                return member
        return None


# Names used by earlier clients.
_CRITERION_ALIASES: dict[str, str] = {
    "optimal": "balanced",
    "health": "healthiest",
    "quickest": "fastest",
    "greenest": "least_polluted",
}


class CriteriaWeights(BaseModel):
    """Weights over the metric dimensions. They need not sum to 1."""

    time: float = Field(default=0.0, ge=0)
    distance: float = Field(default=0.0, ge=0)
    pollution: float = Field(default=0.0, ge=0)
    emission: float = Field(default=0.0, ge=0)
    health: float = Field(default=0.0, ge=0)

    @field_validator("time", "distance", "pollution", "emission", "health")
    @classmethod
    def finite(cls, v: float) -> float:
        if v != v or v in (float("inf"), float("-inf")):
            raise ValueError("weight must be finite")
        return v


class CriteriaProfile(BaseModel):
    id: Criterion
    label: str
    weights: CriteriaWeights


# Weight key -> aggregate metric field it scores.
WEIGHT_METRIC_FIELDS: dict[str, str] = {
    "time": "time",
    "distance": "distance",
    "pollution": "avg_pollution",
    "emission": "avg_emission",
    "health": "health",
}


CRITERIA_PROFILES: dict[Criterion, CriteriaProfile] = {
    Criterion.BALANCED: CriteriaProfile(
        id=Criterion.BALANCED,
        label="Balanced",
        weights=CriteriaWeights(time=0.3, distance=0.3, pollution=0.2, emission=0.1, health=0.1),
    ),
    Criterion.FASTEST: CriteriaProfile(
        id=Criterion.FASTEST,
        label="Fastest",
        weights=CriteriaWeights(time=0.7, distance=0.2, pollution=0.05, emission=0.05, health=0.0),
    ),
    Criterion.LEAST_POLLUTED: CriteriaProfile(
        id=Criterion.LEAST_POLLUTED,
        label="Least Polluted",
        weights=CriteriaWeights(time=0.1, distance=0.2, pollution=0.5, emission=0.2, health=0.0),
    ),
    Criterion.LEAST_EMISSION: CriteriaProfile(
        id=Criterion.LEAST_EMISSION,
        label="Least Emission",
        weights=CriteriaWeights(time=0.1, distance=0.2, pollution=0.2, emission=0.5, health=0.0),
    ),
    Criterion.HEALTHIEST: CriteriaProfile(
        id=Criterion.HEALTHIEST,
        label="Healthiest",
        weights=CriteriaWeights(time=0.1, distance=0.2, pollution=0.1, emission=0.0, health=0.6),
    ),
}


def resolve_criterion(raw: Criterion | str | None) -> Criterion:
    if isinstance(raw, Criterion):
        return raw
    try:
        return Criterion(str(raw or ""))
    except ValueError:
        raise RouteEngineError(
            reason_code="unknown_criterion",
            message=f"unknown criterion '{raw}'",
            details={"allowed": [c.value for c in Criterion]},
        ) from None


def score(metrics: RouteMetrics, profile: CriteriaProfile) -> float:
    weights = profile.weights.model_dump()
    return sum(
        float(weight) * float(getattr(metrics, WEIGHT_METRIC_FIELDS[key]))
        for key, weight in weights.items()
    )


def scores_for_all_profiles(metrics: RouteMetrics) -> dict[str, float]:
    return {criterion.value: score(metrics, profile) for criterion, profile in CRITERIA_PROFILES.items()}
