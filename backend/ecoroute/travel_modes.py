from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .engine_errors import RouteEngineError
from .logging_utils import log_warning
from .settings import settings


class TravelMode(str, Enum):
    WALKING = "walking"
    CYCLING = "cycling"
    DRIVING = "driving"
    MOTORCYCLE = "motorcycle"

    @classmethod
    def _missing_(cls, value: object) -> "TravelMode | None":
        if not isinstance(value, str):
            return None
        key = value.strip().lower()
        key = _MODE_ALIASES.get(key, key)
        for member in cls:
            if member.value == key:
                return member
        return None


# Short names used by the network data and older clients.
_MODE_ALIASES: dict[str, str] = {
    "walk": "walking",
    "foot": "walking",
    "bike": "cycling",
    "bicycle": "cycling",
    "car": "driving",
    "drive": "driving",
    "mc": "motorcycle",
    "moto": "motorcycle",
}


@dataclass(frozen=True)
class ModeProfile:
    label: str
    default_speed_kph: float
    emission_factor: float  # per km
    health_factor: float  # per km; negative for motorised modes
    speed_field: str | None = None
    network_tokens: frozenset[str] = frozenset()


MODE_PROFILES: dict[TravelMode, ModeProfile] = {
    TravelMode.CYCLING: ModeProfile(
        label="Cycling",
        default_speed_kph=15.0,
        emission_factor=0.01,
        health_factor=0.2,
        speed_field="speed_bike_kph",
        network_tokens=frozenset({"bike"}),
    ),
    TravelMode.DRIVING: ModeProfile(
        label="Driving",
        default_speed_kph=40.0,
        emission_factor=0.2,
        health_factor=-0.05,
        speed_field="speed_car_kph",
        network_tokens=frozenset({"car"}),
    ),
    TravelMode.WALKING: ModeProfile(
        label="Walking",
        default_speed_kph=5.0,
        emission_factor=0.0,
        health_factor=0.15,
        network_tokens=frozenset({"w"}),
    ),
    TravelMode.MOTORCYCLE: ModeProfile(
        label="Motorcycle",
        default_speed_kph=35.0,
        emission_factor=0.15,
        health_factor=-0.05,
        speed_field="speed_mc_kph",
        network_tokens=frozenset({"mc"}),
    ),
}

# Constants for a mode outside the catalogue (only reachable with strict mode off).
GENERIC_MODE_PROFILE = ModeProfile(
    label="Generic",
    default_speed_kph=30.0,
    emission_factor=0.1,
    health_factor=0.0,
)


def resolve_travel_mode(raw: TravelMode | str | None, *, strict: bool | None = None) -> TravelMode | None:
    """Map a caller-supplied mode onto the closed catalogue.

    Unknown modes either fail validation (strict) or resolve to ``None``, which
    selects the generic constants downstream. The fallback is logged so it never
    goes unnoticed.
    """
    if isinstance(raw, TravelMode):
        return raw
    strict = settings.strict_travel_mode if strict is None else strict
    try:
        return TravelMode(str(raw or ""))
    except ValueError:
        if strict:
            raise RouteEngineError(
                reason_code="unknown_travel_mode",
                message=f"unknown travel mode '{raw}'",
                details={"allowed": [m.value for m in TravelMode]},
            ) from None
        log_warning("travel_mode_fallback", requested_mode=str(raw))
        return None


def mode_profile(mode: TravelMode | None) -> ModeProfile:
    if mode is None:
        return GENERIC_MODE_PROFILE
    return MODE_PROFILES.get(mode, GENERIC_MODE_PROFILE)


def mode_label(mode: TravelMode | None) -> str:
    return mode.value if mode is not None else "generic"
