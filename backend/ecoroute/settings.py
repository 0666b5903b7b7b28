from __future__ import annotations

from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_out_dir() -> str:
    # backend/out, next to the package.
    return str(Path(__file__).resolve().parents[1] / "out")


def _default_graph_asset_path() -> str:
    return str(Path(_default_out_dir()) / "model_assets" / "road_graph.json")


class Settings(BaseSettings):
    """Validated settings (env-driven), keeping search bounds and defaults out of code."""

    model_config = SettingsConfigDict(
        # Support both "repo root/.env" and "backend/.env" (local dev)
        env_file=(".env", "../.env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    out_dir: str = Field(default_factory=_default_out_dir, alias="OUT_DIR")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    road_graph_asset_path: str = Field(
        default_factory=_default_graph_asset_path,
        alias="ROAD_GRAPH_ASSET_PATH",
    )

    # Path enumeration bounds. Depth counts edges, so a path holds at most max_depth + 1 nodes.
    route_search_max_depth: int = Field(default=50, ge=0, le=5000, alias="ROUTE_SEARCH_MAX_DEPTH")
    route_search_max_routes: int = Field(default=1000, ge=1, le=100_000, alias="ROUTE_SEARCH_MAX_ROUTES")
    # 0 disables the bound.
    route_search_deadline_ms: int = Field(default=2000, ge=0, alias="ROUTE_SEARCH_DEADLINE_MS")
    route_search_max_node_visits: int = Field(
        default=250_000,
        ge=0,
        alias="ROUTE_SEARCH_MAX_NODE_VISITS",
    )
    api_max_routes: int = Field(default=5, ge=1, le=1000, alias="API_MAX_ROUTES")

    default_criterion: str = Field(default="balanced", alias="DEFAULT_CRITERION")
    strict_travel_mode: bool = Field(default=False, alias="STRICT_TRAVEL_MODE")
    geometry_origin_fallback: bool = Field(default=False, alias="GEOMETRY_ORIGIN_FALLBACK")

    nearest_node_max_distance_m: float = Field(
        default=1000.0,
        gt=0.0,
        alias="NEAREST_NODE_MAX_DISTANCE_M",
    )

    # Air-quality interpolation (inverse distance weighting over nearby stations).
    pollution_influence_radius_m: float = Field(
        default=5000.0,
        gt=0.0,
        alias="POLLUTION_INFLUENCE_RADIUS_M",
    )
    pollution_idw_power: float = Field(default=2.0, gt=0.0, le=8.0, alias="POLLUTION_IDW_POWER")
    pollution_max_aqi: float = Field(default=500.0, gt=0.0, alias="POLLUTION_MAX_AQI")

    @model_validator(mode="after")
    def _normalize_defaults(self) -> "Settings":
        self.default_criterion = str(self.default_criterion or "balanced").strip().lower() or "balanced"
        return self


settings = Settings()
