from __future__ import annotations

import uuid
from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from .criteria import CRITERIA_PROFILES, resolve_criterion
from .engine_errors import RouteEngineError
from .graph_assets import load_road_graph
from .graph_model import RoadGraph, nearest_node
from .logging_utils import log_event
from .models import (
    CriteriaListResponse,
    LonLat,
    ModeInfo,
    ModeListResponse,
    RouteSearchRequest,
    RouteSearchResult,
)
from .route_service import find_routes
from .settings import settings
from .travel_modes import MODE_PROFILES, TravelMode

app = FastAPI(title="EcoRoute multi-criteria route engine", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

GraphLoader = Callable[[TravelMode | None], RoadGraph | None]


def graph_loader() -> GraphLoader:
    return load_road_graph


GraphLoaderDep = Annotated[GraphLoader, Depends(graph_loader)]


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/criteria", response_model=CriteriaListResponse)
async def list_criteria() -> CriteriaListResponse:
    default = resolve_criterion(settings.default_criterion)
    return CriteriaListResponse(default=default.value, criteria=list(CRITERIA_PROFILES.values()))


@app.get("/modes", response_model=ModeListResponse)
async def list_modes() -> ModeListResponse:
    return ModeListResponse(
        modes=[
            ModeInfo(
                id=mode,
                label=profile.label,
                default_speed_kph=profile.default_speed_kph,
                emission_factor=profile.emission_factor,
                health_factor=profile.health_factor,
            )
            for mode, profile in MODE_PROFILES.items()
        ]
    )


def _error_detail(reason_code: str, message: str) -> dict[str, object]:
    return RouteEngineError(reason_code=reason_code, message=message).as_detail()


def _resolve_endpoint(graph: RoadGraph, node_id: str | None, point: LonLat | None, *, label: str) -> str:
    if node_id is not None:
        return str(node_id)
    if point is None:
        raise HTTPException(status_code=422, detail=f"{label} needs a node id or a lon/lat point")
    snapped, _distance_m = nearest_node(graph, lon=point.lon, lat=point.lat)
    if snapped is None:
        raise HTTPException(
            status_code=404,
            detail=_error_detail(
                "node_not_found",
                f"no routable node within {settings.nearest_node_max_distance_m:.0f} m of {label}",
            ),
        )
    return snapped


# Plain def: the search is CPU-bound and runs in the threadpool.
@app.post("/routes/search", response_model=RouteSearchResult)
def search_routes(req: RouteSearchRequest, load_graph: GraphLoaderDep) -> RouteSearchResult:
    request_id = str(uuid.uuid4())
    graph = load_graph(req.mode)
    if graph is None:
        raise HTTPException(
            status_code=503,
            detail=_error_detail("graph_asset_unavailable", "road graph is not available"),
        )

    start = _resolve_endpoint(graph, req.start_node, req.start, label="start")
    end = _resolve_endpoint(graph, req.end_node, req.end, label="end")
    max_routes = min(req.max_routes or settings.api_max_routes, settings.api_max_routes)

    try:
        result = find_routes(
            graph,
            start,
            end,
            req.mode,
            criterion=req.criterion,
            max_routes=max_routes,
        )
    except RouteEngineError as e:
        raise HTTPException(status_code=400, detail=e.as_detail()) from e

    log_event(
        "route_search_request",
        request_id=request_id,
        start_node=start,
        end_node=end,
        mode=req.mode.value,
        criterion=result.criterion,
        route_count=len(result.routes),
    )
    if not result.routes:
        reason = (
            "node_not_found"
            if result.diagnostics.termination_reason == "node_not_found"
            else "no_route_candidates"
        )
        raise HTTPException(
            status_code=404,
            detail=_error_detail(reason, f"no route from {start} to {end}"),
        )
    return result
