"""
FastAPI Application Entry Point

Tableside Service Coordinator - live table service for one restaurant floor.
Runs with in-memory adapters (development) or the SQL store, Redis change
feed and webhook notifications (production).

Endpoints:
    - /api/groups: Serving group lifecycle and item counters
    - /api/layout/preview: Parse a table layout string
    - /api/import: Commit reviewed vision candidates
    - /api/alerts: Active and dismissed alerts
    - /api/realtime: Change feed status and manual reload
    - GET /health: System health check
"""

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

# Windows-specific event loop policy
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Internal imports
from tableside.core.config import get_settings, setup_logging
from tableside.floor import ServiceFloor, get_service_floor
from tableside.schemas import (
    AlertListResponse,
    ErrorResponse,
    GroupStatus,
    HealthResponse,
    ImportRequest,
    LayoutPreview,
    RealtimeStatusResponse,
    RecomputeRequest,
    ServingGroup,
    ServingGroupCreate,
    ServingGroupResponse,
    ServingGroupUpdate,
    ServingItem,
    ServingItemCreate,
    ServingItemUpdate,
)
from tableside.services.allocation import parse_table_allocation, total_guests, total_tables
from tableside.services.lifecycle import GroupCompletedError, ItemNotFoundError, progress
from tableside.services.store import GroupNotFoundError, ServingValidationError, build_group

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    # Startup
    logger.info("=" * 60)
    logger.info(f"🚀 Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    floor = get_service_floor()
    await floor.start()
    app.state.floor = floor
    logger.info(f"✅ Remote Store: {floor.remote.provider_name}")
    logger.info(f"✅ Change Feed: {floor.feed.provider_name}")
    logger.info(f"✅ Notification Sink: {floor.sink.provider_name}")

    # Validate production config
    if settings.use_real_services:
        missing = settings.validate_production_config()
        if missing:
            logger.warning(f"⚠️ Missing production config: {missing}")

    logger.info("=" * 60)
    logger.info("✅ Application ready!")
    logger.info("=" * 60)

    yield  # Application runs

    # Shutdown
    logger.info("Shutting down...")
    await floor.stop()
    logger.info("✅ Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Live table service coordination: serving groups, per-table portioning, "
        "late-service alerts and realtime sync between floor clients."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def get_floor(request: Request) -> ServiceFloor:
    """Dependency returning the floor started by the lifespan."""
    return request.app.state.floor


def to_response(group: ServingGroup) -> ServingGroupResponse:
    return ServingGroupResponse(**group.model_dump(), progress=progress(group))


def changed_fields(update: BaseModel) -> dict[str, Any]:
    return update.model_dump(exclude_unset=True)


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"🍽️ Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "health": "/health",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(floor: ServiceFloor = Depends(get_floor)) -> HealthResponse:
    """Verify all adapters are reachable."""
    checks = {}
    for name, check in (
        ("store", floor.remote.health_check),
        ("feed", floor.feed.health_check),
        ("notifications", floor.sink.health_check),
    ):
        try:
            checks[name] = "healthy" if await check() else "unhealthy"
        except Exception as e:
            checks[name] = f"unhealthy: {str(e)}"
            logger.error(f"{name} health check failed: {e}")

    overall = "operational" if all(s == "healthy" for s in checks.values()) else "degraded"

    return HealthResponse(status=overall, timestamp=datetime.now(), **checks)


# =============================================================================
# SERVING GROUP ENDPOINTS
# =============================================================================

@app.get(
    "/api/groups",
    response_model=list[ServingGroupResponse],
    tags=["Serving Groups"],
    summary="List Serving Groups",
)
async def list_groups(
    status: Optional[GroupStatus] = Query(None),
    date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    floor: ServiceFloor = Depends(get_floor),
) -> list[ServingGroupResponse]:
    """Groups in store order, newest first, optionally filtered."""
    groups = floor.store.groups
    if status:
        groups = [g for g in groups if g.status == status]
    if date:
        groups = [g for g in groups if g.date == date]
    return [to_response(g) for g in groups]


@app.post(
    "/api/groups",
    response_model=ServingGroupResponse,
    status_code=201,
    responses={422: {"model": ErrorResponse}},
    tags=["Serving Groups"],
    summary="Create Serving Group",
)
async def create_group(
    data: ServingGroupCreate,
    floor: ServiceFloor = Depends(get_floor),
) -> ServingGroupResponse:
    """
    Create a group from manual entry.

    When `apply_distribution` is set, quantities are portioned against
    `table_split` before saving.
    """
    logger.info(f"Creating serving group: {data.name}")
    group = floor.store.create(build_group(data))
    return to_response(group)


@app.get(
    "/api/groups/{group_id}",
    response_model=ServingGroupResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["Serving Groups"],
)
async def get_group(group_id: str, floor: ServiceFloor = Depends(get_floor)) -> ServingGroupResponse:
    return to_response(floor.store.get(group_id))


@app.patch(
    "/api/groups/{group_id}",
    response_model=ServingGroupResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    tags=["Serving Groups"],
)
async def update_group(
    group_id: str,
    data: ServingGroupUpdate,
    floor: ServiceFloor = Depends(get_floor),
) -> ServingGroupResponse:
    """Edit group details; the prep list is left as generated."""
    return to_response(floor.store.update_group(group_id, **changed_fields(data)))


@app.delete(
    "/api/groups/{group_id}",
    status_code=204,
    responses={404: {"model": ErrorResponse}},
    tags=["Serving Groups"],
)
async def delete_group(group_id: str, floor: ServiceFloor = Depends(get_floor)) -> None:
    floor.store.delete(group_id)


@app.post(
    "/api/groups/{group_id}/arrive",
    response_model=ServingGroupResponse,
    tags=["Serving Groups"],
    summary="Mark Guests Arrived",
)
async def arrive(group_id: str, floor: ServiceFloor = Depends(get_floor)) -> ServingGroupResponse:
    """Stamp the arrival time; repeated calls keep the first one."""
    return to_response(floor.store.mark_arrived(group_id))


@app.post(
    "/api/groups/{group_id}/complete",
    response_model=ServingGroupResponse,
    tags=["Serving Groups"],
)
async def complete(group_id: str, floor: ServiceFloor = Depends(get_floor)) -> ServingGroupResponse:
    return to_response(floor.store.complete(group_id))


@app.post(
    "/api/groups/{group_id}/recompute",
    response_model=ServingGroupResponse,
    tags=["Serving Groups"],
    summary="Recompute Distribution",
)
async def recompute(
    group_id: str,
    data: RecomputeRequest,
    floor: ServiceFloor = Depends(get_floor),
) -> ServingGroupResponse:
    """Re-portion current items against an edited table layout."""
    return to_response(floor.store.recompute_distribution(group_id, data.table_split))


@app.post(
    "/api/groups/{group_id}/prep/{name}/toggle",
    response_model=ServingGroupResponse,
    tags=["Serving Groups"],
)
async def toggle_prep(
    group_id: str,
    name: str,
    floor: ServiceFloor = Depends(get_floor),
) -> ServingGroupResponse:
    return to_response(floor.store.toggle_prep_item(group_id, name))


# =============================================================================
# ITEM ENDPOINTS
# =============================================================================

@app.post(
    "/api/groups/{group_id}/items",
    response_model=ServingGroupResponse,
    status_code=201,
    tags=["Items"],
)
async def add_item(
    group_id: str,
    data: ServingItemCreate,
    floor: ServiceFloor = Depends(get_floor),
) -> ServingGroupResponse:
    item = ServingItem(**data.model_dump())
    return to_response(floor.store.add_item(group_id, item))


@app.patch(
    "/api/groups/{group_id}/items/{item_id}",
    response_model=ServingGroupResponse,
    tags=["Items"],
)
async def update_item(
    group_id: str,
    item_id: str,
    data: ServingItemUpdate,
    floor: ServiceFloor = Depends(get_floor),
) -> ServingGroupResponse:
    return to_response(floor.store.update_item(group_id, item_id, **changed_fields(data)))


@app.delete(
    "/api/groups/{group_id}/items/{item_id}",
    response_model=ServingGroupResponse,
    tags=["Items"],
)
async def delete_item(
    group_id: str,
    item_id: str,
    floor: ServiceFloor = Depends(get_floor),
) -> ServingGroupResponse:
    return to_response(floor.store.delete_item(group_id, item_id))


@app.post(
    "/api/groups/{group_id}/items/{item_id}/increment",
    response_model=ServingGroupResponse,
    tags=["Items"],
)
async def increment_item(
    group_id: str,
    item_id: str,
    floor: ServiceFloor = Depends(get_floor),
) -> ServingGroupResponse:
    return to_response(floor.store.increment_served(group_id, item_id))


@app.post(
    "/api/groups/{group_id}/items/{item_id}/decrement",
    response_model=ServingGroupResponse,
    tags=["Items"],
)
async def decrement_item(
    group_id: str,
    item_id: str,
    floor: ServiceFloor = Depends(get_floor),
) -> ServingGroupResponse:
    return to_response(floor.store.decrement_served(group_id, item_id))


@app.post(
    "/api/groups/{group_id}/items/{item_id}/serve-all",
    response_model=ServingGroupResponse,
    tags=["Items"],
)
async def serve_all(
    group_id: str,
    item_id: str,
    floor: ServiceFloor = Depends(get_floor),
) -> ServingGroupResponse:
    return to_response(floor.store.serve_all(group_id, item_id))


# =============================================================================
# LAYOUT & IMPORT ENDPOINTS
# =============================================================================

@app.get(
    "/api/layout/preview",
    response_model=LayoutPreview,
    tags=["Layout"],
    summary="Parse Table Layout",
)
async def layout_preview(text: str = Query("", max_length=200)) -> LayoutPreview:
    """Show how a layout string like `2x10, 1x6` is understood."""
    layout = parse_table_allocation(text)
    return LayoutPreview(
        tables=layout,
        total_tables=total_tables(layout),
        total_guests=total_guests(layout),
    )


@app.post(
    "/api/import",
    response_model=list[ServingGroupResponse],
    status_code=201,
    responses={422: {"model": ErrorResponse}},
    tags=["Import"],
    summary="Import Vision Candidates",
)
async def import_candidates(
    data: ImportRequest,
    floor: ServiceFloor = Depends(get_floor),
) -> list[ServingGroupResponse]:
    """
    Commit staff-reviewed candidates from the order-slip extractor.

    Every candidate is validated before any group is created.
    """
    logger.info(f"Importing {len(data.candidates)} candidate groups")
    groups = floor.store.import_candidates(data.candidates)
    return [to_response(g) for g in groups]


# =============================================================================
# ALERT ENDPOINTS
# =============================================================================

@app.get(
    "/api/alerts",
    response_model=AlertListResponse,
    tags=["Alerts"],
    summary="Active Alerts",
)
async def active_alerts(floor: ServiceFloor = Depends(get_floor)) -> AlertListResponse:
    """Current alerts, recomputed now, without dismissed ones."""
    floor.alerts.refresh()
    return AlertListResponse(
        alerts=floor.alerts.active_alerts,
        dismissed_ids=sorted(floor.store.dismissed_alert_ids),
    )


@app.get(
    "/api/alerts/history",
    response_model=AlertListResponse,
    tags=["Alerts"],
)
async def history_alerts(floor: ServiceFloor = Depends(get_floor)) -> AlertListResponse:
    """Dismissed alerts whose condition still holds."""
    floor.alerts.refresh()
    return AlertListResponse(
        alerts=floor.alerts.history_alerts,
        dismissed_ids=sorted(floor.store.dismissed_alert_ids),
    )


@app.post(
    "/api/alerts/{alert_id}/dismiss",
    status_code=204,
    tags=["Alerts"],
)
async def dismiss_alert(alert_id: str, floor: ServiceFloor = Depends(get_floor)) -> None:
    floor.alerts.dismiss(alert_id)


# =============================================================================
# REALTIME ENDPOINTS
# =============================================================================

@app.get(
    "/api/realtime",
    response_model=RealtimeStatusResponse,
    tags=["Realtime"],
)
async def realtime_status(floor: ServiceFloor = Depends(get_floor)) -> RealtimeStatusResponse:
    return RealtimeStatusResponse(
        status=floor.reconciler.status,
        last_reload_at=floor.reconciler.last_reload_at,
    )


@app.post(
    "/api/realtime/reload",
    response_model=RealtimeStatusResponse,
    tags=["Realtime"],
    summary="Force Full Reload",
)
async def reload(floor: ServiceFloor = Depends(get_floor)) -> RealtimeStatusResponse:
    if not await floor.reconciler.reload():
        raise HTTPException(status_code=503, detail="Shared store unavailable or a newer reload won")
    return RealtimeStatusResponse(
        status=floor.reconciler.status,
        last_reload_at=floor.reconciler.last_reload_at,
    )


# =============================================================================
# ERROR HANDLERS
# =============================================================================

def error_response(status_code: int, error: str, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, detail=str(exc)).model_dump(),
    )


@app.exception_handler(GroupNotFoundError)
@app.exception_handler(ItemNotFoundError)
async def not_found_handler(request: Request, exc: LookupError) -> JSONResponse:
    return error_response(404, "Not Found", exc)


@app.exception_handler(GroupCompletedError)
async def completed_handler(request: Request, exc: GroupCompletedError) -> JSONResponse:
    return error_response(409, "Group Completed", exc)


@app.exception_handler(ServingValidationError)
@app.exception_handler(ValidationError)
async def validation_handler(request: Request, exc: ValueError) -> JSONResponse:
    logger.warning(f"Rejected input on {request.url.path}: {exc}")
    return error_response(422, "Validation Error", exc)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal Server Error",
            "detail": str(exc) if settings.debug else "An unexpected error occurred",
        },
    )

