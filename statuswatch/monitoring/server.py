"""
Monitoring server endpoints.

Read-only HTTP API over the tracked status records and the watcher loops.
Intended for trusted LAN access by dashboards and operators.

No POST, PUT, PATCH or DELETE endpoints are provided.
"""

import logging
import os
from typing import Optional

from fastapi import APIRouter, FastAPI, HTTPException, Query, Request

from ..persistence.errors import PersistenceError
from ..persistence.manager import PersistenceManager
from ..watcher.models import FileState
from ..watcher.scheduling import WatcherService
from .models import (
    CyclesResponse,
    HealthResponse,
    StatusListResponse,
    StatusSummaryResponse,
)
from .queries import get_cycles, get_status_list, get_status_summary

logger = logging.getLogger(__name__)

# Default binding configuration
DEFAULT_HOST = "127.0.0.1"  # Localhost only by default
DEFAULT_PORT = 8086

# Environment variable to enable LAN exposure (use with caution)
LAN_EXPOSURE_ENABLED = os.environ.get("STATUSWATCH_MONITOR_LAN", "false").lower() == "true"


router = APIRouter(prefix="/monitor", tags=["monitoring"])


@router.get("/health", response_model=HealthResponse)
def health_check():
    """Health check endpoint."""
    return HealthResponse(status="ok")


@router.get("/statuses", response_model=StatusListResponse)
def list_statuses(
    request: Request,
    status: Optional[str] = Query(
        None, description="Filter by status: processing, failed, processed, timed-out"
    ),
):
    """
    List tracked file status records.

    Records are sorted by last update, newest first.
    """
    status_filter = None
    if status:
        try:
            status_filter = FileState(status)
        except ValueError:
            valid = ", ".join(state.value for state in FileState)
            raise HTTPException(
                status_code=400,
                detail=f"Invalid status: {status}. Valid values: {valid}",
            )

    try:
        return get_status_list(request.app.state.persistence, status_filter)
    except PersistenceError as e:
        logger.error(f"Failed to list statuses: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/statuses/summary", response_model=StatusSummaryResponse)
def status_summary(request: Request):
    """Count tracked records per status."""
    try:
        return get_status_summary(request.app.state.persistence)
    except PersistenceError as e:
        logger.error(f"Failed to summarize statuses: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/cycles", response_model=CyclesResponse)
def cycles(request: Request):
    """Scheduling state and last results of the poll and cleanup loops."""
    return get_cycles(request.app.state.service)


def create_monitor_app(
    persistence: PersistenceManager,
    service: Optional[WatcherService] = None,
) -> FastAPI:
    """
    Create the read-only monitoring API application.

    Args:
        persistence: Status record store to read from
        service: Running watcher service, if any

    Returns:
        FastAPI application with read-only endpoints
    """
    app = FastAPI(
        title="statuswatch Monitor API",
        description="Read-only view of tracked file statuses and watcher cycles.",
        version="0.1.0",
    )
    app.state.persistence = persistence
    app.state.service = service
    app.include_router(router)
    return app


def get_bind_host() -> str:
    """
    Get the host to bind to based on configuration.

    Returns localhost by default. Set STATUSWATCH_MONITOR_LAN=true to expose
    to the LAN.
    """
    if LAN_EXPOSURE_ENABLED:
        return "0.0.0.0"
    return DEFAULT_HOST


def run_monitor_server(
    persistence: PersistenceManager,
    service: Optional[WatcherService] = None,
    host: Optional[str] = None,
    port: int = DEFAULT_PORT,
) -> None:
    """
    Run the monitoring API server (blocks until interrupted).

    Args:
        persistence: Status record store to read from
        service: Running watcher service, if any
        host: Host to bind to. Defaults based on STATUSWATCH_MONITOR_LAN.
        port: Port to listen on.
    """
    import uvicorn

    host = host or get_bind_host()
    app = create_monitor_app(persistence, service)

    logger.info(f"Starting monitor API (read-only) on {host}:{port}")
    if host == "0.0.0.0":
        logger.warning("LAN exposure is enabled. No authentication is configured.")

    uvicorn.run(app, host=host, port=port, log_config=None)
