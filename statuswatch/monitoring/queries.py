"""
Read-only queries for the monitoring API.

Pure functions over the persistence manager and the watcher service. No
query mutates state.
"""

from typing import Optional

from ..persistence.manager import PersistenceManager
from ..watcher.models import CleanupReport, FileState, PollCycleResult
from ..watcher.scheduling import WatcherService
from .models import (
    CleanupSummary,
    CycleStats,
    CyclesResponse,
    PollSummary,
    StatusListResponse,
    StatusSummaryResponse,
)


def get_status_list(
    persistence: PersistenceManager,
    status: Optional[FileState] = None,
) -> StatusListResponse:
    """List tracked records, newest first, optionally filtered by status."""
    statuses = persistence.list_statuses(status)
    return StatusListResponse(count=len(statuses), statuses=statuses)


def get_status_summary(persistence: PersistenceManager) -> StatusSummaryResponse:
    """Count records per status."""
    counts = persistence.count_by_status()
    return StatusSummaryResponse(total=sum(counts.values()), counts=counts)


def summarize_poll(result: PollCycleResult) -> PollSummary:
    return PollSummary(
        started_at=result.started_at,
        import_files=result.import_files,
        failed_files=result.failed_files,
        tracked=result.tracked,
        created=result.reconcile.created,
        processed=result.reconcile.processed,
        failed=result.reconcile.failed,
        retried=result.reconcile.retried,
        import_accessible=result.import_accessible,
        failed_accessible=result.failed_accessible,
        duration=result.duration,
    )


def summarize_cleanup(report: CleanupReport) -> CleanupSummary:
    return CleanupSummary(
        started_at=report.started_at,
        timed_out=report.timed_out,
        statuses_deleted=report.statuses_deleted,
        files_deleted=report.files_deleted,
        file_errors=report.file_errors,
        failed_dir_skipped=report.failed_dir_skipped,
        duration=report.duration,
    )


def get_cycles(service: Optional[WatcherService]) -> CyclesResponse:
    """
    Describe the watcher service's loops.

    Returns a response with service_running=False when no service is
    attached (for example when the API serves a database read-only).
    """
    if service is None:
        return CyclesResponse(service_running=False)

    last_poll = service.poll.last_result
    last_cleanup = service.cleanup.last_result

    return CyclesResponse(
        service_running=service.running,
        startup_error=service.startup_error,
        poll=CycleStats(**service.poll.stats()),
        cleanup=CycleStats(**service.cleanup.stats()),
        last_poll=summarize_poll(last_poll) if last_poll is not None else None,
        last_cleanup=summarize_cleanup(last_cleanup) if last_cleanup is not None else None,
    )
