"""
Monitoring response models.

Read-only views over status records and cycle activity.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict

from ..watcher.models import FileStatus


class HealthResponse(BaseModel):
    status: str


class StatusListResponse(BaseModel):
    """Tracked status records, newest first."""

    count: int
    statuses: List[FileStatus]


class StatusSummaryResponse(BaseModel):
    """Record counts per status."""

    total: int
    counts: Dict[str, int]


class CycleStats(BaseModel):
    """Runner counters for one cycle type."""

    model_config = ConfigDict(extra="forbid")

    name: str
    interval_seconds: float
    running: bool
    in_progress: bool
    runs: int
    skips: int
    failures: int
    last_error: Optional[str] = None
    last_finished_at: Optional[datetime] = None


class PollSummary(BaseModel):
    """Outcome of the most recent successful poll cycle."""

    started_at: datetime
    import_files: int
    failed_files: int
    tracked: int
    created: int
    processed: int
    failed: int
    retried: int
    import_accessible: bool
    failed_accessible: bool
    duration: float


class CleanupSummary(BaseModel):
    """Outcome of the most recent successful cleanup cycle."""

    started_at: datetime
    timed_out: int
    statuses_deleted: int
    files_deleted: int
    file_errors: int
    failed_dir_skipped: bool
    duration: float


class CyclesResponse(BaseModel):
    """Scheduling state of the watcher service."""

    service_running: bool
    startup_error: Optional[str] = None
    poll: Optional[CycleStats] = None
    cleanup: Optional[CycleStats] = None
    last_poll: Optional[PollSummary] = None
    last_cleanup: Optional[CleanupSummary] = None
