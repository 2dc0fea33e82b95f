"""
Watcher data models.

FileStatus is the only entity the watcher creates and mutates. The
configuration models are immutable inputs owned by the external settings
collaborator; the watcher reads them once per cycle and never writes them.

All models use Pydantic with strict validation and no silent coercion.
Cycle results are plain dataclasses.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import FrozenSet, Iterable, List, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_epoch_ms(value: datetime) -> int:
    """Convert a datetime to integer milliseconds since the epoch."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(round(value.timestamp() * 1000))


def from_epoch_ms(value: int) -> datetime:
    """Convert integer milliseconds since the epoch to a UTC datetime."""
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


class FileState(str, Enum):
    """
    Lifecycle state of a tracked file.

    processing → file sits in the import directory (or was retried)
    failed     → file was seen in the failed directory
    processed  → file vanished from the import directory while processing
    timed-out  → file stayed in processing longer than the timeout rule allows
    """

    PROCESSING = "processing"
    FAILED = "failed"
    PROCESSED = "processed"
    TIMED_OUT = "timed-out"


class FileStatus(BaseModel):
    """
    Status record for one tracked file.

    `name` is the natural key used to match records against directory
    listings. `last_updated` drives every age-based cleanup rule.
    """

    model_config = ConfigDict(extra="forbid")

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = Field(..., min_length=1, description="File base name")
    status: FileState
    source: str = Field(..., description="Label of the associated directory")
    last_updated: datetime = Field(default_factory=utc_now)
    remarks: str = ""

    @field_validator("last_updated")
    @classmethod
    def ensure_timezone(cls, v: datetime) -> datetime:
        """Naive timestamps are interpreted as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    def age_ms(self, now: datetime) -> int:
        """Milliseconds elapsed between last_updated and now."""
        return to_epoch_ms(now) - to_epoch_ms(self.last_updated)


class MonitoredPath(BaseModel):
    """A monitored directory with its human-readable label."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str
    name: str
    path: str = ""

    @property
    def is_configured(self) -> bool:
        return bool(self.path.strip())


class MonitoredPaths(BaseModel):
    """The import and failed directories."""

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    import_path: MonitoredPath = Field(..., alias="import")
    failed: MonitoredPath


class CleanupRule(BaseModel):
    """
    One aging rule: enabled flag, numeric value and unit.

    The value is kept as text, the way the settings owner stores it; it is
    interpreted by cleanup.rule_to_milliseconds().
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    enabled: bool = False
    value: str = "0"
    unit: Literal["hours", "days"] = "days"

    @field_validator("value", mode="before")
    @classmethod
    def stringify_value(cls, v):
        if isinstance(v, bool):
            raise ValueError("Cleanup rule value must be a number or numeric text")
        if isinstance(v, (int, float)):
            return str(v)
        return v


class CleanupSettings(BaseModel):
    """Thresholds for the three cleanup rules."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    status: CleanupRule = Field(default_factory=CleanupRule)
    files: CleanupRule = Field(default_factory=CleanupRule)
    timeout: CleanupRule = Field(default_factory=CleanupRule)


def normalize_extensions(extensions: Iterable[str]) -> FrozenSet[str]:
    """
    Normalise configured extensions for matching.

    Lowercases, strips whitespace and a leading dot, and drops blanks.
    An empty result means "monitor everything".
    """
    normalized = set()
    for ext in extensions:
        cleaned = ext.strip().lower().lstrip(".")
        if cleaned:
            normalized.add(cleaned)
    return frozenset(normalized)


class ConfigSnapshot(BaseModel):
    """Read-only view of domain configuration, assembled once per cycle."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    paths: MonitoredPaths
    extensions: FrozenSet[str] = frozenset()
    cleanup: CleanupSettings = Field(default_factory=CleanupSettings)
    failure_remark: str = ""

    @property
    def import_location(self) -> MonitoredPath:
        return self.paths.import_path

    @property
    def failed_location(self) -> MonitoredPath:
        return self.paths.failed


@dataclass
class ReconcileResult:
    """Changes computed by one reconciliation pass."""

    changes: List[FileStatus] = field(default_factory=list)
    created: int = 0
    processed: int = 0
    failed: int = 0
    retried: int = 0

    @property
    def updated(self) -> int:
        """Number of existing records that transitioned."""
        return self.processed + self.failed + self.retried


@dataclass
class PollCycleResult:
    """Outcome of one poll cycle."""

    started_at: datetime
    import_files: int
    failed_files: int
    tracked: int
    reconcile: ReconcileResult
    import_accessible: bool = True
    failed_accessible: bool = True
    duration: float = 0.0

    @property
    def writes(self) -> int:
        return len(self.reconcile.changes)


@dataclass
class CleanupReport:
    """Outcome of one cleanup cycle."""

    started_at: datetime
    timed_out: int = 0
    statuses_deleted: int = 0
    files_deleted: int = 0
    file_errors: int = 0
    deleted_files: List[str] = field(default_factory=list)
    failed_dir_skipped: bool = False
    duration: float = 0.0
