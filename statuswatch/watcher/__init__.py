"""
File status watcher: reconciliation and cleanup engine.

Polls an import directory and a failed directory, reconciles their contents
with persisted status records, and ages out stuck records, stale records and
expired failed files.

Public API:
    FileStatus, FileState - status record model
    DirectoryScanner - fail-open directory listing
    Reconciler - status state machine
    CleanupScheduler - time-based aging rules
    WatcherEngine - one poll / cleanup cycle
    WatcherService - two guarded repeating loops
"""

from .errors import (
    WatcherError,
    ConfigurationMissingError,
    DirectoryInaccessibleError,
    InvalidStateTransitionError,
)
from .models import (
    FileState,
    FileStatus,
    MonitoredPath,
    MonitoredPaths,
    CleanupRule,
    CleanupSettings,
    ConfigSnapshot,
    ReconcileResult,
    PollCycleResult,
    CleanupReport,
)
from .remarks import extract_user_tag
from .scanner import DirectoryScanner, DirectoryListing
from .reconciler import Reconciler
from .cleanup import CleanupScheduler, rule_to_milliseconds
from .engine import WatcherEngine
from .scheduling import CycleGuard, RepeatingCycle, WatcherService

__all__ = [
    # Errors
    "WatcherError",
    "ConfigurationMissingError",
    "DirectoryInaccessibleError",
    "InvalidStateTransitionError",
    # Models
    "FileState",
    "FileStatus",
    "MonitoredPath",
    "MonitoredPaths",
    "CleanupRule",
    "CleanupSettings",
    "ConfigSnapshot",
    "ReconcileResult",
    "PollCycleResult",
    "CleanupReport",
    # Core
    "extract_user_tag",
    "DirectoryScanner",
    "DirectoryListing",
    "Reconciler",
    "CleanupScheduler",
    "rule_to_milliseconds",
    "WatcherEngine",
    "CycleGuard",
    "RepeatingCycle",
    "WatcherService",
]
