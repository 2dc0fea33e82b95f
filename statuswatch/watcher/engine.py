"""
Watcher engine: one poll cycle and one cleanup cycle.

Coordinates:
1. Configuration snapshot (via the gateway, once per cycle)
2. Directory listing (via DirectoryScanner, fail-open)
3. Reconciliation (via Reconciler) and one bulk write
4. Cleanup rules (via CleanupScheduler)

The engine has no timers; scheduling.WatcherService drives it.
"""

import logging
import os
import time
from datetime import datetime, timezone
from typing import Callable, Optional

from .cleanup import CleanupScheduler
from .errors import ConfigurationMissingError, DirectoryInaccessibleError
from .models import (
    CleanupReport,
    ConfigSnapshot,
    PollCycleResult,
    utc_now,
)
from .reconciler import Reconciler
from .scanner import DirectoryListing, DirectoryScanner

logger = logging.getLogger(__name__)


class WatcherEngine:
    """
    Runs reconciliation and cleanup cycles against a status store gateway.

    Every timestamp written during a cycle is the cycle-start time read once
    from the injected clock.
    """

    def __init__(
        self,
        gateway,
        scanner: Optional[DirectoryScanner] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize watcher engine.

        Args:
            gateway: StatusStoreGateway providing statuses and configuration
            scanner: Directory scanner (default: DirectoryScanner())
            clock: Callable returning the current time (default: UTC now)
        """
        self.gateway = gateway
        self.scanner = scanner or DirectoryScanner()
        self.reconciler = Reconciler()
        self.cleanup = CleanupScheduler(gateway)
        self._clock = clock or utc_now

    def now(self) -> datetime:
        current = self._clock()
        if current.tzinfo is None:
            return current.replace(tzinfo=timezone.utc)
        return current

    def load_snapshot(self, require_paths: bool = True) -> ConfigSnapshot:
        """
        Read the domain configuration for one cycle.

        Args:
            require_paths: Raise when a monitored path is unset

        All values come from one read of the configuration, so an edit made
        while the snapshot is taken is seen entirely or not at all.

        Raises:
            ConfigurationMissingError: If the import or failed path is unset
        """
        snapshot = self.gateway.get_config_snapshot()
        missing = [
            label
            for label, location in (
                ("import", snapshot.import_location),
                ("failed", snapshot.failed_location),
            )
            if not location.is_configured
        ]
        if missing and require_paths:
            raise ConfigurationMissingError(missing)

        return snapshot

    def check_startup(self) -> ConfigSnapshot:
        """
        Verify both monitored directories are configured and accessible.

        Raises:
            ConfigurationMissingError: If a path is unset
            DirectoryInaccessibleError: If a directory is missing or unreadable
        """
        snapshot = self.load_snapshot()
        for label, location in (
            ("Import", snapshot.import_location),
            ("Failed", snapshot.failed_location),
        ):
            if not os.path.isdir(location.path):
                raise DirectoryInaccessibleError(label, location.path, "not a directory")
            if not os.access(location.path, os.R_OK | os.X_OK):
                raise DirectoryInaccessibleError(label, location.path, "permission denied")
        return snapshot

    def _scan(self, label: str, path: str) -> DirectoryListing:
        listing = self.scanner.scan(path)
        if not listing.accessible:
            logger.warning(
                f"{label} directory inaccessible, treating as empty: {path} ({listing.error})"
            )
        return listing

    def run_poll_cycle(self) -> PollCycleResult:
        """
        Reconcile directory contents with stored statuses.

        Returns:
            PollCycleResult with listing sizes and the applied changes

        Raises:
            ConfigurationMissingError: If monitored paths are unset
            PersistenceError: If reading or writing the store fails
        """
        started = time.monotonic()
        now = self.now()
        snapshot = self.load_snapshot()

        import_listing = self._scan("Import", snapshot.import_location.path)
        failed_listing = self._scan("Failed", snapshot.failed_location.path)
        statuses = self.gateway.list_all_statuses()

        result = self.reconciler.reconcile(
            statuses,
            import_listing.names,
            failed_listing.names,
            snapshot,
            now,
        )

        if result.changes:
            self.gateway.bulk_upsert(result.changes)
            logger.info(
                f"Poll: +{result.created} new, {result.processed} processed, "
                f"{result.failed} failed, {result.retried} retried"
            )

        return PollCycleResult(
            started_at=now,
            import_files=len(import_listing.names),
            failed_files=len(failed_listing.names),
            tracked=len(statuses),
            reconcile=result,
            import_accessible=import_listing.accessible,
            failed_accessible=failed_listing.accessible,
            duration=time.monotonic() - started,
        )

    def run_cleanup_cycle(self) -> CleanupReport:
        """
        Apply the cleanup rules once.

        The record rules do not depend on the monitored paths; with the
        failed path unset only the file rule is skipped.

        Raises:
            PersistenceError: If reading or writing the store fails
        """
        now = self.now()
        snapshot = self.load_snapshot(require_paths=False)
        report = self.cleanup.run(snapshot, now)
        if report.timed_out or report.statuses_deleted or report.files_deleted:
            logger.info(
                f"Cleanup: {report.timed_out} timed out, "
                f"{report.statuses_deleted} records deleted, "
                f"{report.files_deleted} files deleted"
            )
        return report
