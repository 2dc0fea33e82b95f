"""
Cleanup scheduler: time-based aging rules.

Three independently toggled rules, each with a value and an hours/days unit:

1. Timeout flagging: processing records older than the threshold become
   timed-out.
2. Status-record expiry: records of any status older than the threshold are
   deleted from the store.
3. Physical-file expiry: files in the failed directory whose creation time is
   older than the threshold are deleted from disk.

Rule 3 acts on the filesystem and is not synchronised with the record rules;
a file can be removed from disk in a different cycle than its record.
"""

import logging
import os
import re
import stat
import time
from datetime import datetime
from typing import List

from .models import (
    CleanupReport,
    CleanupRule,
    ConfigSnapshot,
    FileState,
    FileStatus,
    to_epoch_ms,
)
from .state import transition

logger = logging.getLogger(__name__)

_UNIT_MILLISECONDS = {
    "hours": 60 * 60 * 1000,
    "days": 24 * 60 * 60 * 1000,
}

_LEADING_INTEGER = re.compile(r"\s*([+-]?\d+)")


def rule_to_milliseconds(rule: CleanupRule) -> int:
    """
    Convert a rule's value and unit to milliseconds.

    The value is read up to its first non-digit, so "7.5" counts as 7 and
    "24.0" as 24.

    Returns:
        Threshold in milliseconds, or 0 when the value has no leading
        integer or is not positive (the rule is then disabled)
    """
    match = _LEADING_INTEGER.match(str(rule.value))
    amount = int(match.group(1)) if match else 0
    if amount <= 0:
        logger.warning(
            f"Ignoring cleanup rule with unusable value {rule.value!r} {rule.unit}"
        )
        return 0
    return amount * _UNIT_MILLISECONDS[rule.unit]


def file_creation_time(stat_result: os.stat_result) -> float:
    """
    Creation time of a file in seconds since the epoch.

    Uses st_birthtime where the platform records it, otherwise st_ctime.
    """
    birthtime = getattr(stat_result, "st_birthtime", None)
    if birthtime:
        return birthtime
    return stat_result.st_ctime


class CleanupScheduler:
    """
    Applies the three cleanup rules against a gateway and the failed directory.

    The gateway provides list_all_statuses(), bulk_upsert() and
    delete_by_age(); see persistence.gateway.StatusStoreGateway.
    """

    def __init__(self, gateway):
        self.gateway = gateway

    def run(self, snapshot: ConfigSnapshot, now: datetime) -> CleanupReport:
        """
        Run all enabled rules once.

        Store failures propagate and abort the cycle. Per-file filesystem
        errors are logged and skipped.
        """
        started = time.monotonic()
        report = CleanupReport(started_at=now)

        cleanup = snapshot.cleanup

        if cleanup.timeout.enabled:
            timeout_ms = rule_to_milliseconds(cleanup.timeout)
            if timeout_ms > 0:
                report.timed_out = self.flag_timed_out(timeout_ms, now)

        if cleanup.status.enabled:
            status_max_age_ms = rule_to_milliseconds(cleanup.status)
            if status_max_age_ms > 0:
                report.statuses_deleted = self.gateway.delete_by_age(
                    status_max_age_ms, now=now
                )
                if report.statuses_deleted:
                    logger.info(
                        f"Deleted {report.statuses_deleted} status record(s) "
                        f"older than {cleanup.status.value} {cleanup.status.unit}"
                    )

        if cleanup.files.enabled:
            file_max_age_ms = rule_to_milliseconds(cleanup.files)
            if file_max_age_ms > 0:
                self.delete_expired_files(
                    snapshot.failed_location.path, file_max_age_ms, now, report
                )

        report.duration = time.monotonic() - started
        return report

    def flag_timed_out(self, timeout_ms: int, now: datetime) -> int:
        """
        Move processing records older than timeout_ms to timed-out.

        Returns:
            Number of records flagged
        """
        flagged: List[FileStatus] = []
        for record in self.gateway.list_all_statuses():
            if record.status != FileState.PROCESSING:
                continue
            if record.age_ms(now) > timeout_ms:
                flagged.append(transition(record, FileState.TIMED_OUT, now))

        if flagged:
            self.gateway.bulk_upsert(flagged)
            for record in flagged:
                logger.info(f"Flagged as timed-out: {record.name}")

        return len(flagged)

    def delete_expired_files(
        self,
        failed_path: str,
        max_age_ms: int,
        now: datetime,
        report: CleanupReport,
    ) -> None:
        """Delete files in the failed directory created more than max_age_ms ago."""
        if not failed_path:
            logger.error("Failed directory is not configured. Skipping file cleanup.")
            report.failed_dir_skipped = True
            return

        try:
            file_names = sorted(os.listdir(failed_path))
        except OSError as e:
            logger.error(f"Cannot read failed directory {failed_path}: {e}. Skipping file cleanup.")
            report.failed_dir_skipped = True
            return

        now_ms = to_epoch_ms(now)
        for file_name in file_names:
            file_path = os.path.join(failed_path, file_name)
            try:
                stat_result = os.stat(file_path)
                if stat.S_ISDIR(stat_result.st_mode):
                    continue
                created_ms = int(file_creation_time(stat_result) * 1000)
                if now_ms - created_ms > max_age_ms:
                    os.unlink(file_path)
                    report.files_deleted += 1
                    report.deleted_files.append(file_name)
                    logger.info(f"Deleted old file: {file_name}")
            except FileNotFoundError:
                # Removed by the upstream pipeline since the listing
                continue
            except OSError as e:
                report.file_errors += 1
                logger.error(f"Failed to clean up {file_path}: {e}")
