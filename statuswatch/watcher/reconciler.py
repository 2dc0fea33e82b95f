"""
Reconciler: the file status state machine.

Given the tracked status records, the current listings of the import and
failed directories and the cycle's configuration snapshot, computes the next
status of every tracked file and the records for newly discovered files.

The reconciler is pure: it performs no I/O and never mutates its inputs.
The caller commits ReconcileResult.changes in one bulk write.
"""

import logging
import os
from datetime import datetime
from typing import AbstractSet, Dict, Iterable, Optional

from .models import (
    ConfigSnapshot,
    FileState,
    FileStatus,
    ReconcileResult,
)
from .remarks import processed_remarks, retry_remarks
from .state import transition

logger = logging.getLogger(__name__)

_RETRYABLE_STATES = frozenset({
    FileState.PROCESSED,
    FileState.FAILED,
    FileState.TIMED_OUT,
})


def file_extension(name: str) -> str:
    """Lowercased extension of a file name without the leading dot."""
    return os.path.splitext(name)[1].lower()[1:]


def is_monitored(name: str, extensions: AbstractSet[str]) -> bool:
    """
    Check whether a file name passes the extension filter.

    An empty extension set monitors everything.
    """
    return not extensions or file_extension(name) in extensions


class Reconciler:
    """
    Computes status transitions from directory state.

    Rules for a tracked, monitored record (first match wins):
    1. processing and absent from both directories → processed
    2. present in failed and not already failed → failed
    3. present in import and processed/failed/timed-out → processing (retry)
    4. otherwise unchanged

    A failed record whose file is listed in both directories is retried by
    rule 3; on the next cycle rule 2 fails it again.
    """

    def reconcile(
        self,
        statuses: Iterable[FileStatus],
        import_names: AbstractSet[str],
        failed_names: AbstractSet[str],
        snapshot: ConfigSnapshot,
        now: datetime,
    ) -> ReconcileResult:
        """
        Compute all changes for one poll cycle.

        Args:
            statuses: All currently tracked records
            import_names: Names currently in the import directory
            failed_names: Names currently in the failed directory
            snapshot: Configuration for this cycle
            now: Cycle-start timestamp applied to every change

        Returns:
            ReconcileResult with the records to upsert and per-kind counts
        """
        result = ReconcileResult()
        known: Dict[str, FileStatus] = {record.name: record for record in statuses}

        for name, record in known.items():
            if not is_monitored(name, snapshot.extensions):
                continue

            updated = self._next_status(
                record, name in import_names, name in failed_names, snapshot, now
            )
            if updated is None:
                continue

            result.changes.append(updated)
            if updated.status == FileState.PROCESSED:
                result.processed += 1
            elif updated.status == FileState.FAILED:
                result.failed += 1
            else:
                result.retried += 1
            logger.debug(
                f"{name}: {record.status.value} -> {updated.status.value}"
            )

        # Import precedence: a new name listed in both directories is processing
        for name in sorted(set(import_names) | set(failed_names)):
            if name in known or not is_monitored(name, snapshot.extensions):
                continue

            if name in import_names:
                record = FileStatus(
                    name=name,
                    status=FileState.PROCESSING,
                    source=snapshot.import_location.name,
                    last_updated=now,
                    remarks="",
                )
            else:
                record = FileStatus(
                    name=name,
                    status=FileState.FAILED,
                    source=snapshot.failed_location.name,
                    last_updated=now,
                    remarks=snapshot.failure_remark,
                )
            result.changes.append(record)
            result.created += 1
            logger.debug(f"{name}: new record ({record.status.value})")

        return result

    def _next_status(
        self,
        record: FileStatus,
        in_import: bool,
        in_failed: bool,
        snapshot: ConfigSnapshot,
        now: datetime,
    ) -> Optional[FileStatus]:
        """Apply the transition rules to one record; None means no change."""
        if record.status == FileState.PROCESSING and not in_import and not in_failed:
            return transition(
                record,
                FileState.PROCESSED,
                now,
                remarks=processed_remarks(record.remarks),
            )

        if in_failed and record.status != FileState.FAILED:
            return transition(
                record,
                FileState.FAILED,
                now,
                remarks=snapshot.failure_remark,
                source=snapshot.failed_location.name,
            )

        if in_import and record.status in _RETRYABLE_STATES:
            return transition(
                record,
                FileState.PROCESSING,
                now,
                remarks=retry_remarks(record.remarks),
                source=snapshot.import_location.name,
            )

        return None
