"""
State transition validation for file status records.

Lifecycle:
    processing → processed | failed | timed-out
    processed  → failed | processing (retry)
    failed     → processing (retry)
    timed-out  → failed | processing (retry)

transition() is the only code path that changes FileStatus.status. It never
mutates its input and never moves last_updated backwards.
"""

from datetime import datetime
from typing import Optional, Set, Tuple

from .errors import InvalidStateTransitionError
from .models import FileState, FileStatus


_TRANSITIONS: Set[Tuple[FileState, FileState]] = {
    # Disappearance, failure and timeout while processing
    (FileState.PROCESSING, FileState.PROCESSED),
    (FileState.PROCESSING, FileState.FAILED),
    (FileState.PROCESSING, FileState.TIMED_OUT),

    # Late failure of a file already considered processed or stuck
    (FileState.PROCESSED, FileState.FAILED),
    (FileState.TIMED_OUT, FileState.FAILED),

    # Retry: the file reappeared in the import directory
    (FileState.PROCESSED, FileState.PROCESSING),
    (FileState.FAILED, FileState.PROCESSING),
    (FileState.TIMED_OUT, FileState.PROCESSING),
}


def can_transition(from_state: FileState, to_state: FileState) -> bool:
    """
    Check if a file status transition is legal.

    Args:
        from_state: Current status
        to_state: Target status

    Returns:
        True if the transition is allowed, False otherwise
    """
    return (from_state, to_state) in _TRANSITIONS


def transition(
    record: FileStatus,
    to_state: FileState,
    now: datetime,
    remarks: Optional[str] = None,
    source: Optional[str] = None,
) -> FileStatus:
    """
    Return a copy of record moved to to_state.

    Args:
        record: Current status record (left unchanged)
        to_state: Target status
        now: Cycle timestamp; becomes last_updated unless the record is newer
        remarks: Replacement remarks (None keeps the current remarks)
        source: Replacement directory label (None keeps the current source)

    Raises:
        InvalidStateTransitionError: If the transition is not allowed
    """
    if not can_transition(record.status, to_state):
        raise InvalidStateTransitionError(
            record.name, record.status.value, to_state.value
        )

    update = {
        "status": to_state,
        "last_updated": max(now, record.last_updated),
    }
    if remarks is not None:
        update["remarks"] = remarks
    if source is not None:
        update["source"] = source

    return record.model_copy(update=update)
