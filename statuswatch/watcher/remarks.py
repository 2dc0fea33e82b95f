"""
Remark text for automatic transitions.

Remarks are free text, but may carry one embedded attribution tag of the form
``[user: <name>]`` written when a human intervened (for example a rename and
retry). Automatic transitions must carry that tag forward verbatim, so all
tag handling lives here.

The tag is a single flat token: the name ends at the first closing bracket
and nested brackets are not supported.
"""

import re
from typing import Optional

PROCESSED_REMARK = "File processed successfully."
RETRY_REMARK = "Retrying file."

# Remarks containing this marker were written by an automated retry upstream
AUTOMATED_MARKER = "Auto-"

_USER_TAG_PATTERN = re.compile(r"\[user: (.*?)\]")


def extract_user_tag(remarks: Optional[str]) -> Optional[str]:
    """
    Return the first ``[user: <name>]`` tag found in remarks, or None.

    The tag is returned in its canonical form, exactly as it must be
    re-embedded in later remarks.
    """
    if not remarks:
        return None
    match = _USER_TAG_PATTERN.search(remarks)
    if match is None:
        return None
    return f"[user: {match.group(1)}]"


def _with_tag(message: str, tag: Optional[str]) -> str:
    return f"{message} {tag or ''}".strip()


def processed_remarks(previous: Optional[str]) -> str:
    """Remarks for a processing → processed transition."""
    return _with_tag(PROCESSED_REMARK, extract_user_tag(previous))


def retry_remarks(previous: Optional[str]) -> str:
    """
    Remarks for a retry back into processing.

    Remarks written by an automated retry are left untouched.
    """
    if previous and AUTOMATED_MARKER in previous:
        return previous
    return _with_tag(RETRY_REMARK, extract_user_tag(previous))
