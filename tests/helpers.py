"""
Test helpers: a controllable clock and a settings document writer.
"""

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Iterable, Optional

FAILURE_REMARK = "Rejected by pipeline"
START = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


def write_settings(
    path: Path,
    import_dir: Optional[Path],
    failed_dir: Optional[Path],
    extensions: Iterable[str] = (),
    cleanup: Optional[dict] = None,
    failure_remark: str = FAILURE_REMARK,
) -> Path:
    """Write a settings document the way the settings owner would."""
    document = {
        "monitored_paths": {
            "import": {"id": "import", "name": "Import", "path": str(import_dir or "")},
            "failed": {"id": "failed", "name": "Failed", "path": str(failed_dir or "")},
        },
        "monitored_extensions": list(extensions),
        "failure_remark": failure_remark,
    }
    if cleanup is not None:
        document["cleanup"] = cleanup
    path.write_text(json.dumps(document, indent=2))
    return path


def rule(enabled: bool = True, value="1", unit: str = "days") -> dict:
    """Cleanup rule document."""
    return {"enabled": enabled, "value": value, "unit": unit}
