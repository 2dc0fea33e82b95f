"""
JSON settings document owned by the external settings collaborator.

The watcher only reads this file. It is re-read on every access so edits
take effect at the next cycle without a restart.

Document layout:
{
    "monitored_paths": {
        "import": {"id": "import", "name": "Import", "path": "/data/import"},
        "failed": {"id": "failed", "name": "Failed", "path": "/data/failed"}
    },
    "monitored_extensions": ["mov", "mxf"],
    "cleanup": {
        "status":  {"enabled": true, "value": "7", "unit": "days"},
        "files":   {"enabled": false, "value": "30", "unit": "days"},
        "timeout": {"enabled": true, "value": "24", "unit": "hours"}
    },
    "failure_remark": "File failed processing."
}

Every key is optional; missing keys take the defaults below.
"""

import json
from pathlib import Path
from typing import List, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..watcher.models import (
    CleanupSettings,
    ConfigSnapshot,
    MonitoredPath,
    MonitoredPaths,
    normalize_extensions,
)
from .errors import SettingsError


DEFAULT_FAILURE_REMARK = "File failed processing. See the failed directory for details."


def _default_paths() -> MonitoredPaths:
    return MonitoredPaths(
        import_path=MonitoredPath(id="import", name="Import"),
        failed=MonitoredPath(id="failed", name="Failed"),
    )


class SettingsDocument(BaseModel):
    """Validated contents of the settings file."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    monitored_paths: MonitoredPaths = Field(default_factory=_default_paths)
    monitored_extensions: List[str] = Field(default_factory=list)
    cleanup: CleanupSettings = Field(default_factory=CleanupSettings)
    failure_remark: str = DEFAULT_FAILURE_REMARK


class SettingsFile:
    """Read-only accessor for the settings document."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> SettingsDocument:
        """
        Read and validate the settings document.

        Returns:
            SettingsDocument (all defaults if the file does not exist)

        Raises:
            SettingsError: If the file cannot be read or is invalid
        """
        if not self.path.exists():
            return SettingsDocument()

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise SettingsError(f"Invalid JSON in settings file {self.path}: {e}") from e
        except OSError as e:
            raise SettingsError(f"Cannot read settings file {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise SettingsError(f"Settings file {self.path} must contain a JSON object")

        try:
            return SettingsDocument.model_validate(data)
        except ValidationError as e:
            raise SettingsError(f"Invalid settings in {self.path}: {e}") from e

    def snapshot(self) -> ConfigSnapshot:
        """
        Build one cycle's configuration from a single read of the file.

        Raises:
            SettingsError: If the file cannot be read or is invalid
        """
        document = self.load()
        return ConfigSnapshot(
            paths=document.monitored_paths,
            extensions=normalize_extensions(document.monitored_extensions),
            cleanup=document.cleanup,
            failure_remark=document.failure_remark,
        )

    def get_monitored_paths(self) -> MonitoredPaths:
        return self.load().monitored_paths

    def get_monitored_extensions(self) -> List[str]:
        return list(self.load().monitored_extensions)

    def get_cleanup_settings(self) -> CleanupSettings:
        return self.load().cleanup

    def get_failure_remark(self) -> str:
        return self.load().failure_remark
