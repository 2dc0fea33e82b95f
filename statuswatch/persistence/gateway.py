"""
Status store gateway.

The only persistence surface the watcher touches: status records plus the
read-only domain configuration.
"""

from datetime import datetime
from typing import Iterable, List, Optional, Protocol

from ..watcher.models import CleanupSettings, ConfigSnapshot, FileStatus, MonitoredPaths
from .manager import PersistenceManager
from .settings_file import SettingsFile


class StatusStoreGateway(Protocol):
    def list_all_statuses(self) -> List[FileStatus]:
        """Return every tracked status record."""

    def bulk_upsert(self, statuses: Iterable[FileStatus]) -> None:
        """Atomically insert or update records, last-writer-wins per name."""

    def delete_by_age(self, max_age_ms: int, now: Optional[datetime] = None) -> int:
        """Delete records older than max_age_ms; return the count."""

    def get_monitored_paths(self) -> MonitoredPaths:
        """Return the import and failed directories."""

    def get_monitored_extensions(self) -> List[str]:
        """Return monitored extensions; empty means all."""

    def get_cleanup_settings(self) -> CleanupSettings:
        """Return the cleanup rule thresholds."""

    def get_failure_remark(self) -> str:
        """Return the remark written on failure transitions."""

    def get_config_snapshot(self) -> ConfigSnapshot:
        """Return all domain configuration read from one version of the settings."""


class StoreGateway:
    """StatusStoreGateway backed by SQLite records and a JSON settings file."""

    def __init__(self, persistence: PersistenceManager, settings: SettingsFile):
        self.persistence = persistence
        self.settings = settings

    def list_all_statuses(self) -> List[FileStatus]:
        return self.persistence.list_all_statuses()

    def bulk_upsert(self, statuses: Iterable[FileStatus]) -> None:
        self.persistence.bulk_upsert(statuses)

    def delete_by_age(self, max_age_ms: int, now: Optional[datetime] = None) -> int:
        return self.persistence.delete_by_age(max_age_ms, now=now)

    def get_monitored_paths(self) -> MonitoredPaths:
        return self.settings.get_monitored_paths()

    def get_monitored_extensions(self) -> List[str]:
        return self.settings.get_monitored_extensions()

    def get_cleanup_settings(self) -> CleanupSettings:
        return self.settings.get_cleanup_settings()

    def get_failure_remark(self) -> str:
        return self.settings.get_failure_remark()

    def get_config_snapshot(self) -> ConfigSnapshot:
        return self.settings.snapshot()
