"""
Persistence layer for statuswatch.

SQLite-backed status records, a read-only JSON settings document, and the
gateway that combines them for the watcher.
"""

from .errors import PersistenceError, LoadError, SaveError, SchemaError, SettingsError
from .manager import PersistenceManager
from .settings_file import SettingsDocument, SettingsFile
from .gateway import StatusStoreGateway, StoreGateway

__all__ = [
    "PersistenceError",
    "LoadError",
    "SaveError",
    "SchemaError",
    "SettingsError",
    "PersistenceManager",
    "SettingsDocument",
    "SettingsFile",
    "StatusStoreGateway",
    "StoreGateway",
]
