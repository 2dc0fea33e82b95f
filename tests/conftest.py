"""
Shared fixtures for the statuswatch test suite.

Tests use real temporary directories, a real SQLite file and a fixed,
manually advanced clock.
"""

from pathlib import Path

import pytest

from helpers import FixedClock, write_settings
from statuswatch.persistence import PersistenceManager, SettingsFile, StoreGateway
from statuswatch.watcher.engine import WatcherEngine


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def import_dir(tmp_path: Path) -> Path:
    path = tmp_path / "import"
    path.mkdir()
    return path


@pytest.fixture
def failed_dir(tmp_path: Path) -> Path:
    path = tmp_path / "failed"
    path.mkdir()
    return path


@pytest.fixture
def settings_path(tmp_path: Path, import_dir: Path, failed_dir: Path) -> Path:
    return write_settings(tmp_path / "settings.json", import_dir, failed_dir, extensions=["mov"])


@pytest.fixture
def persistence(tmp_path: Path) -> PersistenceManager:
    return PersistenceManager(str(tmp_path / "statuswatch.db"))


@pytest.fixture
def gateway(persistence: PersistenceManager, settings_path: Path) -> StoreGateway:
    return StoreGateway(persistence, SettingsFile(settings_path))


@pytest.fixture
def engine(gateway: StoreGateway, clock: FixedClock) -> WatcherEngine:
    return WatcherEngine(gateway, clock=clock)
