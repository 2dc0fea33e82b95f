"""
Tests for the SQLite status store and the JSON settings file.
"""

import json
import sqlite3
from datetime import timedelta

import pytest

from helpers import START, rule, write_settings
from statuswatch.persistence import (
    PersistenceManager,
    LoadError,
    SaveError,
    SchemaError,
    SettingsError,
    SettingsFile,
)
from statuswatch.persistence.settings_file import DEFAULT_FAILURE_REMARK
from statuswatch.watcher.models import FileState, FileStatus

DAY_MS = 24 * 60 * 60 * 1000


def make_record(name="a.mov", status=FileState.PROCESSING, at=START, remarks="", **kwargs):
    return FileStatus(
        name=name, status=status, source="Import", last_updated=at, remarks=remarks, **kwargs
    )


class TestPersistenceManager:
    def test_empty_store(self, persistence):
        assert persistence.list_all_statuses() == []
        assert persistence.get_status("a.mov") is None

    def test_upsert_and_reload(self, persistence):
        record = make_record(remarks="Retrying file. [user: alice]")

        persistence.bulk_upsert([record])

        loaded = persistence.get_status("a.mov")
        assert loaded == record

    def test_schema_survives_reopen(self, tmp_path):
        db_path = str(tmp_path / "reopen.db")
        PersistenceManager(db_path).bulk_upsert([make_record()])

        assert PersistenceManager(db_path).get_status("a.mov") is not None

    def test_newer_schema_is_rejected(self, tmp_path):
        db_path = str(tmp_path / "future.db")
        PersistenceManager(db_path)
        conn = sqlite3.connect(db_path)
        conn.execute("INSERT INTO schema_version (version, applied_at) VALUES (99, 'later')")
        conn.commit()
        conn.close()

        with pytest.raises(SchemaError):
            PersistenceManager(db_path)

    def test_database_failures_are_wrapped(self, persistence, tmp_path):
        unopenable = tmp_path / "not-a-db"
        unopenable.mkdir()
        persistence.db_path = str(unopenable)

        with pytest.raises(LoadError):
            persistence.list_all_statuses()
        with pytest.raises(SaveError):
            persistence.bulk_upsert([make_record()])
        with pytest.raises(SaveError):
            persistence.delete_by_age(DAY_MS, now=START)

    def test_empty_upsert_is_a_no_op(self, persistence):
        persistence.bulk_upsert([])

        assert persistence.list_all_statuses() == []

    def test_upsert_matches_by_name_and_keeps_stored_id(self, persistence):
        original = make_record()
        persistence.bulk_upsert([original])

        replacement = make_record(
            status=FileState.PROCESSED, at=START + timedelta(minutes=1)
        )
        persistence.bulk_upsert([replacement])

        [stored] = persistence.list_all_statuses()
        assert stored.id == original.id
        assert stored.status == FileState.PROCESSED

    def test_older_write_does_not_overwrite_newer_row(self, persistence):
        """A cycle that started earlier cannot undo a later cycle's outcome."""
        persistence.bulk_upsert([make_record(status=FileState.TIMED_OUT, at=START)])

        persistence.bulk_upsert([
            make_record(status=FileState.PROCESSED, at=START - timedelta(seconds=1))
        ])

        assert persistence.get_status("a.mov").status == FileState.TIMED_OUT

    def test_equal_timestamp_write_wins(self, persistence):
        persistence.bulk_upsert([make_record(status=FileState.PROCESSING)])

        persistence.bulk_upsert([make_record(status=FileState.FAILED)])

        assert persistence.get_status("a.mov").status == FileState.FAILED

    def test_list_statuses_filter_and_order(self, persistence):
        persistence.bulk_upsert([
            make_record("old.mov", FileState.FAILED, at=START - timedelta(hours=2)),
            make_record("new.mov", FileState.FAILED, at=START),
            make_record("other.mov", FileState.PROCESSED, at=START),
        ])

        failed = persistence.list_statuses(FileState.FAILED)

        assert [record.name for record in failed] == ["new.mov", "old.mov"]
        assert len(persistence.list_statuses()) == 3

    def test_count_by_status_includes_every_state(self, persistence):
        persistence.bulk_upsert([
            make_record("a.mov", FileState.FAILED),
            make_record("b.mov", FileState.FAILED),
        ])

        assert persistence.count_by_status() == {
            "processing": 0,
            "failed": 2,
            "processed": 0,
            "timed-out": 0,
        }

    def test_delete_by_age(self, persistence):
        persistence.bulk_upsert([
            make_record("old.mov", at=START - timedelta(days=8)),
            make_record("edge.mov", at=START - timedelta(days=7)),
            make_record("new.mov", at=START - timedelta(days=6)),
        ])

        deleted = persistence.delete_by_age(7 * DAY_MS, now=START)

        assert deleted == 1
        names = [record.name for record in persistence.list_all_statuses()]
        assert names == ["edge.mov", "new.mov"]


class TestSettingsFile:
    def test_missing_file_gives_defaults(self, tmp_path):
        settings = SettingsFile(tmp_path / "absent.json")

        paths = settings.get_monitored_paths()
        assert not paths.import_path.is_configured
        assert not paths.failed.is_configured
        assert paths.import_path.name == "Import"
        assert settings.get_monitored_extensions() == []
        assert settings.get_failure_remark() == DEFAULT_FAILURE_REMARK
        cleanup = settings.get_cleanup_settings()
        assert not (cleanup.status.enabled or cleanup.files.enabled or cleanup.timeout.enabled)

    def test_reads_document(self, tmp_path, import_dir, failed_dir):
        path = write_settings(
            tmp_path / "settings.json",
            import_dir,
            failed_dir,
            extensions=["mov", ".MXF"],
            cleanup={"timeout": rule(value=24, unit="hours")},
            failure_remark="Nope",
        )
        settings = SettingsFile(path)

        assert settings.get_monitored_paths().failed.path == str(failed_dir)
        assert settings.get_monitored_extensions() == ["mov", ".MXF"]
        assert settings.get_failure_remark() == "Nope"
        timeout = settings.get_cleanup_settings().timeout
        assert timeout.enabled
        assert timeout.value == "24"
        assert timeout.unit == "hours"

    def test_edits_are_picked_up_without_reload(self, tmp_path, import_dir, failed_dir):
        path = write_settings(tmp_path / "settings.json", import_dir, failed_dir)
        settings = SettingsFile(path)
        assert settings.get_monitored_extensions() == []

        write_settings(path, import_dir, failed_dir, extensions=["wav"])

        assert settings.get_monitored_extensions() == ["wav"]

    def test_unknown_keys_are_ignored(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"theme": "dark", "monitored_extensions": ["mov"]}))

        assert SettingsFile(path).get_monitored_extensions() == ["mov"]

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text("{not json")

        with pytest.raises(SettingsError, match="Invalid JSON"):
            SettingsFile(path).load()

    def test_non_object_document(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text("[]")

        with pytest.raises(SettingsError, match="JSON object"):
            SettingsFile(path).load()

    def test_invalid_cleanup_unit(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"cleanup": {"status": rule(unit="weeks")}}))

        with pytest.raises(SettingsError, match="Invalid settings"):
            SettingsFile(path).load()

    def test_boolean_rule_value_is_rejected(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"cleanup": {"files": rule(value=True)}}))

        with pytest.raises(SettingsError):
            SettingsFile(path).load()

    def test_snapshot_comes_from_one_read(self, tmp_path, import_dir, failed_dir, monkeypatch):
        path = write_settings(
            tmp_path / "settings.json",
            import_dir,
            failed_dir,
            extensions=[" .MOV", "mxf", ""],
            failure_remark="Nope",
        )
        settings = SettingsFile(path)
        reads = []
        real_load = settings.load

        def counting_load():
            reads.append(1)
            return real_load()

        monkeypatch.setattr(settings, "load", counting_load)

        snapshot = settings.snapshot()

        assert len(reads) == 1
        assert snapshot.import_location.path == str(import_dir)
        assert snapshot.extensions == frozenset({"mov", "mxf"})
        assert snapshot.failure_remark == "Nope"
