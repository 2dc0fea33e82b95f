"""
Tests for the reconciliation state machine.

The reconciler is pure, so these tests feed it records and name sets
directly; see test_engine.py for the same rules against real directories.
"""

from datetime import timedelta

import pytest

from helpers import FAILURE_REMARK, START
from statuswatch.watcher.models import (
    ConfigSnapshot,
    FileState,
    FileStatus,
    MonitoredPath,
    MonitoredPaths,
)
from statuswatch.watcher.reconciler import Reconciler, file_extension, is_monitored

NOW = START + timedelta(minutes=10)


def make_snapshot(extensions=("mov",)) -> ConfigSnapshot:
    return ConfigSnapshot(
        paths=MonitoredPaths(
            import_path=MonitoredPath(id="import", name="Import", path="/in"),
            failed=MonitoredPath(id="failed", name="Failed", path="/failed"),
        ),
        extensions=frozenset(extensions),
        failure_remark=FAILURE_REMARK,
    )


def make_record(name="a.mov", status=FileState.PROCESSING, remarks="", source="Import"):
    return FileStatus(
        name=name, status=status, source=source, last_updated=START, remarks=remarks
    )


def reconcile(statuses, import_names=(), failed_names=(), extensions=("mov",)):
    return Reconciler().reconcile(
        statuses, set(import_names), set(failed_names), make_snapshot(extensions), NOW
    )


class TestExtensionFilter:
    def test_file_extension(self):
        assert file_extension("clip.MOV") == "mov"
        assert file_extension("archive.tar.gz") == "gz"
        assert file_extension("README") == ""

    def test_empty_set_monitors_everything(self):
        assert is_monitored("anything.xyz", frozenset())
        assert is_monitored("README", frozenset())

    def test_matches_case_insensitively(self):
        assert is_monitored("clip.MOV", frozenset({"mov"}))
        assert not is_monitored("clip.mxf", frozenset({"mov"}))


class TestNewFiles:
    def test_file_in_import_becomes_processing(self):
        result = reconcile([], import_names=["a.mov"])

        assert result.created == 1
        [record] = result.changes
        assert record.name == "a.mov"
        assert record.status == FileState.PROCESSING
        assert record.source == "Import"
        assert record.remarks == ""
        assert record.last_updated == NOW

    def test_file_only_in_failed_becomes_failed(self):
        result = reconcile([], failed_names=["b.mov"])

        [record] = result.changes
        assert record.status == FileState.FAILED
        assert record.source == "Failed"
        assert record.remarks == FAILURE_REMARK

    def test_import_wins_for_new_file_in_both(self):
        result = reconcile([], import_names=["a.mov"], failed_names=["a.mov"])

        [record] = result.changes
        assert record.status == FileState.PROCESSING

    def test_unmonitored_extension_is_ignored(self):
        result = reconcile([], import_names=["notes.txt"], failed_names=["log.txt"])

        assert result.changes == []

    def test_new_records_get_distinct_ids(self):
        result = reconcile([], import_names=["a.mov", "b.mov"])

        assert len({record.id for record in result.changes}) == 2


class TestTransitions:
    def test_processing_file_gone_becomes_processed(self):
        result = reconcile([make_record()])

        [record] = result.changes
        assert record.status == FileState.PROCESSED
        assert record.remarks == "File processed successfully."
        assert result.processed == 1

    def test_processed_keeps_user_tag(self):
        result = reconcile([make_record(remarks="Retrying file. [user: alice]")])

        [record] = result.changes
        assert record.remarks == "File processed successfully. [user: alice]"

    def test_processing_still_in_import_is_unchanged(self):
        result = reconcile([make_record()], import_names=["a.mov"])

        assert result.changes == []

    @pytest.mark.parametrize("state", [
        FileState.PROCESSING,
        FileState.PROCESSED,
        FileState.TIMED_OUT,
    ])
    def test_file_in_failed_becomes_failed(self, state):
        result = reconcile([make_record(status=state)], failed_names=["a.mov"])

        [record] = result.changes
        assert record.status == FileState.FAILED
        assert record.remarks == FAILURE_REMARK
        assert record.source == "Failed"
        assert result.failed == 1

    def test_failed_record_still_in_failed_is_unchanged(self):
        result = reconcile([make_record(status=FileState.FAILED)], failed_names=["a.mov"])

        assert result.changes == []

    @pytest.mark.parametrize("state", [
        FileState.PROCESSED,
        FileState.FAILED,
        FileState.TIMED_OUT,
    ])
    def test_reappearing_in_import_retries(self, state):
        result = reconcile(
            [make_record(status=state, remarks="Renamed [user: bob]", source="Failed")],
            import_names=["a.mov"],
        )

        [record] = result.changes
        assert record.status == FileState.PROCESSING
        assert record.remarks == "Retrying file. [user: bob]"
        assert record.source == "Import"
        assert result.retried == 1

    def test_retry_keeps_automated_remarks(self):
        remarks = "Auto-retry after transcode error"
        result = reconcile(
            [make_record(status=FileState.FAILED, remarks=remarks)],
            import_names=["a.mov"],
        )

        assert result.changes[0].remarks == remarks

    def test_processed_record_in_both_directories_fails(self):
        result = reconcile(
            [make_record(status=FileState.PROCESSED)],
            import_names=["a.mov"],
            failed_names=["a.mov"],
        )

        assert result.changes[0].status == FileState.FAILED

    def test_failed_record_in_both_directories_is_retried(self):
        result = reconcile(
            [make_record(status=FileState.FAILED, remarks="Renamed [user: bob]", source="Failed")],
            import_names=["a.mov"],
            failed_names=["a.mov"],
        )

        [record] = result.changes
        assert record.status == FileState.PROCESSING
        assert record.source == "Import"
        assert record.remarks == "Retrying file. [user: bob]"
        assert result.retried == 1

    @pytest.mark.parametrize("state", [
        FileState.PROCESSED,
        FileState.FAILED,
        FileState.TIMED_OUT,
    ])
    def test_terminal_records_absent_everywhere_are_unchanged(self, state):
        assert reconcile([make_record(status=state)]).changes == []

    def test_records_with_unmonitored_extension_are_left_alone(self):
        """Narrowing the extension list freezes records that no longer match."""
        result = reconcile([make_record(name="a.mxf")])

        assert result.changes == []

    def test_transition_keeps_record_id(self):
        original = make_record()

        result = reconcile([original])

        assert result.changes[0].id == original.id

    def test_inputs_are_not_mutated(self):
        original = make_record()

        reconcile([original])

        assert original.status == FileState.PROCESSING
        assert original.last_updated == START


class TestIdempotence:
    def test_second_pass_over_applied_changes_is_empty(self):
        statuses = [
            make_record("gone.mov"),
            make_record("stuck.mov", status=FileState.TIMED_OUT),
            make_record("bad.mov", status=FileState.PROCESSED),
        ]
        import_names = {"new.mov", "stuck.mov"}
        failed_names = {"bad.mov", "late.mov"}

        first = reconcile(statuses, import_names, failed_names)
        assert first.created == 2
        assert first.updated == 3

        applied = {record.name: record for record in statuses}
        applied.update({record.name: record for record in first.changes})

        second = reconcile(list(applied.values()), import_names, failed_names)
        assert second.changes == []

    def test_name_in_both_directories_alternates(self):
        """Rule 2 fails a processing record; rule 3 retries a failed one."""
        states = []
        statuses = []
        for _ in range(4):
            result = reconcile(statuses, ["a.mov"], ["a.mov"])
            statuses = result.changes or statuses
            states.append(statuses[0].status)

        assert states == [
            FileState.PROCESSING,
            FileState.FAILED,
            FileState.PROCESSING,
            FileState.FAILED,
        ]
