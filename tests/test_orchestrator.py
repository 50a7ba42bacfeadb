import csv

import pytest

from metadupe.dedupe import CONFIRM_PROMPT, DedupeOptions, run_dedupe
from metadupe.errors import StoreWriteError, UserDeclined
from metadupe.models import ExportMode, ExportRequest, MatchMode
from metadupe.reporting import Severity

from .conftest import all_rows, insert_rows


class Confirm:
    def __init__(self, answer: bool) -> None:
        self.answer = answer
        self.prompts = []

    def __call__(self, prompt: str) -> bool:
        self.prompts.append(prompt)
        return self.answer


def _csv_rows(path):
    with open(path, newline="", encoding="utf-8") as fh:
        return list(csv.reader(fh))


def test_no_duplicates_stops_early(store, reporter, tmp_path):
    insert_rows(store.con, [(1, 1, "a", "x"), (2, 2, "a", "x")])
    confirm = Confirm(True)
    export_dir = tmp_path / "export"

    outcome = run_dedupe(
        store,
        DedupeOptions(export=ExportRequest(ExportMode.KEYS)),
        export_dir,
        reporter=reporter,
        confirm=confirm,
    )

    assert outcome.duplicates == []
    assert outcome.deleted is None
    assert outcome.export_path is None
    assert reporter.of(Severity.SUCCESS) == ["No duplicate meta found."]
    assert confirm.prompts == []
    assert not export_dir.exists()


def test_dry_run_changes_nothing_and_exports_current_state(sample_store, reporter, tmp_path):
    before = all_rows(sample_store)
    confirm = Confirm(True)

    outcome = run_dedupe(
        sample_store,
        DedupeOptions(dry_run=True, export=ExportRequest(ExportMode.KEYS)),
        tmp_path / "export",
        reporter=reporter,
        confirm=confirm,
    )

    assert all_rows(sample_store) == before
    assert confirm.prompts == []
    assert outcome.deleted is None
    assert outcome.would_delete == 2
    rows = _csv_rows(outcome.export_path)
    assert rows[1:] == [["1", "color", "3"], ["2", "tag", "2"]]


def test_warning_summarizes_duplicates(sample_store, reporter, tmp_path):
    run_dedupe(sample_store, DedupeOptions(dry_run=True), tmp_path, reporter=reporter)
    assert reporter.of(Severity.WARNING) == ["Found 2 duplicate meta keys across 2 posts (5 rows)."]


def test_scope_message_for_single_post(sample_store, reporter, tmp_path):
    run_dedupe(sample_store, DedupeOptions(owner_id=2, dry_run=True), tmp_path, reporter=reporter)
    assert "Checking the duplicate meta fields for the post: #2" in reporter.of(Severity.LOG)


def test_confirmed_delete_then_keys_export_shows_remaining(sample_store, reporter, tmp_path):
    confirm = Confirm(True)
    outcome = run_dedupe(
        sample_store,
        DedupeOptions(export=ExportRequest(ExportMode.KEYS)),
        tmp_path / "export",
        reporter=reporter,
        confirm=confirm,
    )

    assert confirm.prompts == [CONFIRM_PROMPT]
    assert outcome.deleted == 2
    assert "Duplicate meta fields have been deleted (2 entries affected)." in reporter.of(Severity.SUCCESS)
    assert _csv_rows(outcome.export_path)[1:] == [["1", "color", "2"]]


def test_key_match_delete_leaves_no_duplicates(sample_store, reporter, tmp_path):
    outcome = run_dedupe(
        sample_store,
        DedupeOptions(match=MatchMode.KEY, no_confirm=True, export=ExportRequest(ExportMode.VALUES)),
        tmp_path,
        reporter=reporter,
    )
    assert outcome.deleted == 3
    assert _csv_rows(outcome.export_path) == [["record_id", "owner_id", "key", "value"]]


def test_declined_confirmation_aborts_before_delete(sample_store, reporter, tmp_path):
    before = all_rows(sample_store)
    export_dir = tmp_path / "export"
    with pytest.raises(UserDeclined):
        run_dedupe(
            sample_store,
            DedupeOptions(export=ExportRequest(ExportMode.KEYS)),
            export_dir,
            reporter=reporter,
            confirm=Confirm(False),
        )
    assert all_rows(sample_store) == before
    assert not export_dir.exists()


def test_missing_confirm_callback_counts_as_decline(sample_store, reporter, tmp_path):
    with pytest.raises(UserDeclined):
        run_dedupe(sample_store, DedupeOptions(), tmp_path, reporter=reporter)


def test_no_confirm_skips_prompt(sample_store, reporter, tmp_path):
    confirm = Confirm(False)
    outcome = run_dedupe(sample_store, DedupeOptions(no_confirm=True), tmp_path, reporter=reporter, confirm=confirm)
    assert confirm.prompts == []
    assert outcome.deleted == 2


def test_scoped_run_only_touches_one_post(sample_store, reporter, tmp_path):
    others_before = [r for r in all_rows(sample_store) if r[1] != 2]
    outcome = run_dedupe(sample_store, DedupeOptions(owner_id=2, no_confirm=True), tmp_path, reporter=reporter)
    assert outcome.deleted == 1
    assert [r for r in all_rows(sample_store) if r[1] != 2] == others_before


def test_different_values_export(store, reporter, tmp_path):
    insert_rows(
        store.con,
        [
            (1, 5, "status", "draft"),
            (2, 5, "status", "published"),
            (3, 6, "status", "draft"),
        ],
    )
    outcome = run_dedupe(
        store,
        DedupeOptions(dry_run=True, export=ExportRequest(ExportMode.DIFFERENT_VALUES, "status")),
        tmp_path,
        reporter=reporter,
    )
    assert outcome.export_path.name.startswith("duplicate_meta_different_values_status__")
    assert _csv_rows(outcome.export_path)[1:] == [
        ["1", "5", "status", "draft"],
        ["2", "5", "status", "published"],
    ]


def test_failed_delete_skips_export(sample_store, reporter, tmp_path):
    sample_store.con.executescript(
        """
        CREATE TRIGGER lock_meta BEFORE DELETE ON wp_postmeta
        BEGIN
            SELECT RAISE(ABORT, 'database is read only');
        END;
        """
    )
    export_dir = tmp_path / "export"
    with pytest.raises(StoreWriteError, match="database is read only"):
        run_dedupe(
            sample_store,
            DedupeOptions(no_confirm=True, export=ExportRequest(ExportMode.KEYS)),
            export_dir,
            reporter=reporter,
        )
    assert not export_dir.exists()


def test_blob_duplicates_exported_as_text(store, reporter, tmp_path):
    insert_rows(store.con, [(1, 1, "k", b"\x01ab"), (2, 1, "k", b"\x01ab")])
    outcome = run_dedupe(
        store,
        DedupeOptions(dry_run=True, export=ExportRequest(ExportMode.VALUES)),
        tmp_path,
        reporter=reporter,
    )
    assert outcome.would_delete == 1
    assert _csv_rows(outcome.export_path)[1:] == [
        ["1", "1", "k", "\x01ab"],
        ["2", "1", "k", "\x01ab"],
    ]
