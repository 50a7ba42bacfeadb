# metadupe/dedupe.py
"""
Duplicate post meta cleanup.

A duplicate group is every meta row sharing one (post_id, meta_key). The row
with the lowest meta_id is canonical and is never deleted. Which of the other
rows are removed depends on the match mode:

- value: only rows whose meta_value equals an older row's value (true copies)
- key:   every row except the canonical one, whatever its value
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

from .db import MetaStore
from .errors import UserDeclined
from .export import export_report
from .grouping import group_by_owner, summarize
from .models import DeletionResult, DuplicateKeyReport, ExportMode, ExportRequest, MatchMode
from .queries import (
    count_redundant_rows,
    delete_redundant_rows_sql,
    find_conflicting_values,
    find_duplicate_key_counts,
    find_duplicate_values,
)
from .reporting import Reporter, Severity

ConfirmCallback = Callable[[str], bool]

CONFIRM_PROMPT = "Are you sure you want to delete the duplicate meta fields?"


def delete_duplicates(
    store: MetaStore,
    owner_id: Optional[int] = None,
    match: MatchMode = MatchMode.VALUE,
) -> DeletionResult:
    """Delete redundant rows in one statement and return how many were removed.

    Raises :class:`~metadupe.errors.StoreWriteError` with SQLite's own message
    if the statement fails; nothing is deleted in that case.
    """
    sql, params = delete_redundant_rows_sql(store.table, owner_id, match)
    return DeletionResult(affected_count=store.execute_statement(sql, params))


@dataclass
class DedupeOptions:
    owner_id: int = 0
    dry_run: bool = False
    export: ExportRequest = field(default_factory=ExportRequest)
    match: MatchMode = MatchMode.VALUE
    no_confirm: bool = False
    report_limit: int = 20


@dataclass
class DedupeOutcome:
    duplicates: List[DuplicateKeyReport] = field(default_factory=list)
    would_delete: int = 0
    deleted: Optional[int] = None
    export_path: Optional[Path] = None


def _log_preview(reporter: Reporter, duplicates: List[DuplicateKeyReport], limit: int) -> None:
    if limit <= 0:
        return
    groups = group_by_owner(duplicates)
    shown = 0
    for owner_id, entries in groups.items():
        if shown >= limit:
            break
        reporter.report(Severity.LOG, f"  Post #{owner_id}:")
        for entry in entries:
            reporter.report(Severity.LOG, f"      - {entry.key} × {entry.duplicate_count}")
        shown += 1
    remaining = len(groups) - shown
    if remaining > 0:
        reporter.report(Severity.LOG, f"  ... {remaining} more posts")


def _export(
    store: MetaStore,
    options: DedupeOptions,
    export_dir: Path,
    reporter: Reporter,
) -> Path:
    request = options.export
    if request.mode is ExportMode.KEYS:
        report = group_by_owner(find_duplicate_key_counts(store, options.owner_id))
        path = export_report(report, request, export_dir)
        message = f"All the duplicate meta keys have been written to {path}"
    elif request.mode is ExportMode.VALUES:
        report = group_by_owner(find_duplicate_values(store, options.owner_id))
        path = export_report(report, request, export_dir)
        message = f"All the duplicate meta values have been written to {path}"
    else:
        records = find_conflicting_values(store, request.meta_key or "")
        path = export_report(records, request, export_dir)
        message = f"All the different values for the meta {request.meta_key} have been written to {path}"
    reporter.report(Severity.SUCCESS, message)
    return path


def run_dedupe(
    store: MetaStore,
    options: DedupeOptions,
    export_dir: Path,
    reporter: Optional[Reporter] = None,
    confirm: Optional[ConfirmCallback] = None,
) -> DedupeOutcome:
    """Find duplicate meta, optionally delete it, then optionally export a report.

    Order of work: scope, key report, stop if clean, confirm and delete (unless
    dry run), export. A declined confirmation raises
    :class:`~metadupe.errors.UserDeclined` before the delete statement is sent.
    Exports after a real delete describe what is left; in a dry run they
    describe the current state.
    """
    reporter = reporter or Reporter()
    outcome = DedupeOutcome()

    reporter.report(Severity.LOG, "")
    reporter.report(Severity.LOG, "------ DELETING DUPLICATE POST META ------")
    reporter.report(Severity.LOG, "")

    if options.owner_id:
        reporter.report(Severity.LOG, f"Checking the duplicate meta fields for the post: #{options.owner_id}")
    else:
        reporter.report(Severity.LOG, "Checking ALL posts for duplicate meta.")

    outcome.duplicates = find_duplicate_key_counts(store, options.owner_id)
    if not outcome.duplicates:
        reporter.report(Severity.SUCCESS, "No duplicate meta found.")
        return outcome

    stats = summarize(outcome.duplicates)
    reporter.report(
        Severity.WARNING,
        f"Found {stats['duplicate_groups']:,} duplicate meta keys across {stats['posts']:,} posts "
        f"({stats['rows']:,} rows).",
    )
    _log_preview(reporter, outcome.duplicates, options.report_limit)

    outcome.would_delete = count_redundant_rows(store, options.owner_id, options.match)
    reporter.report(
        Severity.LOG,
        f"{outcome.would_delete:,} rows are redundant (match={options.match.value}); "
        "the lowest meta_id of each group is kept.",
    )

    if options.dry_run:
        reporter.report(Severity.LOG, "Dry run requested; no meta fields were deleted.")
    else:
        if not options.no_confirm:
            if confirm is None or not confirm(CONFIRM_PROMPT):
                raise UserDeclined("Duplicate meta deletion cancelled.")
        reporter.report(Severity.LOG, "Deleting duplicate meta fields...")
        result = delete_duplicates(store, options.owner_id, options.match)
        outcome.deleted = result.affected_count
        reporter.report(
            Severity.SUCCESS,
            f"Duplicate meta fields have been deleted ({result.affected_count:,} entries affected).",
        )

    if options.export.writes_file:
        outcome.export_path = _export(store, options, export_dir, reporter)

    return outcome
