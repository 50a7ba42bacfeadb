"""Shape flat query results into per-post groups for display and export."""
from __future__ import annotations

from typing import Dict, Iterable, List, Sequence, TypeVar, Union

from .models import DuplicateKeyReport, MetaRecord

Entry = TypeVar("Entry", MetaRecord, DuplicateKeyReport)


def group_by_owner(entries: Iterable[Entry]) -> Dict[int, List[Entry]]:
    """Map post id to its entries, keeping the input order both across and within posts."""
    groups: Dict[int, List[Entry]] = {}
    for entry in entries:
        groups.setdefault(entry.owner_id, []).append(entry)
    return groups


def flatten_groups(report: Union[Dict[int, List[Entry]], Sequence[Entry]]) -> List[Entry]:
    if isinstance(report, dict):
        return [entry for members in report.values() for entry in members]
    return list(report)


def summarize(report: Sequence[DuplicateKeyReport]) -> Dict[str, int]:
    """Counts used in the warning line: groups, posts and rows involved."""
    return {
        "duplicate_groups": len(report),
        "posts": len({entry.owner_id for entry in report}),
        "rows": sum(entry.duplicate_count for entry in report),
    }
