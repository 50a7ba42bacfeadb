"""SQL for finding and removing duplicate meta rows.

A duplicate group is every row sharing one ``(post_id, meta_key)`` pair when
the pair occurs more than once. Filter values are always bound as parameters;
only the (validated) table name is placed in the SQL text.
"""
from __future__ import annotations

from typing import List, Optional, Tuple

from .db import MetaStore
from .models import DuplicateKeyReport, MatchMode, MetaRecord


def build_owner_filter_sql(owner_id: Optional[int], column: str) -> Tuple[str, List[int]]:
    """Build a WHERE fragment restricting rows to one post, or nothing for all posts."""

    if owner_id:
        return f" AND {column} = ? ", [int(owner_id)]
    return "", []


def _records(rows) -> List[MetaRecord]:
    return [
        MetaRecord(
            record_id=int(row["meta_id"]),
            owner_id=int(row["post_id"]),
            key=row["meta_key"],
            value=row["meta_value"],
        )
        for row in rows
    ]


def find_duplicate_key_counts(store: MetaStore, owner_id: Optional[int] = None) -> List[DuplicateKeyReport]:
    """Return one entry per ``(post_id, meta_key)`` that occurs more than once.

    Ordered by post id, then meta key, then count (descending).
    """
    filt_sql, filt_params = build_owner_filter_sql(owner_id, "post_id")
    rows = store.execute_query(
        f"""
        SELECT post_id, meta_key, COUNT(*) AS duplicate_count
        FROM {store.table}
        WHERE 1 = 1
        """
        + filt_sql
        + """
        GROUP BY post_id, meta_key
        HAVING COUNT(*) > 1
        ORDER BY post_id, meta_key, duplicate_count DESC
        """,
        filt_params,
    )
    return [
        DuplicateKeyReport(
            owner_id=int(row["post_id"]),
            key=row["meta_key"],
            duplicate_count=int(row["duplicate_count"]),
        )
        for row in rows
    ]


def find_duplicate_values(store: MetaStore, owner_id: Optional[int] = None) -> List[MetaRecord]:
    """Return every row of every duplicate group, canonical rows included."""
    filt_sql, filt_params = build_owner_filter_sql(owner_id, "post_id")
    rows = store.execute_query(
        f"""
        WITH dup_keys AS (
            SELECT post_id, meta_key
            FROM {store.table}
            WHERE 1 = 1
            """
        + filt_sql
        + f"""
            GROUP BY post_id, meta_key
            HAVING COUNT(*) > 1
        )
        SELECT m.meta_id, m.post_id, m.meta_key, m.meta_value
        FROM {store.table} m
        JOIN dup_keys d
          ON m.post_id = d.post_id
         AND m.meta_key IS d.meta_key
        ORDER BY m.post_id, m.meta_key, m.meta_id
        """,
        filt_params,
    )
    return _records(rows)


def find_conflicting_values(store: MetaStore, meta_key: str) -> List[MetaRecord]:
    """Return all rows for ``meta_key`` on posts that carry that key more than once."""
    if not isinstance(meta_key, str) or not meta_key:
        raise ValueError("meta_key must be a non-empty string")
    rows = store.execute_query(
        f"""
        SELECT meta_id, post_id, meta_key, meta_value
        FROM {store.table}
        WHERE meta_key = ?
          AND post_id IN (
              SELECT post_id
              FROM {store.table}
              WHERE meta_key = ?
              GROUP BY post_id
              HAVING COUNT(*) > 1
          )
        ORDER BY post_id, meta_id
        """,
        (meta_key, meta_key),
    )
    return _records(rows)


def _redundant_row_predicate(table: str, match: MatchMode) -> str:
    # A row is redundant when an older row (lower meta_id) in its group exists;
    # the lowest meta_id of each group therefore never matches.
    value_clause = f" AND keep.meta_value IS {table}.meta_value" if match is MatchMode.VALUE else ""
    return (
        f"EXISTS (SELECT 1 FROM {table} keep"
        f" WHERE keep.post_id = {table}.post_id"
        f" AND keep.meta_key IS {table}.meta_key"
        f"{value_clause}"
        f" AND keep.meta_id < {table}.meta_id)"
    )


def count_redundant_rows(store: MetaStore, owner_id: Optional[int] = None, match: MatchMode = MatchMode.VALUE) -> int:
    """Number of rows :func:`delete_redundant_rows_sql` would remove."""
    filt_sql, filt_params = build_owner_filter_sql(owner_id, f"{store.table}.post_id")
    rows = store.execute_query(
        f"SELECT COUNT(*) AS n FROM {store.table} WHERE "
        + _redundant_row_predicate(store.table, match)
        + filt_sql,
        filt_params,
    )
    return int(rows[0]["n"])


def delete_redundant_rows_sql(table: str, owner_id: Optional[int] = None, match: MatchMode = MatchMode.VALUE) -> Tuple[str, List[int]]:
    """Build the single DELETE statement that keeps the lowest meta_id per group."""
    filt_sql, filt_params = build_owner_filter_sql(owner_id, f"{table}.post_id")
    sql = f"DELETE FROM {table} WHERE " + _redundant_row_predicate(table, match) + filt_sql
    return sql, filt_params
