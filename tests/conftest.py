import sqlite3
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Union

import pytest

from metadupe.db import MetaStore, connect, migrate
from metadupe.reporting import Reporter, Severity

TABLE = "wp_postmeta"

Row = Tuple[int, int, str, Optional[Union[str, bytes]]]


class RecordingReporter(Reporter):
    """Keeps every message in memory instead of printing."""

    def __init__(self) -> None:
        super().__init__(log_cb=self._record, quiet=True)
        self.messages: List[Tuple[Severity, str]] = []

    def _record(self, severity: Severity, message: str) -> None:
        self.messages.append((severity, message))

    def of(self, severity: Severity) -> List[str]:
        return [msg for sev, msg in self.messages if sev is severity]


def insert_rows(con: sqlite3.Connection, rows: Iterable[Row], table: str = TABLE) -> None:
    con.executemany(
        f"INSERT INTO {table} (meta_id, post_id, meta_key, meta_value) VALUES (?, ?, ?, ?)",
        list(rows),
    )
    con.commit()


def all_rows(store: MetaStore) -> List[Row]:
    rows = store.execute_query(
        f"SELECT meta_id, post_id, meta_key, meta_value FROM {store.table} ORDER BY meta_id"
    )
    return [tuple(row) for row in rows]


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    path = tmp_path / "wp.db"
    con = connect(path)
    migrate(con, TABLE)
    con.close()
    return path


@pytest.fixture
def store(db_path: Path):
    s = MetaStore(connect(db_path), TABLE)
    yield s
    s.close()


@pytest.fixture
def reporter() -> RecordingReporter:
    return RecordingReporter()


# owner 1: "color" red/red/blue, "size" single
# owner 2: "tag" a/a, "color" single
# owner 3: clean
SAMPLE_ROWS: List[Row] = [
    (10, 1, "color", "red"),
    (11, 1, "color", "red"),
    (12, 1, "color", "blue"),
    (13, 1, "size", "L"),
    (20, 2, "tag", "a"),
    (21, 2, "tag", "a"),
    (22, 2, "color", "green"),
    (30, 3, "title", "Hello"),
]


@pytest.fixture
def sample_store(store: MetaStore) -> MetaStore:
    insert_rows(store.con, SAMPLE_ROWS)
    return store
