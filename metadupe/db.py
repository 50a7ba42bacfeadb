from __future__ import annotations
import sqlite3
from pathlib import Path
from types import TracebackType
from typing import List, Optional, Sequence, Type

from .config import DBConfig
from .errors import StoreQueryError, StoreWriteError

DDL = r"""
CREATE TABLE IF NOT EXISTS {table} (
  meta_id INTEGER PRIMARY KEY AUTOINCREMENT,
  post_id INTEGER NOT NULL DEFAULT 0,
  meta_key TEXT,
  meta_value TEXT
);
CREATE INDEX IF NOT EXISTS idx_{table}_post_key ON {table}(post_id, meta_key);
CREATE INDEX IF NOT EXISTS idx_{table}_key ON {table}(meta_key);
"""

def connect(db_path: Path, cfg: Optional[DBConfig] = None) -> sqlite3.Connection:
    cfg = cfg or DBConfig()
    db_path.parent.mkdir(parents=True, exist_ok=True)
    con = sqlite3.connect(str(db_path))
    con.execute(f"PRAGMA journal_mode={cfg.journal_mode};")
    con.execute(f"PRAGMA synchronous={cfg.synchronous};")
    con.execute(f"PRAGMA busy_timeout={int(cfg.busy_timeout_ms)};")
    return con

def migrate(con: sqlite3.Connection, table: str = "wp_postmeta") -> None:
    con.executescript(DDL.format(table=table))
    con.commit()


class MetaStore:
    """Store client for one meta table.

    Reads go through :meth:`execute_query`, writes through
    :meth:`execute_statement`. Every write runs in its own transaction and is
    rolled back if SQLite reports an error. The raw error text of the last
    failure is kept in :attr:`last_error`.
    """

    def __init__(self, con: sqlite3.Connection, table: str = "wp_postmeta") -> None:
        self.con = con
        self.con.row_factory = sqlite3.Row
        self.table = table
        self.last_error: Optional[str] = None

    @classmethod
    def open(cls, cfg: DBConfig) -> "MetaStore":
        db_path = Path(cfg.path)
        if not db_path.exists():
            raise StoreQueryError(f"Database not found: {db_path}")
        return cls(connect(db_path, cfg), cfg.table)

    def execute_query(self, sql: str, params: Sequence[object] = ()) -> List[sqlite3.Row]:
        try:
            cur = self.con.execute(sql, tuple(params))
            rows = cur.fetchall()
        except sqlite3.Error as e:
            self.last_error = str(e)
            raise StoreQueryError(self.last_error, sql) from e
        self.last_error = None
        return rows

    def execute_statement(self, sql: str, params: Sequence[object] = ()) -> int:
        try:
            with self.con:
                cur = self.con.execute(sql, tuple(params))
                affected = cur.rowcount
        except sqlite3.Error as e:
            self.last_error = str(e)
            raise StoreWriteError(self.last_error, sql) from e
        self.last_error = None
        return affected

    def close(self) -> None:
        self.con.close()

    def __enter__(self) -> "MetaStore":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.close()
