"""Exception types raised by the duplicate meta tooling."""
from __future__ import annotations

from pathlib import Path
from typing import Optional


class MetaDedupeError(Exception):
    """Base class for every failure the CLI knows how to report."""


class StoreError(MetaDedupeError):
    def __init__(self, detail: str, sql: Optional[str] = None) -> None:
        super().__init__(detail)
        self.detail = detail
        self.sql = sql


class StoreQueryError(StoreError):
    """A read query against the meta table failed."""


class StoreWriteError(StoreError):
    """The delete statement failed and was rolled back."""


class ExportError(MetaDedupeError):
    def __init__(self, path: Path, detail: str) -> None:
        super().__init__(f"Could not write export file {path}: {detail}")
        self.path = path
        self.detail = detail


class UserDeclined(MetaDedupeError):
    """The operator answered no at the confirmation prompt."""
