"""Find, export and delete duplicate post meta rows in a SQLite store."""
from __future__ import annotations

from .dedupe import DedupeOptions, DedupeOutcome, delete_duplicates, run_dedupe
from .errors import ExportError, MetaDedupeError, StoreQueryError, StoreWriteError, UserDeclined
from .models import DeletionResult, DuplicateKeyReport, ExportMode, ExportRequest, MatchMode, MetaRecord

__version__ = "0.1.0"

__all__ = [
    "DedupeOptions",
    "DedupeOutcome",
    "DeletionResult",
    "DuplicateKeyReport",
    "ExportError",
    "ExportMode",
    "ExportRequest",
    "MatchMode",
    "MetaDedupeError",
    "MetaRecord",
    "StoreQueryError",
    "StoreWriteError",
    "UserDeclined",
    "delete_duplicates",
    "run_dedupe",
]
