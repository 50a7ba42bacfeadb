"""Plain data types shared by the query, delete and export stages."""
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


@dataclass(frozen=True)
class MetaRecord:
    record_id: int
    owner_id: int
    key: str
    value: Optional[Union[str, bytes]]  # BLOB columns come back as bytes


@dataclass(frozen=True)
class DuplicateKeyReport:
    owner_id: int
    key: str
    duplicate_count: int


@dataclass(frozen=True)
class DeletionResult:
    affected_count: int


class MatchMode(str, Enum):
    """Which rows count as copies of the canonical (lowest id) row."""

    VALUE = "value"  # same owner, key and value
    KEY = "key"  # same owner and key, any value


class ExportMode(str, Enum):
    COUNT = "count"
    KEYS = "keys"
    VALUES = "values"
    DIFFERENT_VALUES = "different_values"


_DIFFERENT_VALUES_RE = re.compile(r"^different_values\[(?P<key>.+)\]$", re.DOTALL)


@dataclass(frozen=True)
class ExportRequest:
    mode: ExportMode = ExportMode.COUNT
    meta_key: Optional[str] = None

    @property
    def writes_file(self) -> bool:
        return self.mode is not ExportMode.COUNT

    @classmethod
    def parse(cls, raw: Optional[str]) -> "ExportRequest":
        """Parse ``count``, ``keys``, ``values`` or ``different_values[<key>]``.

        An empty or missing value means ``count``.
        """
        if raw is None or raw == "" or raw == ExportMode.COUNT.value:
            return cls(ExportMode.COUNT)
        if raw == ExportMode.KEYS.value:
            return cls(ExportMode.KEYS)
        if raw == ExportMode.VALUES.value:
            return cls(ExportMode.VALUES)
        match = _DIFFERENT_VALUES_RE.match(raw)
        if match:
            return cls(ExportMode.DIFFERENT_VALUES, match.group("key"))
        raise ValueError(
            f"Unknown export mode {raw!r}; expected count, keys, values or different_values[<meta_key>]"
        )
