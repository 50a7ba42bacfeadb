"""Write duplicate meta reports to timestamped CSV files."""
from __future__ import annotations
import contextlib
import csv
import re
from dataclasses import astuple
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from .errors import ExportError
from .grouping import flatten_groups
from .models import DuplicateKeyReport, ExportMode, ExportRequest, MetaRecord

KEYS_HEADER = ["owner_id", "key", "duplicate_count"]
VALUES_HEADER = ["record_id", "owner_id", "key", "value"]

Report = Union[
    Sequence[DuplicateKeyReport],
    Sequence[MetaRecord],
    Dict[int, List[DuplicateKeyReport]],
    Dict[int, List[MetaRecord]],
]


def header_for(mode: ExportMode) -> List[str]:
    if mode is ExportMode.KEYS:
        return list(KEYS_HEADER)
    if mode in (ExportMode.VALUES, ExportMode.DIFFERENT_VALUES):
        return list(VALUES_HEADER)
    raise ValueError(f"Export mode {mode.value!r} does not write a file")


def export_label(request: ExportRequest) -> str:
    if request.mode is ExportMode.DIFFERENT_VALUES:
        # Keep the meta key readable but safe to use as part of a filename
        safe_key = re.sub(r"[^A-Za-z0-9_-]", "_", request.meta_key or "")
        return f"{request.mode.value}_{safe_key}"
    return request.mode.value


def csv_value(value: object) -> object:
    """Render a stored value for CSV.

    BLOB values that are valid UTF-8 are written as text; any other bytes are
    written as ``0x`` followed by their hex digits.
    """
    if isinstance(value, bytes):
        try:
            return value.decode("utf-8")
        except UnicodeDecodeError:
            return "0x" + value.hex()
    return value


def export_filename(request: ExportRequest, now: Optional[datetime] = None) -> str:
    stamp = (now or datetime.now(timezone.utc)).strftime("%Y_%m_%d_%H_%M_%S")
    return f"duplicate_meta_{export_label(request)}__{stamp}.csv"


def export_report(
    report: Report,
    request: ExportRequest,
    export_dir: Path,
    now: Optional[datetime] = None,
) -> Path:
    """Write ``report`` as CSV into ``export_dir`` and return the absolute file path.

    Grouped reports are flattened group by group. A failure to create the
    directory or write the file raises :class:`ExportError`, and any partly
    written file is removed. An existing file of the same name is never
    overwritten.
    """
    header = header_for(request.mode)
    entries = flatten_groups(report)
    expected = DuplicateKeyReport if request.mode is ExportMode.KEYS else MetaRecord
    for entry in entries:
        if not isinstance(entry, expected):
            raise TypeError(f"{request.mode.value} export expects {expected.__name__} entries, got {type(entry).__name__}")

    export_dir = Path(export_dir)
    file_path = (export_dir / export_filename(request, now)).resolve()
    try:
        export_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ExportError(export_dir, str(e)) from e

    try:
        fh = file_path.open("x", encoding="utf-8", newline="")
    except FileExistsError as e:
        # Never overwrite an earlier export from the same second
        raise ExportError(file_path, "file already exists") from e
    except OSError as e:
        raise ExportError(file_path, str(e)) from e

    try:
        with fh:
            writer = csv.writer(fh)
            writer.writerow(header)
            for entry in entries:
                writer.writerow([csv_value(field) for field in astuple(entry)])
    except OSError as e:
        with contextlib.suppress(OSError):
            file_path.unlink()
        raise ExportError(file_path, str(e)) from e
    return file_path
