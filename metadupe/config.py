from __future__ import annotations
import re
from pathlib import Path
from pydantic import BaseModel, ConfigDict, Field, field_validator
import yaml

from .models import MatchMode

DEFAULT_CONFIG_PATH = "config/metadupe.yaml"

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

class DBConfig(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    path: str = "data/wordpress.db"
    table: str = "wp_postmeta"
    journal_mode: str = "WAL"
    synchronous: str = "NORMAL"
    busy_timeout_ms: int = 5000

    @field_validator("table")
    @classmethod
    def _plain_identifier(cls, value: str) -> str:
        # Table names are interpolated into SQL text; only allow bare identifiers
        if not _IDENTIFIER_RE.match(value):
            raise ValueError(f"table must be a plain SQL identifier, got {value!r}")
        return value

    @field_validator("journal_mode", "synchronous")
    @classmethod
    def _pragma_word(cls, value: str) -> str:
        if not value.isalpha():
            raise ValueError(f"pragma value must be a single word, got {value!r}")
        return value.upper()

class ExportConfig(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    base_dir: str = "data/uploads"
    subdir: str = "export"

    def export_dir(self) -> Path:
        return Path(self.base_dir) / self.subdir

class DedupeConfig(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    match: MatchMode = MatchMode.VALUE
    dry_run: bool = False
    report_limit: int = 20

class MetaDedupeConfig(BaseModel):
    db: DBConfig = Field(default_factory=DBConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)
    dedupe: DedupeConfig = Field(default_factory=DedupeConfig)

def load_config(path: Path, missing_ok: bool = False) -> MetaDedupeConfig:
    path = Path(path)
    if not path.exists():
        if missing_ok:
            return MetaDedupeConfig()
        raise FileNotFoundError(f"Config file not found: {path}")
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    return MetaDedupeConfig(**data)
