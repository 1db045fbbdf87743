# storage/models.py
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class SyncStatus(Enum):
    CLEAN   = "CLEAN"
    DIRTY   = "DIRTY"
    FAILED  = "FAILED"
    MANUAL  = "MANUAL"
    SKIPPED = "SKIPPED"


@dataclass
class SyncStatusRecord:
    key_path:          str
    lang_code:         str
    status:            SyncStatus
    updated_at:        str
    target_hash:       Optional[str] = None
    model_fingerprint: Optional[str] = None
    prompt_version:    Optional[int] = None


@dataclass
class FailedItem(SyncStatusRecord):
    """Fila FAILED con el hash de origen asociado (puede faltar)."""
    value_hash: Optional[str] = None


@dataclass
class RunRecord:
    run_id:            str
    started_at:        str
    finished_at:       Optional[str]   = None
    model_used:        Optional[str]   = None
    tokens_in:         Optional[int]   = None
    tokens_out:        Optional[int]   = None
    cost_estimate_usd: Optional[float] = None
    config_hash:       Optional[str]   = None


@dataclass
class ImportRecord:
    key_path:    str
    lang_code:   str
    source_hash: str
    target_hash: str


@dataclass
class ImportStats:
    total_records: int       = 0
    imported:      int       = 0
    skipped:       int       = 0
    errors:        int       = 0
    languages:     list[str] = field(default_factory=list)
    duration:      float     = 0.0


@dataclass
class LanguageCoverage:
    lang_code:       str
    total_keys:      int
    translated_keys: int
    coverage:        float
    missing_keys:    list[str] = field(default_factory=list)
