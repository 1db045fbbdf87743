# planner/models.py
from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class TargetLanguage:
    language:   str     # nombre legible, ej: "French"
    short_code: str     # ej: "fr", el lang_code del ledger


@dataclass
class SourceUnit:
    """
    Un string traducible recién extraído.
    Se crea en cada pasada de extracción; solo su hash se persiste.
    """
    unit_id:        str
    key_path:       str
    source_text:    str
    source_hash:    str
    source_file:    str
    placeholders:   list[str]     = field(default_factory=list)
    schema_version: int           = 1
    context:        Optional[str] = None


@dataclass
class TranslationBatch:
    batch_id:          str
    source_units:      list[SourceUnit]
    target_language:   str
    deduplication_key: str          # solo auditoría, no decide nada


@dataclass
class TranslationPlan:
    batches:        list[TranslationBatch] = field(default_factory=list)
    total_units:    int                    = 0
    estimated_cost: float                  = 0.0

    @property
    def is_empty(self) -> bool:
        return not self.batches
