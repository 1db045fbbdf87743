# providers/models.py
from dataclasses import dataclass
from typing import Optional


@dataclass
class PromptTemplate:
    system:      str
    user:        str
    temperature: Optional[float] = None
    max_tokens:  Optional[int]   = None


@dataclass
class TranslationResult:
    unit_id:         str
    translated_text: str
    confidence:      Optional[float] = None


@dataclass
class BatchTranslation:
    """
    Respuesta de un proveedor para un batch.
    results va en el mismo orden que batch.source_units (match posicional).
    """
    results:           list[TranslationResult]
    model_fingerprint: str
    tokens_input:      int = 0
    tokens_output:     int = 0
    cost_usd:          float = 0.0
