# validation/pipeline.py
import logging
from typing import Optional

from localec.config import ValidationConfig
from localec.hashing import extract_placeholders
from localec.planner.models import SourceUnit
from localec.providers.models import TranslationResult
from localec.validation.models import IssueType, ValidationIssue, ValidationResult

logger = logging.getLogger(__name__)

DEFAULT_MAX_LENGTH_RATIO = 3.0

_PLACEHOLDER_PENALTY = 0.5
_SEMANTIC_PENALTY    = 0.8
_LEAKAGE_PENALTY     = 0.3
_LEAKAGE_WORD_RATIO  = 0.8


class TranslationValidationPipeline:
    """
    Puerta sin estado: decide si una traducción del LLM se puede escribir.

    Etapas en orden:
    1. No vacía (error; corta el resto con confidence 0)
    2. Placeholders preservados (error, si está activado)
    3. Ratio de longitud (warning)
    4. Fuga del idioma origen (error, si está activado)
    5. Marcas protegidas (warning, si hay lista de marcas)

    Nunca lanza por contenido: todo se refleja en el ValidationResult.
    """

    def __init__(self, config: Optional[ValidationConfig] = None):
        self._config = config or ValidationConfig()

    def validate(self, result: TranslationResult, unit: SourceUnit) -> ValidationResult:
        errors:   list[ValidationIssue] = []
        warnings: list[ValidationIssue] = []
        confidence = 1.0

        text = result.translated_text or ""

        # ── Etapa 1: estructural ──────────────────────────────────────
        if not text.strip():
            errors.append(ValidationIssue(IssueType.EMPTY_TRANSLATION, "La traducción está vacía"))
            return ValidationResult(is_valid=False, errors=errors, warnings=warnings, confidence=0.0)

        # ── Etapa 2: placeholders ─────────────────────────────────────
        if self._config.preserve_placeholders:
            placeholder_errors = self._check_placeholders(unit, text)
            errors.extend(placeholder_errors)
            if placeholder_errors:
                confidence *= _PLACEHOLDER_PENALTY

        # ── Etapa 3: semántica ────────────────────────────────────────
        semantic_warnings = self._check_length_ratio(unit, text)
        warnings.extend(semantic_warnings)
        if semantic_warnings:
            confidence *= _SEMANTIC_PENALTY

        # ── Etapa 4: fuga del idioma origen ───────────────────────────
        if self._config.prevent_source_leakage and _looks_like_source(unit.source_text, text):
            errors.append(ValidationIssue(
                IssueType.SOURCE_LEAKAGE,
                "La traducción parece estar en el idioma de origen",
            ))
            confidence *= _LEAKAGE_PENALTY

        # ── Etapa 5: marcas ───────────────────────────────────────────
        if self._config.brand_names:
            warnings.extend(self._check_brand_names(unit, text))

        if errors:
            logger.debug(
                "%s inválida: %s", unit.key_path, ", ".join(e.type.value for e in errors)
            )

        return ValidationResult(
            is_valid   = not errors,
            errors     = errors,
            warnings   = warnings,
            confidence = confidence,
        )

    @staticmethod
    def _check_placeholders(unit: SourceUnit, text: str) -> list[ValidationIssue]:
        expected = set(unit.placeholders)
        found    = set(extract_placeholders(text))
        issues   = []

        for token in sorted(expected - found):
            issues.append(ValidationIssue(
                IssueType.MISSING_PLACEHOLDER, f"Falta el placeholder: {token}", token,
            ))
        for token in sorted(found - expected):
            issues.append(ValidationIssue(
                IssueType.EXTRA_PLACEHOLDER, f"Placeholder inesperado: {token}", token,
            ))

        return issues

    def _check_length_ratio(self, unit: SourceUnit, text: str) -> list[ValidationIssue]:
        max_ratio = self._config.max_length_ratio or DEFAULT_MAX_LENGTH_RATIO
        source_len = len(unit.source_text)
        ratio = len(text) / source_len if source_len else float("inf")

        if ratio <= max_ratio:
            return []

        return [ValidationIssue(
            IssueType.LENGTH_RATIO_EXCEEDED,
            f"La traducción es {ratio:.1f}x más larga que el original (máx: {max_ratio}x)",
        )]

    def _check_brand_names(self, unit: SourceUnit, text: str) -> list[ValidationIssue]:
        return [
            ValidationIssue(
                IssueType.MISSING_BRAND_NAME,
                f'La marca "{brand}" no se preservó en la traducción',
                brand,
            )
            for brand in self._config.brand_names
            if brand in unit.source_text and brand not in text
        ]


def _looks_like_source(source: str, translation: str) -> bool:
    """
    Heurística gruesa: idéntico tras normalizar, o más del 80% de las
    palabras del origen reaparecen en la traducción. Falla con strings
    cortos y cognados, se acepta así.
    """
    normalized_source      = source.lower().strip()
    normalized_translation = translation.lower().strip()

    if normalized_source == normalized_translation:
        return True

    source_words = set(normalized_source.split())
    if not source_words:
        return False

    translation_words = set(normalized_translation.split())
    matches = len(source_words & translation_words)
    return matches / len(source_words) > _LEAKAGE_WORD_RATIO
