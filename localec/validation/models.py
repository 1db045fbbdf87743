# validation/models.py
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class IssueType(Enum):
    # Errores: invalidan la traducción
    EMPTY_TRANSLATION     = "EMPTY_TRANSLATION"
    MISSING_PLACEHOLDER   = "MISSING_PLACEHOLDER"
    EXTRA_PLACEHOLDER     = "EXTRA_PLACEHOLDER"
    SOURCE_LEAKAGE        = "SOURCE_LEAKAGE"
    # Warnings: solo bajan la confianza
    LENGTH_RATIO_EXCEEDED = "LENGTH_RATIO_EXCEEDED"
    MISSING_BRAND_NAME    = "MISSING_BRAND_NAME"


@dataclass
class ValidationIssue:
    type:    IssueType
    message: str
    field:   Optional[str] = None   # placeholder o marca implicada


@dataclass
class ValidationResult:
    is_valid:   bool
    errors:     list[ValidationIssue] = field(default_factory=list)
    warnings:   list[ValidationIssue] = field(default_factory=list)
    confidence: float                 = 1.0

    def error_types(self) -> list[IssueType]:
        return [e.type for e in self.errors]

    def warning_types(self) -> list[IssueType]:
        return [w.type for w in self.warnings]
