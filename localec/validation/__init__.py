from localec.validation.models import IssueType, ValidationIssue, ValidationResult
from localec.validation.pipeline import TranslationValidationPipeline

__all__ = [
    "IssueType",
    "ValidationIssue",
    "ValidationResult",
    "TranslationValidationPipeline",
]
