from localec.planner.models import SourceUnit, TargetLanguage, TranslationBatch, TranslationPlan
from localec.planner.planner import IncrementalTranslationPlanner, DEFAULT_BATCH_SIZE
from localec.planner.manual_override import ManualOverrideDetector

__all__ = [
    "SourceUnit",
    "TargetLanguage",
    "TranslationBatch",
    "TranslationPlan",
    "IncrementalTranslationPlanner",
    "DEFAULT_BATCH_SIZE",
    "ManualOverrideDetector",
]
