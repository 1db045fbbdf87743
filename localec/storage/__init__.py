# storage/__init__.py
from localec.storage.ledger import Ledger
from localec.storage.models import (
    FailedItem, ImportRecord, ImportStats, LanguageCoverage,
    RunRecord, SyncStatus, SyncStatusRecord,
)

__all__ = [
    "Ledger",
    "SyncStatus",
    "SyncStatusRecord", "FailedItem", "RunRecord",
    "ImportRecord", "ImportStats", "LanguageCoverage",
]
