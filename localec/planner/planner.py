# planner/planner.py
import logging
import time

from localec.hashing import compute_hash
from localec.planner.models import SourceUnit, TargetLanguage, TranslationBatch, TranslationPlan
from localec.storage.ledger import Ledger
from localec.storage.models import SyncStatus

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 20

# Estimación orientativa, no de facturación: ~50 tokens de entrada + ~50 de salida
_TOKENS_PER_UNIT     = 100
_COST_PER_1K_TOKENS  = 0.01


class IncrementalTranslationPlanner:
    """
    Decide qué pares (unidad, idioma) necesitan traducción y los agrupa en batches.

    Solo lee el ledger, nunca escribe. Sin camino de error: con entradas
    bien formadas siempre devuelve un plan (posiblemente vacío).
    Tampoco tiene "force": quien quiera regenerar overrides manuales
    debe resetear su estado antes de llamar a create_plan().
    """

    def __init__(self, ledger: Ledger, batch_size: int = DEFAULT_BATCH_SIZE):
        if batch_size < 1:
            raise ValueError("batch_size debe ser >= 1")
        self._ledger     = ledger
        self._batch_size = batch_size

    def create_plan(
        self,
        source_units:     list[SourceUnit],
        target_languages: list[TargetLanguage],
    ) -> TranslationPlan:
        batches: list[TranslationBatch] = []
        total_units = 0

        for lang in target_languages:
            pending = self.detect_changes(source_units, lang.short_code)
            if not pending:
                continue

            batches.extend(self._create_batches(pending, lang.short_code))
            total_units += len(pending)
            logger.debug("%s: %d unidades a traducir", lang.short_code, len(pending))

        return TranslationPlan(
            batches        = batches,
            total_units    = total_units,
            estimated_cost = estimate_cost(total_units),
        )

    def detect_changes(self, source_units: list[SourceUnit], lang_code: str) -> list[SourceUnit]:
        """Unidades que necesitan traducción para un idioma, en el orden recibido."""
        return [u for u in source_units if self.needs_translation(u, lang_code)]

    def needs_translation(self, unit: SourceUnit, lang_code: str) -> bool:
        """
        Tabla de decisión, en orden de precedencia:
        sin estado → sí; MANUAL → nunca; origen cambiado → sí;
        FAILED/DIRTY → sí; CLEAN sin cambios → no.
        """
        stored_hash    = self._ledger.get_source_hash(unit.key_path)
        source_changed = stored_hash != unit.source_hash
        record         = self._ledger.get_sync_status(unit.key_path, lang_code)

        if record is None:
            return True
        if record.status == SyncStatus.MANUAL:
            return False
        if source_changed:
            return True
        return record.status in (SyncStatus.FAILED, SyncStatus.DIRTY)

    def _create_batches(self, units: list[SourceUnit], lang_code: str) -> list[TranslationBatch]:
        batches = []
        stamp   = int(time.time() * 1000)

        for start in range(0, len(units), self._batch_size):
            members = units[start:start + self._batch_size]
            batches.append(TranslationBatch(
                batch_id          = f"batch_{lang_code}_{stamp}_{start}",
                source_units      = members,
                target_language   = lang_code,
                deduplication_key = compute_hash("_".join(u.source_hash for u in members)),
            ))

        return batches


def estimate_cost(total_units: int) -> float:
    return total_units * _TOKENS_PER_UNIT / 1000 * _COST_PER_1K_TOKENS
