# planner/manual_override.py
from localec.storage.ledger import Ledger
from localec.storage.models import SyncStatus


class ManualOverrideDetector:
    """
    Detecta traducciones editadas a mano fuera del compilador.

    MANUAL es pegajoso: una vez marcado, ningún cambio de hash lo limpia.
    Solo una regeneración forzada explícita del orquestador lo resetea.
    """

    def __init__(self, ledger: Ledger):
        self._ledger = ledger

    def is_manual_override(self, key_path: str, lang_code: str, current_target_hash: str) -> bool:
        record = self._ledger.get_sync_status(key_path, lang_code)

        if record is None:
            return False   # traducción nueva, no hay nada que proteger

        if record.status == SyncStatus.MANUAL:
            return True

        # CLEAN pero el archivo ya no coincide con lo último que escribimos
        return record.status == SyncStatus.CLEAN and record.target_hash != current_target_hash

    def mark_as_manual_override(self, key_path: str, lang_code: str, target_hash: str) -> None:
        self._ledger.update_sync_status(key_path, lang_code, target_hash, SyncStatus.MANUAL)
