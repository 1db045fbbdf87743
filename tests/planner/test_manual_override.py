# tests/planner/test_manual_override.py
import pytest

from localec.hashing import compute_hash
from localec.planner.manual_override import ManualOverrideDetector
from localec.planner.models import SourceUnit, TargetLanguage
from localec.planner.planner import IncrementalTranslationPlanner
from localec.storage.ledger import Ledger
from localec.storage.models import SyncStatus


@pytest.fixture
def ledger():
    l = Ledger(db_path=":memory:")
    yield l
    l.close()


@pytest.fixture
def detector(ledger):
    return ManualOverrideDetector(ledger)


class TestIsManualOverride:

    def test_sin_estado_no_es_manual(self, detector):
        assert detector.is_manual_override("a", "es", "h") is False

    def test_clean_con_mismo_hash_no_es_manual(self, ledger, detector):
        ledger.update_sync_status("a", "es", "h", SyncStatus.CLEAN)
        assert detector.is_manual_override("a", "es", "h") is False

    def test_clean_con_hash_distinto_es_manual(self, ledger, detector):
        ledger.update_sync_status("a", "es", "h", SyncStatus.CLEAN)
        assert detector.is_manual_override("a", "es", "otro") is True

    def test_manual_es_pegajoso(self, ledger, detector):
        ledger.update_sync_status("a", "es", "h", SyncStatus.MANUAL)
        assert detector.is_manual_override("a", "es", "h") is True
        assert detector.is_manual_override("a", "es", "cualquiera") is True

    @pytest.mark.parametrize("status", [SyncStatus.FAILED, SyncStatus.DIRTY])
    def test_failed_y_dirty_no_son_manual(self, ledger, detector, status):
        ledger.update_sync_status("a", "es", "h", status)
        assert detector.is_manual_override("a", "es", "otro") is False


class TestMarkAsManual:

    def test_escribe_manual_con_hash(self, ledger, detector):
        detector.mark_as_manual_override("a", "es", "editado")
        record = ledger.get_sync_status("a", "es")
        assert record.status == SyncStatus.MANUAL
        assert record.target_hash == "editado"

    def test_manual_protege_del_planner(self, ledger, detector):
        text = "Hello"
        unit = SourceUnit("id", "a", text, compute_hash(text), "en.json")
        ledger.update_source_hash("a", compute_hash("texto anterior"))
        detector.mark_as_manual_override("a", "es", "editado")

        plan = IncrementalTranslationPlanner(ledger).create_plan([unit], [TargetLanguage("Spanish", "es")])
        assert plan.is_empty

    def test_solo_el_reset_forzado_limpia_manual(self, ledger, detector):
        detector.mark_as_manual_override("a", "es", "editado")
        ledger.reset_manual_overrides(["es"])
        assert detector.is_manual_override("a", "es", "editado") is False
