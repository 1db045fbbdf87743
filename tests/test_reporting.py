# tests/test_reporting.py
import click
import pytest

from localec.planner.models import TargetLanguage
from localec.reporting import ReportingSystem
from localec.storage.ledger import Ledger
from localec.storage.models import SyncStatus

LANGUAGES = [TargetLanguage("Spanish", "es"), TargetLanguage("French", "fr")]


@pytest.fixture
def ledger():
    led = Ledger(":memory:")
    yield led
    led.close()


@pytest.fixture
def reporting(ledger):
    for key in ("a", "b", "c"):
        ledger.update_source_hash(key, f"h_{key}")
    ledger.update_sync_status("a", "es", "t", SyncStatus.CLEAN)
    ledger.update_sync_status("b", "es", "t", SyncStatus.CLEAN)
    ledger.update_sync_status("c", "es", "t", SyncStatus.MANUAL)
    ledger.update_sync_status("a", "fr", "t", SyncStatus.CLEAN)
    ledger.update_sync_status("b", "fr", "", SyncStatus.FAILED)
    return ReportingSystem(ledger)


class TestProjectStats:

    def test_agrega_por_idioma(self, reporting):
        stats = reporting.project_stats(LANGUAGES)

        assert stats.total_strings      == 3
        assert stats.translated_strings == 4
        assert stats.failed_strings     == 1
        assert stats.manual_overrides   == 1
        assert list(stats.language_coverage) == ["Spanish (es)", "French (fr)"]

    def test_manual_cuenta_como_traducida(self, reporting):
        spanish = reporting.project_stats(LANGUAGES).language_coverage["Spanish (es)"]
        assert spanish.translated_keys == 3
        assert spanish.missing_keys    == []

    def test_faltantes_por_idioma(self, reporting):
        french = reporting.project_stats(LANGUAGES).language_coverage["French (fr)"]
        assert french.translated_keys == 1
        assert french.missing_keys    == ["b", "c"]

    def test_ledger_vacio(self, ledger):
        stats = ReportingSystem(ledger).project_stats(LANGUAGES)
        assert stats.total_strings == 0
        assert stats.translated_strings == 0
        assert [c.translated_keys for c in stats.language_coverage.values()] == [0, 0]


class TestFormat:

    def test_informe_legible(self, reporting):
        text = click.unstyle(reporting.format_report(reporting.project_stats(LANGUAGES)))

        assert "Claves únicas     : 3" in text
        assert "Spanish (es)" in text
        assert "3/3 (100.0%)" in text
        assert "1/3 (33.3%)" in text

    def test_informe_sin_claves_no_divide_por_cero(self, ledger):
        reporting = ReportingSystem(ledger)
        text = click.unstyle(reporting.format_report(reporting.project_stats(LANGUAGES)))
        assert "0/0 (0.0%)" in text

    def test_sin_ejecuciones(self, reporting):
        assert reporting.latest_run_summary() is None
        assert reporting.format_run(None) == "Todavía no hay ejecuciones registradas."

    def test_ultima_ejecucion(self, reporting, ledger):
        ledger.start_run("claude-haiku", "cfg")
        run_id = ledger.start_run("claude-sonnet", "cfg")
        ledger.complete_run(run_id, 120, 80, 0.0123)

        run  = reporting.latest_run_summary()
        text = click.unstyle(reporting.format_run(run))

        assert run.run_id == run_id
        assert "claude-sonnet" in text
        assert "120 + 80" in text
        assert "$0.0123" in text
        assert "Historial: 2 runs guardados" in text
