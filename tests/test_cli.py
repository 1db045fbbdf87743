# tests/test_cli.py
import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from localec.cli import main
from localec.compiler import CheckFailure, CheckReport, RetryStatistics, RunStatistics
from localec.providers.router import AllProvidersExhaustedError
from localec.validation.models import IssueType, ValidationIssue


# ------------------------------------------------------------------
# Fixtures
# ------------------------------------------------------------------

@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def config_path(tmp_path) -> Path:
    return tmp_path / "localec.yaml"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv("LOCALEC_LEDGER_PATH", raising=False)
    monkeypatch.delenv("LOCALEC_CONFIG_PATH", raising=False)


def make_run_stats(**overrides) -> RunStatistics:
    values = dict(run_id="run_1", total_units=5, planned_units=3, translated_units=3)
    values.update(overrides)
    return RunStatistics(**values)


def mocked_compiler():
    """Compilador simulado; `with compiler:` funciona porque MagicMock soporta context managers."""
    return MagicMock()


# ------------------------------------------------------------------
# init
# ------------------------------------------------------------------

class TestInit:

    def test_crea_config(self, runner, config_path):
        result = runner.invoke(main, ["--config", str(config_path), "init"])
        assert result.exit_code == 0
        assert "sourceLanguage: en" in config_path.read_text(encoding="utf-8")

    def test_no_sobrescribe_sin_force(self, runner, config_path):
        config_path.write_text("sourceLanguage: de\n", encoding="utf-8")
        result = runner.invoke(main, ["--config", str(config_path), "init"])
        assert result.exit_code == 1
        assert "ya existe" in result.output
        assert config_path.read_text(encoding="utf-8") == "sourceLanguage: de\n"

    def test_force_sobrescribe(self, runner, config_path):
        config_path.write_text("sourceLanguage: de\n", encoding="utf-8")
        result = runner.invoke(main, ["--config", str(config_path), "init", "--force"])
        assert result.exit_code == 0
        assert "sourceLanguage: en" in config_path.read_text(encoding="utf-8")


# ------------------------------------------------------------------
# sync
# ------------------------------------------------------------------

class TestSync:

    def test_sync_ok(self, runner):
        with patch("localec.cli.build_compiler") as mock_factory:
            compiler = mocked_compiler()
            compiler.sync.return_value = make_run_stats(skipped_units=7)
            mock_factory.return_value = compiler

            result = runner.invoke(main, ["sync"])

            assert result.exit_code == 0
            assert "Sync completada" in result.output
            assert "3/3" in result.output
            assert "Al día       : 7" in result.output
            compiler.sync.assert_called_once_with(force=False)

    def test_force_se_propaga(self, runner):
        with patch("localec.cli.build_compiler") as mock_factory:
            compiler = mocked_compiler()
            compiler.sync.return_value = make_run_stats()
            mock_factory.return_value = compiler

            runner.invoke(main, ["sync", "--force"])

            compiler.sync.assert_called_once_with(force=True)

    def test_fallos_parciales_sugieren_retry(self, runner):
        with patch("localec.cli.build_compiler") as mock_factory:
            compiler = mocked_compiler()
            compiler.sync.return_value = make_run_stats(translated_units=2, failed_units=1)
            mock_factory.return_value = compiler

            result = runner.invoke(main, ["sync"])

            assert result.exit_code == 0
            assert "localec retry" in result.output

    def test_proveedores_agotados_sale_con_2(self, runner):
        with patch("localec.cli.build_compiler") as mock_factory:
            compiler = mocked_compiler()
            compiler.sync.return_value = make_run_stats(failed_units=3, providers_exhausted=True)
            mock_factory.return_value = compiler

            result = runner.invoke(main, ["sync"])

            assert result.exit_code == 2

    def test_excepcion_de_proveedores_sale_con_2(self, runner):
        with patch("localec.cli.build_compiler") as mock_factory:
            compiler = mocked_compiler()
            compiler.sync.side_effect = AllProvidersExhaustedError("sin quota")
            mock_factory.return_value = compiler

            result = runner.invoke(main, ["sync"])

            assert result.exit_code == 2

    def test_error_inesperado_sale_con_1(self, runner):
        with patch("localec.cli.build_compiler") as mock_factory:
            compiler = mocked_compiler()
            compiler.sync.side_effect = OSError("disco lleno")
            mock_factory.return_value = compiler

            result = runner.invoke(main, ["sync"])

            assert result.exit_code == 1
            assert "disco lleno" in result.output

    def test_interrupcion_sale_con_0(self, runner):
        with patch("localec.cli.build_compiler") as mock_factory:
            compiler = mocked_compiler()
            compiler.sync.side_effect = KeyboardInterrupt
            mock_factory.return_value = compiler

            result = runner.invoke(main, ["sync"])

            assert result.exit_code == 0
            assert "interrumpido" in result.output

    def test_config_inexistente(self, runner, tmp_path):
        result = runner.invoke(main, ["--config", str(tmp_path / "nada.yaml"), "sync"])
        assert result.exit_code == 1
        assert "localec init" in result.output

    def test_config_invalida(self, runner, config_path):
        config_path.write_text("sourceLanguage: en\n", encoding="utf-8")
        result = runner.invoke(main, ["--config", str(config_path), "sync"])
        assert result.exit_code == 1
        assert "targetLanguages" in result.output

    def test_sin_api_keys(self, runner, config_path, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        runner.invoke(main, ["--config", str(config_path), "init"])

        result = runner.invoke(main, ["--config", str(config_path), "sync"])

        assert result.exit_code == 1
        assert "apiKey" in result.output


# ------------------------------------------------------------------
# status
# ------------------------------------------------------------------

class TestStatus:

    def test_status_sin_api_keys(self, runner, config_path, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        runner.invoke(main, ["--config", str(config_path), "init"])

        result = runner.invoke(main, ["--config", str(config_path), "status"])

        assert result.exit_code == 0
        assert "Spanish (es)" in result.output
        assert "Todavía no hay ejecuciones" in result.output
        assert (config_path.parent / ".localec" / "ledger.sqlite").exists()


# ------------------------------------------------------------------
# retry
# ------------------------------------------------------------------

class TestRetry:

    def test_dry_run_lista_pendientes_sin_router(self, runner):
        with patch("localec.cli.build_compiler") as mock_factory:
            compiler = mocked_compiler()
            compiler.retry_failed.return_value = RetryStatistics(
                found=1, remaining_failed=1, pending=[("common.save", "es")],
            )
            mock_factory.return_value = compiler

            result = runner.invoke(main, ["retry", "--dry-run", "--lang", "es"])

            assert result.exit_code == 0
            assert "common.save (es)" in result.output
            assert mock_factory.call_args.kwargs["with_router"] is False
            compiler.retry_failed.assert_called_once_with(lang="es", dry_run=True)

    def test_resumen(self, runner):
        with patch("localec.cli.build_compiler") as mock_factory:
            compiler = mocked_compiler()
            compiler.retry_failed.return_value = RetryStatistics(
                found=3, recovered=2, remaining_failed=1, orphaned=1,
            )
            mock_factory.return_value = compiler

            result = runner.invoke(main, ["retry"])

            assert result.exit_code == 0
            assert "2/3" in result.output
            assert "ya no existen" in result.output

    def test_proveedores_agotados(self, runner):
        with patch("localec.cli.build_compiler") as mock_factory:
            compiler = mocked_compiler()
            compiler.retry_failed.return_value = RetryStatistics(
                found=1, remaining_failed=1, providers_exhausted=True,
            )
            mock_factory.return_value = compiler

            assert runner.invoke(main, ["retry"]).exit_code == 2


# ------------------------------------------------------------------
# check
# ------------------------------------------------------------------

class TestCheck:

    def test_sin_errores(self, runner):
        with patch("localec.cli.build_compiler") as mock_factory:
            compiler = mocked_compiler()
            compiler.check.return_value = CheckReport(checked=4)
            mock_factory.return_value = compiler

            result = runner.invoke(main, ["check"])

            assert result.exit_code == 0
            assert "Sin errores" in result.output

    def test_con_errores_sale_con_1(self, runner):
        issue = ValidationIssue(IssueType.MISSING_PLACEHOLDER, "Falta el placeholder: {name}", "{name}")
        with patch("localec.cli.build_compiler") as mock_factory:
            compiler = mocked_compiler()
            compiler.check.return_value = CheckReport(
                checked=4, failures=[CheckFailure("greeting", "es", [issue])],
            )
            mock_factory.return_value = compiler

            result = runner.invoke(main, ["check"])

            assert result.exit_code == 1
            assert "greeting (es)" in result.output
            assert "{name}" in result.output


# ------------------------------------------------------------------
# import
# ------------------------------------------------------------------

class TestImport:

    def test_targets_explicitos(self, runner):
        with patch("localec.cli.build_compiler") as mock_factory:
            compiler = mocked_compiler()
            compiler.import_existing.return_value = MagicMock(stats=None, records=[], coverage={})
            mock_factory.return_value = compiler

            result = runner.invoke(main, [
                "import",
                "--source", "en.json",
                "--target", "es=legacy/es.json",
                "--target", "fr = legacy/fr.json",
                "--dry-run",
            ])

            assert result.exit_code == 0
            compiler.import_existing.assert_called_once_with(
                source  = Path("en.json"),
                targets = {"es": Path("legacy/es.json"), "fr": Path("legacy/fr.json")},
                dry_run = True,
            )

    def test_target_mal_formado(self, runner):
        result = runner.invoke(main, ["import", "--target", "es"])
        assert result.exit_code == 1
        assert "CODE=PATH" in result.output

    def test_import_real(self, runner, config_path, tmp_path):
        config_path.write_text(
            "sourceLanguage: en\n"
            "targetLanguages:\n"
            "  - language: Spanish\n"
            "    shortCode: es\n"
            "extractors:\n"
            "  - pattern: locales/en.json\n"
            "providers:\n"
            "  - name: local\n"
            "    type: local\n"
            "    model: llama3\n",
            encoding="utf-8",
        )
        locales = tmp_path / "locales"
        locales.mkdir()
        (locales / "en.json").write_text(json.dumps({"save": "Save", "cancel": "Cancel"}), encoding="utf-8")
        (locales / "es.json").write_text(json.dumps({"save": "Guardar"}), encoding="utf-8")

        result = runner.invoke(main, ["--config", str(config_path), "import"])

        assert result.exit_code == 0
        assert "es: 1/2" in result.output
        assert "Importadas 1" in result.output
        assert "Sin traducir en es: 1" in result.output


# ------------------------------------------------------------------
# context
# ------------------------------------------------------------------

class TestContext:

    @pytest.fixture
    def source(self, tmp_path) -> Path:
        path = tmp_path / "en.json"
        path.write_text(json.dumps({"save": "Save"}), encoding="utf-8")
        return path

    def test_generate_y_validate(self, runner, source, tmp_path):
        result = runner.invoke(main, ["context", "generate", "--source", str(source)])
        assert result.exit_code == 0
        assert (tmp_path / "en.context.json").exists()

        result = runner.invoke(main, ["context", "validate", "--source", str(source)])
        assert result.exit_code == 0
        assert "Contexto válido" in result.output

    def test_generate_origen_inexistente(self, runner, tmp_path):
        result = runner.invoke(main, ["context", "generate", "--source", str(tmp_path / "nada.json")])
        assert result.exit_code == 1

    def test_validate_con_errores(self, runner, source, tmp_path):
        context = tmp_path / "ctx.json"
        context.write_text(json.dumps({"save": {"nested": {"value": "Save"}}}), encoding="utf-8")

        result = runner.invoke(main, [
            "context", "validate", "--source", str(source), "--context", str(context),
        ])

        assert result.exit_code == 1
        assert "save" in result.output
