# tests/test_importer.py
import json

import pytest

from localec.hashing import compute_hash
from localec.importer import TranslationImporter


@pytest.fixture
def files(tmp_path):
    source = tmp_path / "en.json"
    source.write_text(json.dumps({
        "common": {"save": "Save", "cancel": "Cancel", "empty": ""},
        "title": "Welcome",
    }), encoding="utf-8")

    spanish = tmp_path / "es.json"
    spanish.write_text(json.dumps({
        "common": {"save": "Guardar", "empty": "Vacío"},
        "title": "",
        "obsolete": "Ya no existe",
    }), encoding="utf-8")

    french = tmp_path / "fr.json"
    french.write_text(json.dumps({"title": "Bienvenue"}), encoding="utf-8")
    return source, spanish, french


class TestImportFromFiles:

    def test_solo_claves_en_ambos_con_texto(self, files):
        source, spanish, _ = files
        records = TranslationImporter().import_from_files(source, spanish, "es")

        assert [r.key_path for r in records] == ["common.save"]
        record = records[0]
        assert record.lang_code == "es"
        assert record.source_hash == compute_hash("Save")
        assert record.target_hash == compute_hash("Guardar")

    def test_prefijo_de_clave(self, files):
        source, spanish, _ = files
        records = TranslationImporter(key_prefix="app").import_from_files(source, spanish, "es")
        assert [r.key_path for r in records] == ["app.common.save"]

    def test_multiples_archivos(self, files):
        source, spanish, french = files
        records = TranslationImporter().import_from_multiple_files(source, {"es": spanish, "fr": french})
        assert [(r.key_path, r.lang_code) for r in records] == [("common.save", "es"), ("title", "fr")]


class TestAnalyzeCoverage:

    def test_cobertura(self, files):
        source, spanish, _ = files
        coverage = TranslationImporter().analyze_coverage(source, spanish)
        # common.empty y title existen en el destino (aunque title esté vacío)
        assert coverage.total_keys == 4
        assert coverage.matched_keys == 3
        assert coverage.missing_keys == ["common.cancel"]
        assert coverage.coverage == pytest.approx(75.0)

    def test_origen_vacio(self, tmp_path):
        source = tmp_path / "en.json"
        source.write_text("{}", encoding="utf-8")
        coverage = TranslationImporter().analyze_coverage(source, source)
        assert coverage.total_keys == 0
        assert coverage.coverage == 0.0
