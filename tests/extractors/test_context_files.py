# tests/extractors/test_context_files.py
import json

import pytest

from localec.extractors.context import (
    context_path_for,
    describe_context,
    generate_context_template,
    load_context_map,
    validate_context_file,
)


@pytest.fixture
def source(tmp_path):
    path = tmp_path / "en.json"
    path.write_text(json.dumps({"save": "Save", "menu": {"open": "Open"}, "steps": ["One"]}), encoding="utf-8")
    return path


def read(path):
    return json.loads(path.read_text(encoding="utf-8"))


class TestGenerate:

    def test_plantilla_con_la_forma_del_origen(self, source, tmp_path):
        output = tmp_path / "en.context.json"
        leaves = generate_context_template(source, output)

        assert leaves == 3
        assert read(output) == {
            "save":  {"value": "Save", "context": ""},
            "menu":  {"open": {"value": "Open", "context": ""}},
            "steps": {"0": {"value": "One", "context": ""}},
        }

    def test_merge_conserva_contexto_y_descarta_claves_borradas(self, source, tmp_path):
        output = tmp_path / "en.context.json"
        output.write_text(json.dumps({
            "save":    {"value": "Old save", "context": "Toolbar button", "maxLength": 8},
            "removed": {"value": "Gone", "context": "x"},
        }), encoding="utf-8")

        generate_context_template(source, output, merge=True)
        data = read(output)

        assert data["save"] == {"value": "Save", "context": "Toolbar button", "maxLength": 8}
        assert "removed" not in data
        assert data["menu"]["open"]["context"] == ""

    def test_sin_merge_sobrescribe(self, source, tmp_path):
        output = tmp_path / "en.context.json"
        output.write_text(json.dumps({"save": {"value": "Save", "context": "keep?"}}), encoding="utf-8")
        generate_context_template(source, output)
        assert read(output)["save"]["context"] == ""


class TestValidate:

    def test_contexto_valido(self, source, tmp_path):
        output = tmp_path / "en.context.json"
        generate_context_template(source, output)
        assert validate_context_file(source, output) == ([], [])

    def test_detecta_problemas(self, source, tmp_path):
        context = tmp_path / "en.context.json"
        context.write_text(json.dumps({
            "save":  {"value": "Guardar", "context": ""},
            "menu":  {"value": "Open", "context": ""},
            "extra": {"value": "x", "context": ""},
        }), encoding="utf-8")

        errors, warnings = validate_context_file(source, context)

        assert errors == ["menu: se esperaba un objeto anidado"]
        assert any(w.startswith("save:") for w in warnings)
        assert any(w.startswith("steps:") for w in warnings)
        assert any(w.startswith("extra:") for w in warnings)

    def test_archivo_ilegible(self, source, tmp_path):
        errors, _ = validate_context_file(source, tmp_path / "no_existe.json")
        assert len(errors) == 1


class TestLoad:

    def test_mapa_de_contextos(self, tmp_path):
        path = tmp_path / "c.json"
        path.write_text(json.dumps({
            "a": {"value": "A", "context": "ctx", "notes": "n"},
            "b": {"value": "B", "context": ""},
            "g": {"h": {"value": "H", "tone": "playful"}},
        }), encoding="utf-8")
        assert load_context_map(path) == {"a": "ctx | Notes: n", "g.h": "Tone: playful"}

    def test_archivo_corrupto_devuelve_vacio(self, tmp_path):
        path = tmp_path / "c.json"
        path.write_text("{", encoding="utf-8")
        assert load_context_map(path) == {}

    def test_describe_vacio(self):
        assert describe_context({"value": "x", "context": ""}) is None

    def test_ruta_hermana(self, tmp_path):
        assert context_path_for(tmp_path / "common.json") == tmp_path / "common.context.json"
