# tests/validation/test_pipeline.py
import pytest

from localec.config import ValidationConfig
from localec.hashing import compute_hash, extract_placeholders
from localec.planner.models import SourceUnit
from localec.providers.models import TranslationResult
from localec.validation.models import IssueType
from localec.validation.pipeline import TranslationValidationPipeline

# token → issues esperados; {{x}} y ${x} también dejan el match solapado de {x}
PLACEHOLDER_CASES = [
    ("{name}",    ["{name}"]),
    ("{{count}}", ["{{count}", "{{count}}"]),
    ("${var}",    ["${var}", "{var}"]),
    ("%s",        ["%s"]),
    ("$1",        ["$1"]),
]


def make_unit(text: str) -> SourceUnit:
    return SourceUnit(
        unit_id      = "u1",
        key_path     = "greeting",
        source_text  = text,
        source_hash  = compute_hash(text),
        source_file  = "en.json",
        placeholders = extract_placeholders(text),
    )


def validate(source: str, translation: str, **config):
    pipeline = TranslationValidationPipeline(ValidationConfig(**config))
    return pipeline.validate(TranslationResult("u1", translation), make_unit(source))


class TestValidationPipeline:

    def test_traduccion_correcta(self):
        result = validate("Hello {name}", "Hola {name}")
        assert result.is_valid
        assert result.errors == []
        assert result.confidence == 1.0

    @pytest.mark.parametrize("empty", ["", "   ", "\n\t"])
    def test_vacia_corta_el_pipeline(self, empty):
        result = validate("Hello {name}", empty)
        assert not result.is_valid
        assert result.error_types() == [IssueType.EMPTY_TRANSLATION]
        assert result.confidence == 0.0

    @pytest.mark.parametrize("token, fields", PLACEHOLDER_CASES)
    def test_placeholder_faltante(self, token, fields):
        result = validate(f"Hello {token} friend", "Hola amigo")
        assert not result.is_valid
        assert result.error_types() == [IssueType.MISSING_PLACEHOLDER] * len(fields)
        assert [e.field for e in result.errors] == fields
        assert result.confidence == pytest.approx(0.5)

    @pytest.mark.parametrize("token, fields", PLACEHOLDER_CASES)
    def test_placeholder_extra(self, token, fields):
        result = validate("Hello friend", f"Hola {token} amigo")
        assert result.error_types() == [IssueType.EXTRA_PLACEHOLDER] * len(fields)
        assert [e.field for e in result.errors] == fields

    def test_un_issue_por_token(self):
        result = validate("{a} and {b}", "y")
        missing = [e for e in result.errors if e.type == IssueType.MISSING_PLACEHOLDER]
        assert [e.field for e in missing] == ["{a}", "{b}"]

    def test_placeholders_desactivado(self):
        result = validate("Hello {name}", "Hola", preserve_placeholders=False)
        assert result.is_valid

    def test_ratio_de_longitud_es_warning(self):
        result = validate("Hi", "Hola, ¿qué tal estás hoy?")
        assert result.is_valid
        assert result.warning_types() == [IssueType.LENGTH_RATIO_EXCEEDED]
        assert result.confidence == pytest.approx(0.8)

    def test_ratio_configurable(self):
        result = validate("Hello", "Hola amigo", max_length_ratio=10)
        assert result.warnings == []

    def test_fuga_texto_identico(self):
        result = validate("Save changes", "  save CHANGES ")
        assert not result.is_valid
        assert result.error_types() == [IssueType.SOURCE_LEAKAGE]
        assert result.confidence == pytest.approx(0.3)

    def test_fuga_por_solapamiento_de_palabras(self):
        result = validate(
            "the quick brown fox jumps over the lazy dog",
            "the quick brown fox jumps over the lazy perro",
        )
        assert IssueType.SOURCE_LEAKAGE in result.error_types()

    def test_fuga_desactivada(self):
        result = validate("OK", "OK", prevent_source_leakage=False)
        assert result.is_valid

    def test_marca_perdida_es_warning(self):
        result = validate("Open Acme Cloud", "Abrir la nube", brand_names=["Acme"])
        assert result.is_valid
        assert result.warning_types() == [IssueType.MISSING_BRAND_NAME]
        assert result.confidence == 1.0

    def test_marca_preservada(self):
        result = validate("Open Acme Cloud", "Abrir Acme Cloud ahora", brand_names=["Acme"])
        assert IssueType.MISSING_BRAND_NAME not in result.warning_types()

    def test_penalizaciones_se_multiplican(self):
        # placeholder faltante (×0.5) + fuga (×0.3)
        result = validate("Hello {name} my very good friend", "hello my very good friend")
        assert set(result.error_types()) == {IssueType.MISSING_PLACEHOLDER, IssueType.SOURCE_LEAKAGE}
        assert result.confidence == pytest.approx(0.15)

    def test_config_por_defecto(self):
        pipeline = TranslationValidationPipeline()
        result = pipeline.validate(TranslationResult("u1", "Hola"), make_unit("Hello"))
        assert result.is_valid
