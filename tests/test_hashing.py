# tests/test_hashing.py
import hashlib

from localec.hashing import (
    compute_context_signature,
    compute_hash,
    extract_placeholders,
    generate_unit_id,
)


class TestComputeHash:

    def test_sha256_hex_de_64_caracteres(self):
        h = compute_hash("Hello")
        assert len(h) == 64
        assert h == hashlib.sha256("Hello".encode("utf-8")).hexdigest()

    def test_determinista(self):
        assert compute_hash("Save changes") == compute_hash("Save changes")

    def test_distingue_mayusculas_y_espacios(self):
        assert compute_hash("save") != compute_hash("Save")
        assert compute_hash("save") != compute_hash("save ")

    def test_unicode(self):
        assert compute_hash("¡Hola, 世界!") == hashlib.sha256("¡Hola, 世界!".encode("utf-8")).hexdigest()


class TestContextSignature:

    def test_dieciseis_caracteres(self):
        sig = compute_context_signature("Button in the toolbar")
        assert sig == compute_hash("Button in the toolbar")[:16]

    def test_sin_contexto_devuelve_none(self):
        assert compute_context_signature(None) is None
        assert compute_context_signature("") is None


class TestExtractPlaceholders:

    def test_llaves_simples(self):
        assert extract_placeholders("Hello {name}") == ["{name}"]

    def test_printf(self):
        assert extract_placeholders("%d files, %s left") == ["%d", "%s"]

    def test_template_literal_incluye_solapamiento(self):
        # igual que con {{x}}, el patrón simple captura "{amount}"
        assert extract_placeholders("Total: ${amount}") == ["${amount}", "{amount}"]

    def test_posicionales(self):
        assert extract_placeholders("$1 of $2") == ["$1", "$2"]

    def test_dobles_llaves_incluye_solapamiento(self):
        # El patrón simple también captura "{{count}": comportamiento aceptado
        assert extract_placeholders("{{count}} items") == ["{{count}", "{{count}}"]

    def test_sin_duplicados_y_ordenado(self):
        result = extract_placeholders("{b} {a} {b}")
        assert result == ["{a}", "{b}"]

    def test_sin_placeholders(self):
        assert extract_placeholders("Plain text") == []


class TestUnitId:

    def test_dieciseis_caracteres_estable(self):
        uid = generate_unit_id("common.save", "locales/en.json")
        assert uid == compute_hash("locales/en.json:common.save")[:16]
        assert uid == generate_unit_id("common.save", "locales/en.json")

    def test_depende_del_archivo(self):
        assert generate_unit_id("a", "x.json") != generate_unit_id("a", "y.json")
