# localec/hashing.py
import hashlib
import re
from typing import Optional

# Orden irrelevante: el resultado es la unión de todos los patrones.
# {{x}} también matchea como "{{x}" con el primer patrón, comportamiento aceptado.
_PLACEHOLDER_PATTERNS = [
    re.compile(r"\{([^}]+)\}"),        # {var}
    re.compile(r"\{\{([^}]+)\}\}"),    # {{var}}
    re.compile(r"%[sdif]"),            # %s, %d, %i, %f
    re.compile(r"\$\{([^}]+)\}"),      # ${var}
    re.compile(r"\$\d+"),              # $1, $2...
]

_UNIT_ID_LENGTH     = 16
_CONTEXT_SIG_LENGTH = 16


def compute_hash(content: str) -> str:
    """SHA-256 del texto en UTF-8. Es el oráculo de "¿cambió este texto?"."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def compute_context_signature(context: Optional[str]) -> Optional[str]:
    """Firma corta del contexto. None si no hay contexto."""
    if not context:
        return None
    return compute_hash(context)[:_CONTEXT_SIG_LENGTH]


def extract_placeholders(text: str) -> list[str]:
    """
    Devuelve los placeholders tal como aparecen en el texto
    (no el nombre de la variable), sin duplicados y ordenados.
    """
    found: set[str] = set()
    for pattern in _PLACEHOLDER_PATTERNS:
        for match in pattern.finditer(text):
            found.add(match.group(0))
    return sorted(found)


def generate_unit_id(key_path: str, source_file: str) -> str:
    """Id corto y estable para (archivo, clave)."""
    return compute_hash(f"{source_file}:{key_path}")[:_UNIT_ID_LENGTH]
