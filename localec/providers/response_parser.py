# providers/response_parser.py
import json
import logging
import re
from typing import Any, Optional

logger = logging.getLogger(__name__)

# Captura un array dentro de bloques ```json ... ``` o ``` ... ```
_MARKDOWN_ARRAY_RE = re.compile(r"```(?:json)?\s*(\[.*?\])\s*```", re.DOTALL)

# Primer array JSON que aparezca en el texto libre
_BARE_ARRAY_RE = re.compile(r"\[.*\]", re.DOTALL)

# Claves aceptadas cuando el modelo envuelve el array en un objeto (modo JSON de Gemini)
_WRAPPER_KEYS = ("translations", "result", "results", "items")


def parse_translation_array(raw_text: str, expected: int, provider_name: str) -> Optional[list[str]]:
    """
    Intenta extraer la lista de traducciones con degradación progresiva.

    Estrategia:
    1. JSON directo (array, u objeto con "translations")
    2. Array dentro de bloque markdown
    3. Primer array en el texto libre

    Devuelve exactamente `expected` strings: si el modelo devolvió menos,
    las posiciones faltantes quedan vacías (la validación las rechazará).
    Devuelve None si no hay ningún array; nunca lanza.
    """
    text = (raw_text or "").strip()

    items = _try_parse(text)

    if items is None:
        match = _MARKDOWN_ARRAY_RE.search(text)
        if match:
            items = _try_parse(match.group(1))
            if items is not None:
                logger.warning(
                    "%s envolvió la respuesta en markdown, considera reforzar el prompt",
                    provider_name,
                )

    if items is None:
        match = _BARE_ARRAY_RE.search(text)
        if match:
            items = _try_parse(match.group(0))
            if items is not None:
                logger.warning("%s devolvió JSON con texto extra alrededor", provider_name)

    if items is None:
        logger.error("%s devolvió una respuesta no parseable", provider_name)
        return None

    if len(items) != expected:
        logger.warning(
            "%s devolvió %d traducciones para %d strings",
            provider_name, len(items), expected,
        )

    texts = [_as_text(item) for item in items[:expected]]
    texts.extend("" for _ in range(expected - len(texts)))
    return texts


def _try_parse(text: str) -> Optional[list]:
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return None

    if isinstance(data, list):
        return data

    if isinstance(data, dict):
        for key in _WRAPPER_KEYS:
            if isinstance(data.get(key), list):
                return data[key]
    return None


def _as_text(item: Any) -> str:
    if item is None:
        return ""
    if isinstance(item, dict):
        return str(item.get("translation") or item.get("text") or "")
    return str(item)
