# extractors/context.py
"""
Archivos de contexto: un JSON con la misma forma que el archivo origen
donde cada hoja es un objeto de metadatos:

    {"value": "Save", "context": "Button in the editor toolbar",
     "notes": "...", "maxLength": 12, "tone": "imperative"}

El contexto acaba en SourceUnit.context y en las notas del prompt.
"""
import json
import logging
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

CONTEXT_SUFFIX = ".context.json"


def is_context_metadata(value: Any) -> bool:
    return isinstance(value, dict) and "value" in value


def context_path_for(source_file: Path) -> Path:
    """common.json → common.context.json, en el mismo directorio."""
    return source_file.with_name(source_file.stem + CONTEXT_SUFFIX)


def load_context_map(context_file: Path) -> dict[str, str]:
    """
    Lee un archivo de contexto y devuelve {key_path: texto de contexto}.
    Las hojas sin ningún dato útil no aparecen. Si el archivo no se puede
    leer devuelve {} y deja constancia en el log.
    """
    try:
        data = json.loads(Path(context_file).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Archivo de contexto ilegible %s: %s", context_file, e)
        return {}

    contexts: dict[str, str] = {}
    for key_path, meta in _walk_metadata(data, []):
        text = describe_context(meta)
        if text:
            contexts[key_path] = text
    return contexts


def describe_context(meta: dict) -> Optional[str]:
    parts = []
    if meta.get("context"):
        parts.append(str(meta["context"]))
    if meta.get("notes"):
        parts.append(f"Notes: {meta['notes']}")
    if meta.get("maxLength"):
        parts.append(f"Max length: {meta['maxLength']} characters")
    if meta.get("tone"):
        parts.append(f"Tone: {meta['tone']}")
    return " | ".join(parts) or None


def generate_context_template(source: Path, output: Path, merge: bool = False) -> int:
    """
    Crea (o actualiza con merge=True) la plantilla de contexto de un archivo origen.
    Al fusionar conserva el contexto ya escrito, añade claves nuevas y
    descarta las que ya no existen en el origen. Devuelve el número de hojas.
    """
    source_data = json.loads(Path(source).read_text(encoding="utf-8"))
    generated   = source_to_context_structure(source_data)

    output = Path(output)
    if merge and output.exists():
        existing  = json.loads(output.read_text(encoding="utf-8"))
        generated = merge_context_files(existing, generated)

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps(generated, ensure_ascii=False, indent=2) + "\n", encoding="utf-8")

    return sum(1 for _ in _walk_metadata(generated, []))


def source_to_context_structure(source: Any) -> Any:
    if isinstance(source, str):
        return {"value": source, "context": ""}
    if isinstance(source, list):
        return {str(i): source_to_context_structure(v) for i, v in enumerate(source)}
    if isinstance(source, dict):
        return {k: source_to_context_structure(v) for k, v in source.items()}
    return {}


def merge_context_files(existing: dict, generated: dict) -> dict:
    result = {}
    for key, value in generated.items():
        old = existing.get(key) if isinstance(existing, dict) else None

        if is_context_metadata(value):
            if is_context_metadata(old):
                merged = {"value": value["value"], "context": old.get("context") or value["context"]}
                for extra in ("notes", "maxLength", "tone"):
                    if old.get(extra) is not None:
                        merged[extra] = old[extra]
                result[key] = merged
            else:
                result[key] = value
        elif isinstance(old, dict) and not is_context_metadata(old):
            result[key] = merge_context_files(old, value)
        else:
            result[key] = value
    return result


def validate_context_file(source: Path, context: Path) -> tuple[list[str], list[str]]:
    """Compara la estructura del contexto con la del origen. Devuelve (errores, warnings)."""
    errors:   list[str] = []
    warnings: list[str] = []

    try:
        source_data  = json.loads(Path(source).read_text(encoding="utf-8"))
        context_data = json.loads(Path(context).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        errors.append(f"No se pudo validar: {e}")
        return errors, warnings

    _validate_structure(source_data, context_data, [], errors, warnings)
    return errors, warnings


def _validate_structure(source, context, path, errors, warnings) -> None:
    current = ".".join(path)

    if isinstance(source, str):
        if not is_context_metadata(context):
            errors.append(f"{current}: se esperaban metadatos de contexto, hay un objeto anidado")
        elif context["value"] != source:
            warnings.append(f'{current}: el valor "{context["value"]}" no coincide con el origen "{source}"')
        return

    if isinstance(source, list):
        source = {str(i): v for i, v in enumerate(source)}
    if not isinstance(source, dict):
        return
    if not isinstance(context, dict) or is_context_metadata(context):
        errors.append(f"{current}: se esperaba un objeto anidado")
        return

    for key, value in source.items():
        if key in context:
            _validate_structure(value, context[key], path + [key], errors, warnings)
        else:
            warnings.append(f"{_join(current, key)}: falta en el archivo de contexto")

    for key in context:
        if key not in source:
            warnings.append(f"{_join(current, key)}: clave extra en el contexto (no existe en el origen)")


def _walk_metadata(data: Any, path: list[str]):
    if is_context_metadata(data):
        yield ".".join(path), data
    elif isinstance(data, dict):
        for key, value in data.items():
            yield from _walk_metadata(value, path + [str(key)])


def _join(prefix: str, key: str) -> str:
    return f"{prefix}.{key}" if prefix else key
