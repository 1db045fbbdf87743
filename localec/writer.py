# localec/writer.py
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

from localec.config import OutputConfig
from localec.planner.models import TargetLanguage

logger = logging.getLogger(__name__)


class AtomicFileWriter:
    """
    Escribe los archivos de traducción destino.

    La escritura es atómica: se vuelca a un temporal en el mismo directorio
    y se reemplaza con os.replace(). Un proceso que lea el archivo ve la
    versión anterior completa o la nueva completa, nunca una mezcla.
    """

    def __init__(self, indent: int = 2, root: Optional[Path] = None):
        self._indent = indent
        self._root   = root or Path.cwd()

    def output_path(self, language: TargetLanguage, output: OutputConfig) -> Path:
        filename = (
            output.file_naming
            .replace("{shortCode}", language.short_code)
            .replace("{language}", language.language)
        )
        directory = Path(output.dir)
        if not directory.is_absolute():
            directory = self._root / directory
        return directory / filename

    def read_flat(self, path: Path) -> dict[str, str]:
        """Contenido actual del archivo como {key_path: texto}. Vacío si no existe o no es JSON."""
        data = self._read_json(path)
        return nested_to_flat(data)

    def write_translations(self, path: Path, translations: dict[str, str]) -> None:
        """Fusiona las traducciones (claves planas) sobre el contenido existente."""
        if not translations:
            return

        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        merged = deep_merge(self._read_json(path), flat_to_nested(translations))

        fd, tmp_name = tempfile.mkstemp(
            dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(merged, f, ensure_ascii=False, indent=self._indent or None)
                f.write("\n")
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

        logger.debug("%s: %d traducciones escritas", path, len(translations))

    def _read_json(self, path: Path) -> dict:
        path = Path(path)
        if not path.exists():
            return {}
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("No se pudo leer %s, se parte de vacío: %s", path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("%s no contiene un objeto JSON, se parte de vacío", path)
            return {}
        return data


def flat_to_nested(flat: dict[str, str]) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for key_path, value in flat.items():
        *parents, leaf = key_path.split(".")
        current = result
        for key in parents:
            if not isinstance(current.get(key), dict):
                current[key] = {}
            current = current[key]
        current[leaf] = value
    return result


def nested_to_flat(data: Any, prefix: str = "") -> dict[str, str]:
    """Solo las hojas string; los arrays aportan su índice como segmento."""
    flat: dict[str, str] = {}

    if isinstance(data, dict):
        items = data.items()
    elif isinstance(data, list):
        items = ((str(i), v) for i, v in enumerate(data))
    else:
        return flat

    for key, value in items:
        path = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, str):
            flat[path] = value
        else:
            flat.update(nested_to_flat(value, path))
    return flat


def deep_merge(target: dict, source: dict) -> dict:
    """Copia de target con source encima; los valores existentes no tocados se conservan."""
    result = dict(target)
    for key, value in source.items():
        if isinstance(value, dict):
            existing = result.get(key)
            result[key] = deep_merge(existing if isinstance(existing, dict) else {}, value)
        else:
            result[key] = value
    return result
