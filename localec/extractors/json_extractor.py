# extractors/json_extractor.py
import fnmatch
import glob
import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from localec.config import ExtractorConfig
from localec.extractors.base import BaseExtractor
from localec.extractors.context import CONTEXT_SUFFIX, context_path_for, load_context_map
from localec.hashing import compute_hash, extract_placeholders, generate_unit_id
from localec.planner.models import SourceUnit

logger = logging.getLogger(__name__)

# Se aplican cuando el extractor no declara exclude propio
_DEFAULT_EXCLUDE = ["**/node_modules/**", "**/dist/**"]

SCHEMA_VERSION = 1


class JsonExtractor(BaseExtractor):
    """
    Extrae cada hoja string de archivos JSON de locales.

    Las claves anidadas se unen con "." y los índices de array son un
    segmento más: {"steps": ["a", "b"]} → steps.0, steps.1.
    """

    type = "json"

    def __init__(self, root: Optional[Path] = None):
        self._root = Path(root) if root else Path.cwd()

    def extract(self, config: ExtractorConfig) -> list[SourceUnit]:
        units: list[SourceUnit] = []
        explicit_context = (
            self._load_contexts(self._resolve(config.context_file))
            if config.context_file else None
        )

        for path in self.find_files(config):
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
                logger.error("No se pudo extraer de %s: %s", path, e)
                continue

            contexts = explicit_context
            if contexts is None:
                sibling  = context_path_for(path)
                contexts = self._load_contexts(sibling) if sibling.exists() else {}

            file_units = list(self._walk(data, [], str(path), config.key_prefix, contexts))
            logger.debug("%s: %d strings", path, len(file_units))
            units.extend(file_units)

        return units

    def find_files(self, config: ExtractorConfig) -> list[Path]:
        exclude = config.exclude or _DEFAULT_EXCLUDE
        found: set[Path] = set()

        for pattern in config.pattern:
            full_pattern = pattern if os.path.isabs(pattern) else str(self._root / pattern)
            for match in glob.glob(full_pattern, recursive=True):
                path = Path(match)
                if not path.is_file() or path.name.endswith(CONTEXT_SUFFIX):
                    continue
                if self._is_excluded(path, exclude):
                    continue
                found.add(path.resolve())

        return sorted(found)

    def _walk(self, node: Any, path: list[str], source_file: str, key_prefix, contexts):
        if isinstance(node, str):
            relative = ".".join(path)
            key_path = f"{key_prefix}.{relative}" if key_prefix else relative
            yield _build_unit(key_path, node, source_file, contexts.get(relative))
        elif isinstance(node, list):
            for i, item in enumerate(node):
                yield from self._walk(item, path + [str(i)], source_file, key_prefix, contexts)
        elif isinstance(node, dict):
            for key, value in node.items():
                yield from self._walk(value, path + [str(key)], source_file, key_prefix, contexts)
        # números, booleanos y null no son traducibles

    def _is_excluded(self, path: Path, exclude: list[str]) -> bool:
        try:
            relative = path.resolve().relative_to(self._root.resolve()).as_posix()
        except ValueError:
            relative = path.as_posix()
        return any(
            fnmatch.fnmatch(relative, pattern) or fnmatch.fnmatch(path.as_posix(), pattern)
            for pattern in exclude
        )

    def _resolve(self, path: str) -> Path:
        p = Path(path)
        return p if p.is_absolute() else self._root / p

    def _load_contexts(self, path: Path) -> dict[str, str]:
        if not path.exists():
            logger.warning("Archivo de contexto no encontrado: %s", path)
            return {}
        return load_context_map(path)


def _build_unit(key_path: str, text: str, source_file: str, context: Optional[str]) -> SourceUnit:
    return SourceUnit(
        unit_id        = generate_unit_id(key_path, source_file),
        key_path       = key_path,
        source_text    = text,
        source_hash    = compute_hash(text),
        source_file    = source_file,
        placeholders   = extract_placeholders(text),
        schema_version = SCHEMA_VERSION,
        context        = context,
    )
