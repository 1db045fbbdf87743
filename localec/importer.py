# localec/importer.py
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from localec.hashing import compute_hash
from localec.storage.models import ImportRecord
from localec.writer import nested_to_flat

logger = logging.getLogger(__name__)


@dataclass
class FileCoverage:
    total_keys:   int
    matched_keys: int
    coverage:     float                       # porcentaje 0-100
    missing_keys: list[str] = field(default_factory=list)


class TranslationImporter:
    """
    Convierte traducciones ya existentes (hechas antes de adoptar localec)
    en ImportRecords para el ledger. No escribe nada: el compilador decide
    si se importan o es solo un dry-run.
    """

    def __init__(self, key_prefix: Optional[str] = None):
        self._key_prefix = key_prefix

    def import_from_files(self, source: Path, target: Path, lang_code: str) -> list[ImportRecord]:
        """Un registro por clave presente en ambos archivos con texto no vacío en los dos."""
        source_flat = _read_flat(source)
        target_flat = _read_flat(target)

        records = []
        for key, source_text in source_flat.items():
            translated = target_flat.get(key)
            if not source_text or not translated:
                continue
            records.append(ImportRecord(
                key_path    = self._key(key),
                lang_code   = lang_code,
                source_hash = compute_hash(source_text),
                target_hash = compute_hash(translated),
            ))

        logger.debug(
            "%s → %s: %d claves coincidentes de %d",
            source, target, len(records), len(source_flat),
        )
        return records

    def import_from_multiple_files(
        self,
        source:  Path,
        targets: dict[str, Path],
    ) -> list[ImportRecord]:
        """targets: {lang_code: ruta del archivo traducido}."""
        records: list[ImportRecord] = []
        for lang_code, target in targets.items():
            records.extend(self.import_from_files(source, target, lang_code))
        return records

    def analyze_coverage(self, source: Path, target: Path) -> FileCoverage:
        source_keys = list(_read_flat(source))
        target_keys = set(_read_flat(target))

        missing = [k for k in source_keys if k not in target_keys]
        matched = len(source_keys) - len(missing)
        total   = len(source_keys)

        return FileCoverage(
            total_keys   = total,
            matched_keys = matched,
            coverage     = (matched / total * 100) if total else 0.0,
            missing_keys = [self._key(k) for k in missing],
        )

    def _key(self, key: str) -> str:
        return f"{self._key_prefix}.{key}" if self._key_prefix else key


def _read_flat(path: Path) -> dict[str, str]:
    with Path(path).open(encoding="utf-8") as f:
        return nested_to_flat(json.load(f))
