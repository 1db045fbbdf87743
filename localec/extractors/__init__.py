import logging
from pathlib import Path
from typing import Optional

from localec.config import ExtractorConfig
from localec.extractors.base import BaseExtractor
from localec.extractors.json_extractor import JsonExtractor
from localec.planner.models import SourceUnit

logger = logging.getLogger(__name__)


class UnsupportedExtractorError(Exception):
    """Ningún extractor registrado maneja el tipo pedido."""
    pass


def extract_all(configs: list[ExtractorConfig], root: Optional[Path] = None) -> list[SourceUnit]:
    """
    Ejecuta todos los extractores configurados, en orden.
    Si una misma key_path aparece dos veces gana la primera aparición.
    """
    extractors: dict[str, BaseExtractor] = {"json": JsonExtractor(root)}
    units: list[SourceUnit] = []
    seen:  set[str] = set()

    for config in configs:
        extractor = extractors.get(config.type)
        if extractor is None:
            raise UnsupportedExtractorError(f"Tipo de extractor no soportado: {config.type}")
        for unit in extractor.extract(config):
            if unit.key_path in seen:
                logger.warning("Clave duplicada %s en %s, se ignora", unit.key_path, unit.source_file)
                continue
            seen.add(unit.key_path)
            units.append(unit)

    return units


__all__ = [
    "BaseExtractor",
    "JsonExtractor",
    "UnsupportedExtractorError",
    "extract_all",
]
