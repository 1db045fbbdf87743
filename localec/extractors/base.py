# extractors/base.py
from abc import ABC, abstractmethod

from localec.config import ExtractorConfig
from localec.planner.models import SourceUnit


class BaseExtractor(ABC):
    """
    Contrato para todos los extractores de strings traducibles.
    Para añadir un formato nuevo: crear una subclase y registrarla en el factory.
    """

    #: valor de ExtractorConfig.type que maneja este extractor
    type: str = ""

    @abstractmethod
    def extract(self, config: ExtractorConfig) -> list[SourceUnit]:
        """
        Devuelve una SourceUnit por cada string traducible encontrado.
        Un archivo ilegible se registra en el log y se omite; nunca aborta
        la extracción completa.
        """
        ...
