# providers/base.py
import logging
import time
from abc import ABC, abstractmethod
from typing import Callable, TypeVar

from localec.config import ProviderConfig
from localec.planner.models import TranslationBatch
from localec.providers.models import BatchTranslation, PromptTemplate, TranslationResult
from localec.providers.response_parser import parse_translation_array

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ProviderError(Exception):
    """Error de un proveedor que no es de la SDK subyacente."""
    pass


class ProviderResponseError(ProviderError):
    """El modelo respondió algo que no se puede convertir en traducciones."""
    pass


class BaseProvider(ABC):
    """
    Contrato que deben cumplir todos los adaptadores.
    El compilador y el router solo hablan con esta interfaz.
    Nunca importan claude.py, gemini.py ni openai_compat.py directamente.
    """

    # Errores de la SDK que merecen reintento (red, rate limit, timeout)
    retryable_errors: tuple[type[BaseException], ...] = ()
    # Errores de contenido: el mismo batch fallaría en cualquier modelo
    content_errors:   tuple[type[BaseException], ...] = ()

    # Precio aproximado por 1K tokens (entrada, salida)
    input_cost_per_1k:  float = 0.01
    output_cost_per_1k: float = 0.03

    _base_delay = 1.0

    def __init__(self, config: ProviderConfig):
        self._config = config

    @property
    def name(self) -> str:
        return self._config.name

    @property
    def model_fingerprint(self) -> str:
        return f"{self._config.type}:{self._config.model}"

    def translate(self, batch: TranslationBatch, prompt: PromptTemplate) -> BatchTranslation:
        """
        Envía el batch al modelo y devuelve un resultado por unidad, en orden.
        Reintenta con backoff exponencial los errores retryables hasta
        max_retries; después los propaga para que el router haga failover.
        """
        raw_text, tokens_in, tokens_out = self._with_retries(
            lambda: self._complete(prompt)
        )

        texts = parse_translation_array(raw_text, len(batch.source_units), self.name)
        if texts is None:
            raise ProviderResponseError(
                f"{self.name} devolvió una respuesta sin array JSON de traducciones"
            )

        return BatchTranslation(
            results = [
                TranslationResult(unit_id=unit.unit_id, translated_text=text, confidence=1.0)
                for unit, text in zip(batch.source_units, texts)
            ],
            model_fingerprint = self.model_fingerprint,
            tokens_input      = tokens_in,
            tokens_output     = tokens_out,
            cost_usd          = self.cost_for_usage(tokens_in, tokens_out),
        )

    @abstractmethod
    def _complete(self, prompt: PromptTemplate) -> tuple[str, int, int]:
        """
        Una sola llamada de red. Devuelve (texto, tokens_entrada, tokens_salida).
        Puede lanzar los errores de la SDK tal cual.
        """
        ...

    def estimate_cost(self, batch: TranslationBatch) -> float:
        """Estimación previa: ~4 caracteres por token, salida tan larga como la entrada."""
        if not batch.source_units:
            return 0.0
        chars = sum(len(u.source_text) for u in batch.source_units)
        tokens = chars / 4
        return self.cost_for_usage(tokens, tokens)

    def cost_for_usage(self, tokens_in: float, tokens_out: float) -> float:
        return (
            tokens_in / 1000 * self.input_cost_per_1k
            + tokens_out / 1000 * self.output_cost_per_1k
        )

    def is_content_error(self, error: BaseException) -> bool:
        return isinstance(error, self.content_errors)

    def _with_retries(self, fn: Callable[[], T]) -> T:
        attempt = 0
        while True:
            try:
                return fn()
            except self.retryable_errors as e:
                if attempt >= self._config.max_retries:
                    raise
                delay = self._base_delay * (2 ** attempt)
                logger.warning(
                    "%s error retryable (intento %d/%d), reintentando en %.1fs: %s",
                    self.name, attempt + 1, self._config.max_retries, delay, e,
                )
                time.sleep(delay)
                attempt += 1
