# providers/router.py
import logging

from localec.planner.models import TranslationBatch
from localec.providers.base import BaseProvider
from localec.providers.models import BatchTranslation, PromptTemplate

logger = logging.getLogger(__name__)


class AllProvidersExhaustedError(Exception):
    """Ningún proveedor de la cadena pudo traducir el batch."""
    pass


class ProviderRouter:
    """
    Decide qué proveedor usar en cada batch.
    El compilador llama a ProviderRouter.translate(), nunca a un adaptador directamente.

    - El primer proveedor es el primario; el resto son su cadena de fallback
    - Failover ante errores de red, rate limit o respuestas no parseables
    - Los errores de contenido se propagan: fallarían igual en cualquier modelo
    """

    def __init__(self, providers: list[BaseProvider]):
        if not providers:
            raise ValueError("El router necesita al menos un proveedor")
        self._providers = providers

    @property
    def primary(self) -> BaseProvider:
        return self._providers[0]

    @property
    def name(self) -> str:
        return self.primary.name

    @property
    def model_fingerprint(self) -> str:
        return self.primary.model_fingerprint

    def estimate_cost(self, batch: TranslationBatch) -> float:
        return self.primary.estimate_cost(batch)

    def translate(self, batch: TranslationBatch, prompt: PromptTemplate) -> BatchTranslation:
        last_error: Exception | None = None

        for provider in self._providers:
            try:
                logger.debug("Batch %s -> %s", batch.batch_id, provider.name)
                result = provider.translate(batch, prompt)
                logger.info(
                    "Batch %s traducido con %s | tokens: %d+%d",
                    batch.batch_id,
                    provider.name,
                    result.tokens_input,
                    result.tokens_output,
                )
                return result

            except Exception as e:
                if provider.is_content_error(e):
                    logger.error(
                        "Error de contenido en %s, no se hace failover: %s",
                        provider.name, e,
                    )
                    raise

                logger.warning(
                    "Proveedor %s falló: %s. Pasando al siguiente.",
                    provider.name, e,
                )
                last_error = e

        raise AllProvidersExhaustedError(
            f"Ningún proveedor disponible. Último error: {last_error}"
        ) from last_error

    def provider_names(self) -> list[str]:
        return [p.name for p in self._providers]
