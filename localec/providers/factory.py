# providers/factory.py
import logging
from typing import Optional

from localec.config import LocalecConfig, ProviderConfig
from localec.providers.base import BaseProvider
from localec.providers.router import ProviderRouter

logger = logging.getLogger(__name__)

# Tipos que no requieren api_key
_KEYLESS_TYPES = ("local",)


def create_provider(config: ProviderConfig) -> BaseProvider:
    """
    Instancia el adaptador que corresponde a config.type.
    Los imports de cada SDK son perezosos: un proyecto que solo usa
    OpenAI no necesita tener instalada la SDK de Gemini.
    """
    if config.type == "anthropic":
        from localec.providers.claude import ClaudeProvider
        return ClaudeProvider(config)

    if config.type == "gemini":
        from localec.providers.gemini import GeminiProvider
        return GeminiProvider(config)

    if config.type in ("openai", "groq", "local", "azure-openai", "openrouter"):
        from localec.providers.openai_compat import OpenAICompatibleProvider
        return OpenAICompatibleProvider(config)

    raise ValueError(f"Tipo de proveedor no soportado: {config.type}")


def build_provider_chain(
    config: LocalecConfig,
    start:  Optional[str] = None,
) -> list[ProviderConfig]:
    """
    Cadena primario → fallback → fallback del fallback...
    Se detiene ante un ciclo. Omite los proveedores sin api_key.
    """
    current = config.provider_by_name(start) if start else config.primary_provider
    chain: list[ProviderConfig] = []
    seen:  set[str] = set()

    while current is not None and current.name not in seen:
        seen.add(current.name)
        if current.api_key or current.type in _KEYLESS_TYPES:
            chain.append(current)
        else:
            logger.warning("%s: sin apiKey, omitiendo", current.name)
        current = config.provider_by_name(current.fallback) if current.fallback else None

    return chain


def build_router(config: LocalecConfig) -> ProviderRouter:
    chain = build_provider_chain(config)
    if not chain:
        raise RuntimeError(
            "Ningún proveedor disponible. "
            "Configura al menos un apiKey en localec.yaml o en el .env"
        )
    return ProviderRouter([create_provider(p) for p in chain])
