from localec.providers.base import BaseProvider, ProviderError, ProviderResponseError
from localec.providers.factory import build_provider_chain, build_router, create_provider
from localec.providers.models import BatchTranslation, PromptTemplate, TranslationResult
from localec.providers.response_parser import parse_translation_array
from localec.providers.router import AllProvidersExhaustedError, ProviderRouter

__all__ = [
    "BaseProvider",
    "ProviderError",
    "ProviderResponseError",
    "build_provider_chain",
    "build_router",
    "create_provider",
    "BatchTranslation",
    "PromptTemplate",
    "TranslationResult",
    "parse_translation_array",
    "AllProvidersExhaustedError",
    "ProviderRouter",
]
