# providers/openai_compat.py
import openai

from localec.config import ProviderConfig
from localec.providers.base import BaseProvider
from localec.providers.models import PromptTemplate

# Endpoints por defecto de los servicios que hablan la API de OpenAI
_DEFAULT_BASE_URLS = {
    "local":      "http://localhost:11434/v1",
    "groq":       "https://api.groq.com/openai/v1",
    "openrouter": "https://openrouter.ai/api/v1",
}

_DEFAULT_AZURE_API_VERSION = "2024-06-01"


class OpenAICompatibleProvider(BaseProvider):
    """
    Un solo adaptador para openai, groq, local (Ollama...), azure-openai
    y openrouter: todos exponen chat.completions.
    """

    retryable_errors = (
        openai.RateLimitError,
        openai.APITimeoutError,
        openai.APIConnectionError,
        openai.InternalServerError,
    )
    content_errors = (openai.BadRequestError,)

    input_cost_per_1k  = 0.0025
    output_cost_per_1k = 0.01

    def __init__(self, config: ProviderConfig):
        super().__init__(config)
        self._client = _build_client(config)

    def _complete(self, prompt: PromptTemplate) -> tuple[str, int, int]:
        kwargs = {}
        if prompt.max_tokens:
            kwargs["max_tokens"] = prompt.max_tokens

        response = self._client.chat.completions.create(
            model       = self._config.model,
            temperature = prompt.temperature if prompt.temperature is not None else self._config.temperature,
            messages    = [
                {"role": "system", "content": prompt.system},
                {"role": "user",   "content": prompt.user},
            ],
            **kwargs,
        )

        raw_text = response.choices[0].message.content or ""
        usage    = response.usage
        tokens_in  = usage.prompt_tokens if usage else 0
        tokens_out = usage.completion_tokens if usage else 0
        return raw_text, tokens_in, tokens_out


def _build_client(config: ProviderConfig):
    if config.type == "azure-openai":
        return openai.AzureOpenAI(
            api_key        = config.api_key,
            azure_endpoint = config.base_url,
            api_version    = config.api_version or _DEFAULT_AZURE_API_VERSION,
            timeout        = config.timeout_seconds,
            max_retries    = 0,
        )

    return openai.OpenAI(
        # Los modelos locales no validan la key, pero la SDK exige una
        api_key     = config.api_key or "not-needed",
        base_url    = config.base_url or _DEFAULT_BASE_URLS.get(config.type),
        timeout     = config.timeout_seconds,
        max_retries = 0,
    )
