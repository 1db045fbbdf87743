# providers/claude.py
import logging

import anthropic

from localec.config import ProviderConfig
from localec.providers.base import BaseProvider
from localec.providers.models import PromptTemplate

logger = logging.getLogger(__name__)

_DEFAULT_MAX_TOKENS = 4096


class ClaudeProvider(BaseProvider):

    retryable_errors = (
        anthropic.RateLimitError,
        anthropic.APITimeoutError,
        anthropic.APIConnectionError,
        anthropic.InternalServerError,
    )
    content_errors = (anthropic.BadRequestError,)

    input_cost_per_1k  = 0.003
    output_cost_per_1k = 0.015

    def __init__(self, config: ProviderConfig):
        super().__init__(config)
        self._client = anthropic.Anthropic(
            api_key     = config.api_key,
            timeout     = config.timeout_seconds,
            max_retries = 0,   # los reintentos los hace BaseProvider
        )

    def _complete(self, prompt: PromptTemplate) -> tuple[str, int, int]:
        try:
            response = self._client.messages.create(
                model       = self._config.model,
                max_tokens  = prompt.max_tokens or _DEFAULT_MAX_TOKENS,
                temperature = _temperature(prompt, self._config),
                system      = prompt.system,
                messages    = [{"role": "user", "content": prompt.user}],
            )
        except anthropic.BadRequestError as e:
            # Error de contenido, no de disponibilidad
            logger.error("Claude BadRequest en batch: %s", e)
            raise

        raw_text = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )
        return raw_text, response.usage.input_tokens, response.usage.output_tokens


def _temperature(prompt: PromptTemplate, config: ProviderConfig) -> float:
    return prompt.temperature if prompt.temperature is not None else config.temperature
