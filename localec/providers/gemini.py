# providers/gemini.py
import google.generativeai as genai
from google.api_core import exceptions as google_exceptions

from localec.config import ProviderConfig
from localec.providers.base import BaseProvider
from localec.providers.models import PromptTemplate


class GeminiProvider(BaseProvider):

    retryable_errors = (
        google_exceptions.ResourceExhausted,   # 429
        google_exceptions.DeadlineExceeded,    # timeout
        google_exceptions.ServiceUnavailable,
    )
    content_errors = (google_exceptions.InvalidArgument,)

    input_cost_per_1k  = 0.0001
    output_cost_per_1k = 0.0004

    def __init__(self, config: ProviderConfig):
        super().__init__(config)
        genai.configure(api_key=config.api_key)
        self._model = genai.GenerativeModel(
            model_name        = config.model,
            generation_config = genai.GenerationConfig(
                temperature        = config.temperature,
                response_mime_type = "application/json",   # Gemini fuerza JSON nativo
            ),
        )

    def _complete(self, prompt: PromptTemplate) -> tuple[str, int, int]:
        full_prompt = f"{prompt.system}\n\n{prompt.user}"

        response = self._model.generate_content(
            full_prompt,
            request_options={"timeout": self._config.timeout_seconds},
        )

        usage = response.usage_metadata
        return response.text, usage.prompt_token_count, usage.candidates_token_count
