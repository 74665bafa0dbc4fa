from typing import Any

import openai

from models.model_response import TokenUsage
from utils.errors import ModelError
from utils.logger import get_logger

from .base_client import BaseAIClient

logger = get_logger(__name__)


class OpenAIClient(BaseAIClient):
    """
    A client for the OpenAI chat completions API.
    Used for query expansion, semantic scoring and summaries.
    """

    provider_name = "openai"

    def __init__(self, api_key: str, model_name: str = "gpt-4o-mini", client: Any = None, **kwargs):
        """
        Initialize the OpenAI client.

        Args:
            api_key: The OpenAI API key
            model_name: The name of the model to use (default: gpt-4o-mini)
            client: Pre-built SDK client (mainly for tests)
        """
        super().__init__(api_key, model_name=model_name, **kwargs)
        self.client = client or openai.OpenAI(api_key=api_key)

    def _complete(
        self, prompt: str, *, model: str, temperature: float, max_tokens: int
    ) -> tuple[Any, TokenUsage, str | None]:
        try:
            response = self.client.chat.completions.create(
                model=model,
                messages=[{"role": "user", "content": prompt}],
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except Exception as e:
            logger.error(
                f"OpenAI completion failed: {e}",
                extra={"extra_fields": {"model": model, "error_type": type(e).__name__}},
            )
            raise ModelError(
                f"OpenAI completion failed: {e}", details={"model": model, "provider": "openai"}
            ) from e

        usage = TokenUsage()
        if getattr(response, "usage", None) is not None:
            usage = TokenUsage(
                prompt_tokens=response.usage.prompt_tokens or 0,
                completion_tokens=response.usage.completion_tokens or 0,
                total_tokens=response.usage.total_tokens or 0,
            )

        if not response.choices:
            return None, usage, None

        choice = response.choices[0]
        return choice.message.content, usage, getattr(choice, "finish_reason", None)
