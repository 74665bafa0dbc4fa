from typing import Any

from google import genai

from models.model_response import TokenUsage
from utils.errors import ConfigurationError, ModelError
from utils.logger import get_logger

from .base_client import BaseAIClient

logger = get_logger(__name__)


class GeminiClient(BaseAIClient):
    """
    A client for the Google Gemini API using the google.genai package.
    """

    provider_name = "gemini"

    def __init__(
        self, api_key: str, model_name: str = "gemini-2.5-flash-lite", client: Any = None, **kwargs
    ):
        """
        Initialize the Gemini client.

        Args:
            api_key: The Google Gemini API key
            model_name: The name of the model to use
            client: Pre-built SDK client (mainly for tests)
        """
        super().__init__(api_key, model_name=model_name, **kwargs)

        if not api_key and client is None:
            raise ConfigurationError("API key is required for Gemini")

        self.client = client or genai.Client(api_key=api_key)

    def _complete(
        self, prompt: str, *, model: str, temperature: float, max_tokens: int
    ) -> tuple[Any, TokenUsage, str | None]:
        try:
            response = self.client.models.generate_content(
                model=model,
                contents=prompt,
                config={
                    "temperature": temperature,
                    "max_output_tokens": max_tokens,
                },
            )
        except Exception as e:
            logger.error(
                f"Gemini completion failed: {e}",
                extra={"extra_fields": {"model": model, "error_type": type(e).__name__}},
            )
            raise ModelError(
                f"Gemini completion failed: {e}", details={"model": model, "provider": "gemini"}
            ) from e

        text = getattr(response, "text", None)

        usage = TokenUsage()
        usage_metadata = getattr(response, "usage_metadata", None)
        if usage_metadata is not None:
            usage = TokenUsage(
                prompt_tokens=getattr(usage_metadata, "prompt_token_count", 0) or 0,
                completion_tokens=getattr(usage_metadata, "candidates_token_count", 0) or 0,
                total_tokens=getattr(usage_metadata, "total_token_count", 0) or 0,
            )

        finish_reason = None
        candidates = getattr(response, "candidates", None) or []
        if candidates:
            reason = getattr(candidates[0], "finish_reason", None)
            finish_reason = str(getattr(reason, "name", reason)).lower() if reason else None

        return text, usage, finish_reason
