import time
from abc import ABC, abstractmethod
from typing import Any, Protocol, runtime_checkable

from models.model_response import ModelResponse, TokenUsage


@runtime_checkable
class LanguageModel(Protocol):
    """Anything that can turn a prompt into a ModelResponse."""

    def generate_text(
        self, prompt: str, *, temperature: float = 0.7, max_tokens: int = 500
    ) -> ModelResponse: ...


class BaseAIClient(ABC):
    """
    Abstract base class for language-model clients.

    Subclasses call their provider SDK in `_complete` and return the raw reply
    text plus usage; `generate_text` wraps that into a ModelResponse so the
    retrieval pipeline never sees provider-specific response shapes.
    """

    provider_name = "base"

    def __init__(self, api_key: str, model_name: str | None = None, **kwargs):
        """
        Initialize the AI client.

        Args:
            api_key: API key for the AI service
            model_name: Default model used when a call does not override it
            **kwargs: Additional model-specific parameters
        """
        self.api_key = api_key
        self.model_name = model_name

    @abstractmethod
    def _complete(
        self, prompt: str, *, model: str, temperature: float, max_tokens: int
    ) -> tuple[Any, TokenUsage, str | None]:
        """
        Call the provider.

        Returns:
            (raw_text, token_usage, finish_reason). raw_text may be None when the
            provider produced no text.
        """

    def generate_text(
        self,
        prompt: str,
        *,
        temperature: float = 0.7,
        max_tokens: int = 500,
        model: str | None = None,
    ) -> ModelResponse:
        """
        Generate text for a prompt.

        Raises:
            ModelError: provider call failed (raised by subclasses)
        """
        model = model or self.model_name or "unknown"
        start_time = time.time()
        raw_text, usage, finish_reason = self._complete(
            prompt, model=model, temperature=temperature, max_tokens=max_tokens
        )
        return ModelResponse(
            text=self._normalize_text(raw_text),
            provider=self.provider_name,
            model=model,
            latency_ms=int((time.time() - start_time) * 1000),
            token_usage=usage,
            finish_reason=finish_reason,
        )

    @staticmethod
    def _normalize_text(raw_text: Any) -> str:
        if raw_text is None:
            return ""
        if isinstance(raw_text, str):
            return raw_text
        # Some SDKs hand back content parts instead of a plain string
        if isinstance(raw_text, (list, tuple)):
            return "".join(
                part.get("text", "") if isinstance(part, dict) else str(getattr(part, "text", part))
                for part in raw_text
            )
        return str(raw_text)
