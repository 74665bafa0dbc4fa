"""LLM-backed summaries for extracted documents."""

import re
from typing import Literal

from api.base_client import LanguageModel
from utils.logger import get_logger

logger = get_logger(__name__)

DetailLevel = Literal["brief", "detailed", "comprehensive"]

_INSTRUCTIONS = {
    "brief": "Summarize the following text concisely, keeping only the main points",
    "detailed": "Summarize the following text in detail, keeping the important information",
    "comprehensive": "Summarize the following text comprehensively, including all important details",
}

# Keep prompts bounded regardless of page size
MAX_PROMPT_CHARS = 12000


class AISummarizer:
    def __init__(self, language_model: LanguageModel):
        self.language_model = language_model

    def summarize(
        self, content: str, max_length: int = 1000, detail_level: DetailLevel = "brief"
    ) -> str:
        """
        Summarize content to roughly max_length characters.

        Short content is returned unchanged. Model failures fall back to an
        extractive summary built from the leading sentences.
        """
        if len(content) <= max_length:
            return content

        prompt = self._build_prompt(content, detail_level, max_length)
        try:
            response = self.language_model.generate_text(
                prompt, temperature=0.3, max_tokens=max(64, max_length // 3)
            )
            summary = self._post_process(response.text)
        except Exception as e:
            logger.warning(
                "Summary generation failed, using extractive fallback",
                extra={"extra_fields": {"error": str(e), "error_type": type(e).__name__}},
            )
            return self.fallback_summary(content, max_length)

        return summary or self.fallback_summary(content, max_length)

    @staticmethod
    def _build_prompt(content: str, detail_level: DetailLevel, max_length: int) -> str:
        instruction = _INSTRUCTIONS.get(detail_level, _INSTRUCTIONS["brief"])
        return (
            f"{instruction}, in at most {max_length} characters.\n\n"
            "===== TEXT =====\n"
            f"{content[:MAX_PROMPT_CHARS]}\n"
            "================\n\n"
            "Summary:"
        )

    @staticmethod
    def _post_process(raw: str) -> str:
        text = (raw or "").strip()
        text = re.sub(r"^summary\s*:\s*", "", text, flags=re.IGNORECASE)
        return text.strip()

    @staticmethod
    def fallback_summary(content: str, max_length: int) -> str:
        sentences = re.split(r"(?<=[.!?])\s+", content.strip())
        summary = ""
        for sentence in sentences:
            candidate = f"{summary} {sentence}".strip()
            if len(candidate) > max_length:
                break
            summary = candidate

        if not summary:
            return content[: max(0, max_length - 3)].rstrip() + "..."
        return summary
