import os
from enum import Enum
from pathlib import Path

from dotenv import load_dotenv

from utils.logger import get_logger

logger = get_logger(__name__)


class ModelType(Enum):
    """Supported language-model providers."""
    OPENAI = "openai"
    GEMINI = "gemini"


class SearchProviderType(Enum):
    """Supported search providers."""
    TAVILY = "tavily"
    GOOGLE = "google"


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        logger.warning(f"Invalid integer for {name}, using default {default}")
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        logger.warning(f"Invalid number for {name}, using default {default}")
        return default


class Config:
    """Configuration management for the research pipeline."""

    def __init__(self, env_file: Path | None = None):
        """Initialize configuration from environment variables (and a .env file if present)."""
        env_path = env_file or Path(__file__).parent.parent / ".env"
        if env_path.exists():
            load_dotenv(dotenv_path=env_path)

        # Language model
        self.OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
        self.GOOGLE_GEMINI_API_KEY = os.getenv("GOOGLE_GEMINI_API_KEY")
        self.MODEL_TYPE = os.getenv("MODEL_TYPE", ModelType.OPENAI.value).lower()
        self.DEFAULT_OPENAI_MODEL = os.getenv("DEFAULT_OPENAI_MODEL")
        self.DEFAULT_GEMINI_MODEL = os.getenv("DEFAULT_GEMINI_MODEL")

        if self.MODEL_TYPE == ModelType.GEMINI.value:
            self.DEFAULT_MODEL = self.DEFAULT_GEMINI_MODEL or os.getenv("DEFAULT_MODEL", "gemini-2.5-flash-lite")
        else:
            self.DEFAULT_MODEL = self.DEFAULT_OPENAI_MODEL or os.getenv("DEFAULT_MODEL", "gpt-4o-mini")

        # Search
        self.SEARCH_PROVIDER = os.getenv("SEARCH_PROVIDER", SearchProviderType.TAVILY.value).lower()
        self.TAVILY_API_KEY = os.getenv("TAVILY_API_KEY")
        self.GOOGLE_SEARCH_API_KEY = os.getenv("GOOGLE_SEARCH_API_KEY")
        self.GOOGLE_SEARCH_ENGINE_ID = os.getenv("GOOGLE_SEARCH_ENGINE_ID")
        self.SEARCH_CACHE_TTL_SECONDS = _env_int("SEARCH_CACHE_TTL_SECONDS", 3600)
        self.SEARCH_RATE_LIMIT_PER_HOUR = _env_int("SEARCH_RATE_LIMIT_PER_HOUR", 100)

        # Fetching
        self.FETCH_USER_AGENT = os.getenv("FETCH_USER_AGENT", "multistage-rag/1.0")

        # Pipeline defaults
        self.RAG_MAX_STAGES = _env_int("RAG_MAX_STAGES", 2)
        self.RAG_MAX_RESULTS_PER_STAGE = _env_int("RAG_MAX_RESULTS_PER_STAGE", 5)
        self.RAG_MIN_SCORE = _env_float("RAG_MIN_SCORE", 0.6)
        self.RAG_FETCH_TIMEOUT_S = _env_float("RAG_FETCH_TIMEOUT_S", 15.0)

    def missing_keys(self) -> list[str]:
        """Names of required settings that are not set for the selected providers."""
        missing = []

        if self.MODEL_TYPE == ModelType.OPENAI.value and not self.OPENAI_API_KEY:
            missing.append("OPENAI_API_KEY")
        elif self.MODEL_TYPE == ModelType.GEMINI.value and not self.GOOGLE_GEMINI_API_KEY:
            missing.append("GOOGLE_GEMINI_API_KEY")

        if self.SEARCH_PROVIDER == SearchProviderType.TAVILY.value and not self.TAVILY_API_KEY:
            missing.append("TAVILY_API_KEY")
        elif self.SEARCH_PROVIDER == SearchProviderType.GOOGLE.value:
            if not self.GOOGLE_SEARCH_API_KEY:
                missing.append("GOOGLE_SEARCH_API_KEY")
            if not self.GOOGLE_SEARCH_ENGINE_ID:
                missing.append("GOOGLE_SEARCH_ENGINE_ID")

        return missing

    def validate(self) -> bool:
        """
        Validate that the selected providers are known and configured.

        Returns:
            bool: True if configuration is valid, False otherwise
        """
        if self.MODEL_TYPE not in {e.value for e in ModelType}:
            logger.error(
                f"Unknown MODEL_TYPE '{self.MODEL_TYPE}'. "
                f"Must be one of: {', '.join(e.value for e in ModelType)}"
            )
            return False

        if self.SEARCH_PROVIDER not in {e.value for e in SearchProviderType}:
            logger.error(
                f"Unknown SEARCH_PROVIDER '{self.SEARCH_PROVIDER}'. "
                f"Must be one of: {', '.join(e.value for e in SearchProviderType)}"
            )
            return False

        missing = self.missing_keys()
        if missing:
            logger.error(f"Missing configuration: {', '.join(missing)}")
            return False

        return True

    def get_model_info(self) -> str:
        if self.MODEL_TYPE == ModelType.OPENAI.value:
            return f"OpenAI ({self.DEFAULT_MODEL})"
        if self.MODEL_TYPE == ModelType.GEMINI.value:
            return f"Google Gemini ({self.DEFAULT_MODEL})"
        return "Unknown"

    def rag_options(self, **overrides):
        """Build RAGOptions from the configured defaults, applying keyword overrides."""
        from orchestrator.multi_stage_rag import RAGOptions

        values = {
            "max_stages": self.RAG_MAX_STAGES,
            "max_results_per_stage": self.RAG_MAX_RESULTS_PER_STAGE,
            "min_score_threshold": self.RAG_MIN_SCORE,
            "fetch_timeout_s": self.RAG_FETCH_TIMEOUT_S,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return RAGOptions(**values)
