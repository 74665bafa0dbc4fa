"""Wire real collaborators from environment configuration."""

from api.base_client import BaseAIClient
from config.config import Config, ModelType, SearchProviderType
from utils.errors import ConfigurationError
from utils.logger import get_logger

from .cache import SearchCache
from .fetcher import HttpContentFetcher
from .google_search import GoogleSearchProvider
from .rate_limiter import RateLimiter
from .search_service import SearchService
from .tavily_client import TavilySearchProvider

logger = get_logger(__name__)

RATE_LIMIT_WINDOW_S = 60 * 60


def create_language_model(config: Config) -> BaseAIClient:
    """
    Raises:
        ConfigurationError: unknown MODEL_TYPE or missing API key
    """
    if config.MODEL_TYPE == ModelType.OPENAI.value:
        from api.openai_client import OpenAIClient

        if not config.OPENAI_API_KEY:
            raise ConfigurationError("OPENAI_API_KEY not found in environment variables")
        return OpenAIClient(api_key=config.OPENAI_API_KEY, model_name=config.DEFAULT_MODEL)

    if config.MODEL_TYPE == ModelType.GEMINI.value:
        from api.google_gemini_client import GeminiClient

        if not config.GOOGLE_GEMINI_API_KEY:
            raise ConfigurationError("GOOGLE_GEMINI_API_KEY not found in environment variables")
        return GeminiClient(api_key=config.GOOGLE_GEMINI_API_KEY, model_name=config.DEFAULT_MODEL)

    raise ConfigurationError(
        f"Unsupported MODEL_TYPE: {config.MODEL_TYPE}. Must be 'openai' or 'gemini'"
    )


def create_search_service(config: Config) -> SearchService:
    """
    Raises:
        ConfigurationError: unknown SEARCH_PROVIDER or missing credentials
    """
    if config.SEARCH_PROVIDER == SearchProviderType.TAVILY.value:
        provider = TavilySearchProvider(api_key=config.TAVILY_API_KEY)
    elif config.SEARCH_PROVIDER == SearchProviderType.GOOGLE.value:
        provider = GoogleSearchProvider(
            api_key=config.GOOGLE_SEARCH_API_KEY, engine_id=config.GOOGLE_SEARCH_ENGINE_ID
        )
    else:
        raise ConfigurationError(f"Unsupported SEARCH_PROVIDER: {config.SEARCH_PROVIDER}")

    rate_limiter = RateLimiter()
    rate_limiter.set_limit(provider.name, config.SEARCH_RATE_LIMIT_PER_HOUR, RATE_LIMIT_WINDOW_S)

    logger.info(f"Using {provider.name} for web search")
    return SearchService(
        [provider],
        cache=SearchCache(ttl_seconds=config.SEARCH_CACHE_TTL_SECONDS),
        rate_limiter=rate_limiter,
    )


def create_rag_from_env(config: Config | None = None):
    """Build a MultiStageRAG with every collaborator configured from the environment."""
    from orchestrator.multi_stage_rag import MultiStageRAG
    from processors.content_extractor import ContentExtractorService
    from processors.summarizer import AISummarizer

    config = config or Config()
    language_model = create_language_model(config)

    return MultiStageRAG(
        search_provider=create_search_service(config),
        fetcher=HttpContentFetcher(user_agent=config.FETCH_USER_AGENT),
        extractor=ContentExtractorService(summarizer=AISummarizer(language_model)),
        language_model=language_model,
    )
