"""Search front-end combining providers, result caching and rate limiting."""

from utils.errors import AppError, ErrorCode, SearchError, handle_error
from utils.logger import get_logger

from .cache import SearchCache
from .contracts import Candidate, SearchProvider
from .rate_limiter import RateLimiter

logger = get_logger(__name__)


class SearchService:
    """
    Implements the SearchProvider contract on top of one or more providers.

    With several providers every one is queried in registration order; results
    are merged, de-duplicated by url and capped at `limit`. A failing provider
    is logged and skipped, and the search only fails when all of them do.
    """

    def __init__(
        self,
        providers: list[SearchProvider],
        cache: SearchCache | None = None,
        rate_limiter: RateLimiter | None = None,
    ):
        if not providers:
            raise ValueError("SearchService requires at least one provider")
        self.providers = list(providers)
        self.cache = cache
        self.rate_limiter = rate_limiter or RateLimiter()

    @staticmethod
    def _provider_name(provider: SearchProvider) -> str:
        return getattr(provider, "name", type(provider).__name__)

    @property
    def cache_namespace(self) -> str:
        return "+".join(self._provider_name(p) for p in self.providers)

    def search(self, query: str, limit: int = 5) -> list[Candidate]:
        """
        Raises:
            SearchError: if every provider failed (or was rate limited)
        """
        query = (query or "").strip()
        if not query:
            return []

        if self.cache is not None:
            cached = self.cache.get(self.cache_namespace, query, limit)
            if cached is not None:
                logger.info(f"Search cache hit for '{query[:50]}'")
                return cached

        merged: list[Candidate] = []
        seen: set[str] = set()
        errors: list[AppError] = []

        for provider in self.providers:
            name = self._provider_name(provider)
            try:
                self.rate_limiter.acquire(name)
                results = provider.search(query, limit=limit)
            except Exception as e:
                error = handle_error(e, default_code=ErrorCode.SEARCH)
                errors.append(error)
                logger.warning(
                    f"Search provider {name} failed",
                    extra={"extra_fields": {"provider": name, "error": str(error)}},
                )
                continue

            for candidate in results:
                if candidate.url in seen:
                    continue
                seen.add(candidate.url)
                merged.append(candidate)

        if errors and len(errors) == len(self.providers):
            last = errors[-1]
            if len(errors) == 1 and isinstance(last, SearchError):
                raise last
            raise SearchError(
                f"All search providers failed for query: {query}",
                last.code if last.code == ErrorCode.SEARCH_LIMIT_EXCEEDED else ErrorCode.SEARCH,
                {"query": query, "errors": [e.to_dict() for e in errors]},
            ) from last

        merged = merged[:limit]
        if self.cache is not None and not errors:
            self.cache.set(self.cache_namespace, query, limit, merged)
        return merged
