"""Tavily API search provider.

Tavily returns ranked results with extracted page text; only title, url and
the short content snippet are used here. Full page text is fetched separately
so every provider goes through the same extraction path.
"""

import os
from typing import Any

from utils.errors import ConfigurationError, SearchError
from utils.logger import get_logger

from .contracts import Candidate

logger = get_logger(__name__)


class TavilySearchProvider:
    """Search provider backed by tavily-python."""

    name = "tavily"

    def __init__(self, api_key: str | None = None, search_depth: str = "basic", client: Any = None):
        """
        Args:
            api_key: Tavily API key (defaults to TAVILY_API_KEY env var)
            search_depth: "basic" (faster) or "advanced" (deeper)
            client: Pre-built TavilyClient (mainly for tests)
        """
        self.search_depth = search_depth

        if client is not None:
            self.client = client
            return

        self.api_key = api_key or os.getenv("TAVILY_API_KEY")
        if not self.api_key:
            raise ConfigurationError("TAVILY_API_KEY not found in environment")

        # Lazy import so tests don't require tavily unless this provider is used
        try:
            from tavily import TavilyClient
        except ModuleNotFoundError as e:
            raise ConfigurationError(
                "Optional dependency 'tavily' is not installed. "
                "Install it to enable Tavily search: pip install tavily-python"
            ) from e

        self.client = TavilyClient(api_key=self.api_key)
        logger.info("Tavily search provider initialized")

    def search(self, query: str, limit: int = 5) -> list[Candidate]:
        """
        Search the web using Tavily.

        Raises:
            SearchError: when the Tavily call fails
        """
        logger.info(f"Tavily search: '{query}' (limit={limit}, depth={self.search_depth})")

        try:
            response = self.client.search(
                query=query,
                max_results=limit,
                search_depth=self.search_depth,
                include_raw_content=False,
                include_answer=False,
            )
        except Exception as e:
            logger.error(f"Tavily search failed: {e}", exc_info=True)
            raise SearchError(
                f"Tavily search failed: {e}", details={"provider": self.name, "query": query}
            ) from e

        candidates = []
        for result in (response or {}).get("results", [])[:limit]:
            url = str(result.get("url") or "").strip()
            if not url:
                continue
            candidates.append(
                Candidate(
                    title=str(result.get("title") or "").strip() or url,
                    url=url,
                    snippet=str(result.get("content") or "").strip(),
                    source=self.name,
                    published_date=result.get("published_date"),
                )
            )

        logger.info(f"Tavily returned {len(candidates)} results")
        return candidates
