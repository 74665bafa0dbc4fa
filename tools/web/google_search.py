"""Google Programmable Search (Custom Search JSON API) provider."""

import os
from typing import Any

import httpx

from utils.errors import ConfigurationError, SearchError
from utils.logger import get_logger

from .contracts import Candidate

logger = get_logger(__name__)

GOOGLE_SEARCH_URL = "https://www.googleapis.com/customsearch/v1"
MAX_RESULTS_PER_REQUEST = 10  # API hard limit for `num`


class GoogleSearchProvider:
    name = "google"

    def __init__(
        self,
        api_key: str | None = None,
        engine_id: str | None = None,
        timeout_s: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.api_key = api_key or os.getenv("GOOGLE_SEARCH_API_KEY", "")
        self.engine_id = engine_id or os.getenv("GOOGLE_SEARCH_ENGINE_ID", "")
        if not self.api_key or not self.engine_id:
            raise ConfigurationError("Google Search API key or Search Engine ID is not set")

        self.timeout_s = timeout_s
        self._transport = transport

    def search(self, query: str, limit: int = 5) -> list[Candidate]:
        """
        Raises:
            SearchError: on transport errors or non-2xx responses
        """
        params = {
            "key": self.api_key,
            "cx": self.engine_id,
            "q": query,
            "num": max(1, min(int(limit), MAX_RESULTS_PER_REQUEST)),
        }

        try:
            with httpx.Client(timeout=self.timeout_s, transport=self._transport) as client:
                response = client.get(GOOGLE_SEARCH_URL, params=params)
                response.raise_for_status()
                payload = response.json() if response.content else {}
        except httpx.HTTPError as e:
            logger.error(
                "Google search failed",
                extra={"extra_fields": {"error": str(e), "error_type": type(e).__name__}},
            )
            raise SearchError(
                f"Google search failed: {e}", details={"provider": self.name, "query": query}
            ) from e

        return self._parse_results(payload if isinstance(payload, dict) else {}, limit)

    def _parse_results(self, payload: dict[str, Any], limit: int) -> list[Candidate]:
        candidates = []
        for item in (payload.get("items") or [])[:limit]:
            url = str(item.get("link") or "").strip()
            if not url:
                continue
            metatags = (item.get("pagemap") or {}).get("metatags") or [{}]
            candidates.append(
                Candidate(
                    title=str(item.get("title") or "").strip() or url,
                    url=url,
                    snippet=str(item.get("snippet") or "").strip(),
                    source=self.name,
                    published_date=metatags[0].get("article:published_time"),
                )
            )
        return candidates
