"""Asynchronous page fetcher used for the per-stage fetch fan-out."""

import asyncio
from urllib.parse import urlparse

import httpx

from utils.errors import ErrorCode, FetchError
from utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_USER_AGENT = "multistage-rag/1.0"
RETRY_STATUS_CODES = (429, 500, 502, 503, 504)
TEXT_CONTENT_TYPES = ("application/xhtml+xml", "application/xml", "application/json")


class HttpContentFetcher:
    """
    Fetches page bodies with httpx.

    Returns None for non-HTTP urls, non-success responses, non-text content
    types (PDFs, images, archives) and empty bodies.
    Transport errors that survive the retries raise FetchError; the
    orchestrator treats them the same as None.
    """

    def __init__(
        self,
        user_agent: str = DEFAULT_USER_AGENT,
        retry_attempts: int = 2,
        backoff_s: float = 0.5,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.user_agent = user_agent
        self.retry_attempts = max(1, retry_attempts)
        self.backoff_s = backoff_s
        self._transport = transport

    @staticmethod
    def is_http_url(url: str) -> bool:
        try:
            parsed = urlparse(url)
        except ValueError:
            return False
        return parsed.scheme in {"http", "https"} and bool(parsed.netloc)

    @staticmethod
    def is_text_content_type(content_type: str) -> bool:
        """
        True for textual media types. A missing header counts as text so the
        extractor can sniff the body.
        """
        media_type = content_type.split(";")[0].strip().lower()
        if not media_type:
            return True
        return media_type.startswith("text/") or media_type in TEXT_CONTENT_TYPES

    def _headers(self) -> dict[str, str]:
        return {
            "Accept": "text/html,application/xhtml+xml,text/plain;q=0.9,*/*;q=0.8",
            "User-Agent": self.user_agent,
        }

    async def fetch_content(self, url: str, timeout_s: float = 15.0) -> str | None:
        if not self.is_http_url(url):
            logger.debug(f"Skipping non-HTTP url: {url}")
            return None

        async with httpx.AsyncClient(
            timeout=timeout_s,
            follow_redirects=True,
            headers=self._headers(),
            transport=self._transport,
        ) as client:
            for attempt in range(self.retry_attempts):
                try:
                    response = await client.get(url)
                except httpx.RequestError as e:
                    if attempt < self.retry_attempts - 1:
                        await asyncio.sleep(self.backoff_s * (2**attempt))
                        continue
                    code = ErrorCode.TIMEOUT if isinstance(e, httpx.TimeoutException) else ErrorCode.NETWORK
                    raise FetchError(
                        f"Fetch failed after {self.retry_attempts} attempt(s): {e}", code, {"url": url}
                    ) from e

                if response.status_code in RETRY_STATUS_CODES and attempt < self.retry_attempts - 1:
                    await asyncio.sleep(self.backoff_s * (2**attempt))
                    continue

                if not response.is_success:
                    logger.warning(
                        f"Fetch returned HTTP {response.status_code}",
                        extra={"extra_fields": {"url": url, "status": response.status_code}},
                    )
                    return None

                content_type = response.headers.get("content-type", "")
                if not self.is_text_content_type(content_type):
                    logger.info(
                        f"Skipping non-text response ({content_type})",
                        extra={"extra_fields": {"url": url, "content_type": content_type}},
                    )
                    return None

                body = response.text
                return body if body and body.strip() else None

        return None
