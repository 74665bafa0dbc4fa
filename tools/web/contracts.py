"""Data contracts for the web research pipeline."""

from dataclasses import dataclass, field, replace
from typing import Any, Protocol, runtime_checkable


@dataclass(frozen=True)
class Candidate:
    """A search hit before its content has been retrieved."""

    title: str
    url: str
    snippet: str = ""
    source: str = ""  # provider name
    published_date: str | None = None
    relevance_score: float | None = None

    def with_score(self, score: float) -> "Candidate":
        """Return a copy carrying the given relevance score."""
        return replace(self, relevance_score=score)


@dataclass(frozen=True)
class DocumentMetadata:
    source_url: str
    content_type: str = "text/html"
    title: str | None = None
    author: str | None = None
    published_date: str | None = None
    language: str | None = None


@dataclass(frozen=True)
class ExtractedDocument:
    """Text extracted from one fetched url."""

    raw_content: str
    metadata: DocumentMetadata
    cleaned_content: str | None = None
    summary: str | None = None

    @property
    def source_url(self) -> str:
        return self.metadata.source_url

    @property
    def text(self) -> str:
        """Cleaned content when available, raw content otherwise."""
        return self.cleaned_content or self.raw_content


@dataclass(frozen=True)
class ContentSection:
    title: str
    content: str
    source: str


@dataclass(frozen=True)
class SourceRef:
    title: str
    url: str
    relevance: float | None = None


@dataclass(frozen=True)
class IntegratedResult:
    """Merged research document returned to callers."""

    title: str
    summary: str
    sources: list[SourceRef] = field(default_factory=list)
    content_sections: list[ContentSection] = field(default_factory=list)
    merged_content: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "summary": self.summary,
            "sources": [
                {"title": s.title, "url": s.url, "relevance": s.relevance} for s in self.sources
            ],
            "content_sections": [
                {"title": s.title, "content": s.content, "source": s.source}
                for s in self.content_sections
            ],
            "merged_content": self.merged_content,
        }


@dataclass(frozen=True)
class ExtractionOptions:
    extract_metadata: bool = True
    clean_content: bool = True
    generate_summary: bool = False
    max_summary_length: int = 1000


@runtime_checkable
class SearchProvider(Protocol):
    def search(self, query: str, limit: int = 5) -> list[Candidate]: ...


@runtime_checkable
class ContentFetcher(Protocol):
    async def fetch_content(self, url: str, timeout_s: float = 15.0) -> str | None: ...


@runtime_checkable
class ContentExtractor(Protocol):
    def process(
        self, text: str, source_url: str, options: ExtractionOptions | None = None
    ) -> ExtractedDocument: ...
