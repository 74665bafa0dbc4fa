"""Merge scored candidates and their documents into one IntegratedResult."""

import html
from dataclasses import dataclass
from typing import Literal

from tools.web.contracts import (
    Candidate,
    ContentSection,
    ExtractedDocument,
    IntegratedResult,
    SourceRef,
)
from utils.logger import get_logger

logger = get_logger(__name__)

OutputFormat = Literal["markdown", "text", "html"]

SIGNATURE_CHARS = 100
SUMMARY_MAX_CHARS = 200
EMPTY_TITLE = "No relevant information found"


@dataclass(frozen=True)
class IntegrationOptions:
    remove_duplicates: bool = True
    # Candidates scored below this are dropped; unscored candidates always pass
    score_threshold: float = 0.3
    max_content_length: int | None = 5000
    format_output: OutputFormat = "markdown"
    chunk_size: int = 1000
    overlap_size: int = 200
    merge_similar_sections: bool = True

    def __post_init__(self):
        if self.format_output not in ("markdown", "text", "html"):
            raise ValueError(f"Unknown output format: {self.format_output}")
        if self.overlap_size < 0:
            raise ValueError("overlap_size must be >= 0")


class ContentIntegrator:
    def integrate(
        self,
        candidates: list[Candidate],
        documents: list[ExtractedDocument],
        query: str,
        options: IntegrationOptions | None = None,
    ) -> IntegratedResult:
        """
        Build one IntegratedResult from scored candidates.

        Candidates are deduplicated by url, filtered by score, turned into one
        section per candidate that has a document, then chunked, merged and
        rendered in the requested format.

        Args:
            candidates: Scored candidates, best first
            documents: Extracted documents, matched to candidates by url
            query: Query used for the title and summary
            options: Integration settings; defaults when None

        Returns:
            IntegratedResult with sources, sections and merged_content
        """
        options = options or IntegrationOptions()
        documents_by_url = {doc.source_url: doc for doc in documents}

        selected = candidates
        if options.remove_duplicates:
            selected = self.dedupe_by_url(selected)
        selected = self.filter_by_score(selected, options.score_threshold)

        sources = [SourceRef(title=c.title or c.url, url=c.url, relevance=c.relevance_score) for c in selected]

        sections = [
            ContentSection(title=c.title or c.url, content=documents_by_url[c.url].text, source=c.url)
            for c in selected
            if c.url in documents_by_url
        ]

        if options.chunk_size and options.chunk_size > 0:
            sections = self.apply_chunking(sections, options.chunk_size, options.overlap_size)

        if options.merge_similar_sections:
            sections = self.merge_duplicate_sections(sections)

        merged = self.render(sections, options.format_output)
        if options.max_content_length and len(merged) > options.max_content_length:
            merged = merged[: options.max_content_length] + "..."

        logger.info(
            f"Integrated {len(sections)} sections from {len(sources)} sources",
            extra={"extra_fields": {"query": query, "format": options.format_output}},
        )

        return IntegratedResult(
            title=self.generate_title(query, sections),
            summary=self.generate_summary(sections, query),
            sources=sources,
            content_sections=sections,
            merged_content=merged,
        )

    @staticmethod
    def dedupe_by_url(candidates: list[Candidate]) -> list[Candidate]:
        """Keep the first candidate for each url, preserving order."""
        seen: set[str] = set()
        unique = []
        for candidate in candidates:
            if candidate.url in seen:
                continue
            seen.add(candidate.url)
            unique.append(candidate)
        return unique

    @staticmethod
    def filter_by_score(candidates: list[Candidate], threshold: float) -> list[Candidate]:
        """Drop candidates scored below threshold. Unscored candidates are kept."""
        if threshold <= 0:
            return candidates
        return [c for c in candidates if c.relevance_score is None or c.relevance_score >= threshold]

    @staticmethod
    def apply_chunking(
        sections: list[ContentSection], chunk_size: int, overlap_size: int
    ) -> list[ContentSection]:
        """
        Split sections longer than chunk_size on paragraph boundaries.

        Each new chunk starts with the last overlap_size characters of the
        previous chunk followed by a blank line, so removing that prefix from
        every chunk after the first and re-joining with blank lines restores
        the original text.

        Args:
            sections: Sections to split
            chunk_size: Target maximum characters per chunk
            overlap_size: Characters carried over from the previous chunk

        Returns:
            Sections in the original order. Split sections are replaced by
            "<title> (Part N)" sections; single-chunk sections are unchanged.
        """
        chunked: list[ContentSection] = []

        for section in sections:
            if len(section.content) <= chunk_size:
                chunked.append(section)
                continue

            chunks: list[str] = []
            current: str | None = None
            for paragraph in section.content.split("\n\n"):
                if current is None:
                    current = paragraph
                elif current and len(current) + len(paragraph) + 2 > chunk_size:
                    chunks.append(current)
                    overlap = current[-overlap_size:] if overlap_size else ""
                    current = f"{overlap}\n\n{paragraph}"
                else:
                    current = f"{current}\n\n{paragraph}"
            if current:
                chunks.append(current)

            if len(chunks) == 1:
                chunked.append(section)
                continue

            for index, chunk in enumerate(chunks, start=1):
                chunked.append(
                    ContentSection(
                        title=f"{section.title} (Part {index})", content=chunk, source=section.source
                    )
                )

        return chunked

    @staticmethod
    def merge_duplicate_sections(sections: list[ContentSection]) -> list[ContentSection]:
        """Keep the first section for each distinct content signature."""
        seen: set[str] = set()
        unique = []
        for section in sections:
            signature = section.content[:SIGNATURE_CHARS]
            if signature in seen:
                continue
            seen.add(signature)
            unique.append(section)
        return unique

    @staticmethod
    def render(sections: list[ContentSection], format_output: OutputFormat) -> str:
        """
        Render sections as one document.

        Args:
            sections: Sections in display order
            format_output: "markdown" (## headings, --- separators), "text"
                (dash rules) or "html" (escaped <section> blocks)

        Returns:
            The rendered content. No sections render to an empty string
            or an empty wrapper div
        """
        if format_output == "text":
            blocks = [f"{s.title}\n\n{s.content}\n\nSource: {s.source}\n\n" for s in sections]
            return ("-" * 24 + "\n\n").join(blocks)

        if format_output == "html":
            blocks = [
                "<section>"
                f"<h2>{html.escape(s.title)}</h2>"
                f'<div class="content">{html.escape(s.content)}</div>'
                f'<div class="source">Source: <a href="{html.escape(s.source, quote=True)}">'
                f"{html.escape(s.source)}</a></div>"
                "</section>"
                for s in sections
            ]
            return f'<div class="integrated-content">{"<hr />".join(blocks)}</div>'

        blocks = [f"## {s.title}\n\n{s.content}\n\n*Source: {s.source}*\n\n" for s in sections]
        return "---\n\n".join(blocks)

    @staticmethod
    def generate_title(query: str, sections: list[ContentSection]) -> str:
        if not sections:
            return EMPTY_TITLE
        return f"Information about: {query}"

    @staticmethod
    def generate_summary(sections: list[ContentSection], query: str) -> str:
        """
        Summary taken from the first section.

        Returns:
            The whole first section if it fits in 200 characters, else its first
            paragraph, truncated with "..." when that is still too long
        """
        if not sections:
            return f"No information found for query: {query}"

        first_content = sections[0].content
        if len(first_content) <= SUMMARY_MAX_CHARS:
            return first_content

        first_paragraph = first_content.split("\n\n")[0]
        if len(first_paragraph) <= SUMMARY_MAX_CHARS:
            return first_paragraph

        return first_paragraph[:SUMMARY_MAX_CHARS] + "..."
