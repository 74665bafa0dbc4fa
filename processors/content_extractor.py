"""
Content extraction: turn fetched page bodies into ExtractedDocument records.

HTML goes through trafilatura for main-text and metadata extraction, with a
regex tag-stripper as fallback when trafilatura finds no main content. Plain
text is normalized and passed through. ContentExtractorService picks the
extractor from an explicit content type, the url extension, or a sniff of the
body.
"""

import html
import re
from pathlib import PurePosixPath
from urllib.parse import urlparse

import trafilatura

from tools.web.contracts import DocumentMetadata, ExtractedDocument, ExtractionOptions
from utils.errors import AppError, ExtractionError
from utils.logger import get_logger

from .summarizer import AISummarizer

logger = get_logger(__name__)

_HTML_SNIFF = re.compile(r"<\s*(html|head|body|div|p|article|title)\b", re.IGNORECASE)
PDF_SIGNATURE = "%PDF-"

_LANG_ATTR = re.compile(r"<html[^>]*\blang\s*=\s*['\"]?([A-Za-z-]+)", re.IGNORECASE)


def normalize_whitespace(text: str) -> str:
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = re.sub(r"[\t\x0b\x0c ]+", " ", text)
    text = re.sub(r" *\n *", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def strip_markup(raw_html: str) -> str:
    """Remove markup, scripts and styles from HTML, keeping paragraph breaks."""
    text = re.sub(r"<(script|style|noscript|iframe)[^>]*>.*?</\1>", " ", raw_html, flags=re.I | re.S)
    text = re.sub(r"<!--.*?-->", " ", text, flags=re.S)
    text = re.sub(r"<(br|/p|/div|/h[1-6]|/li|/section|/article)\s*/?>", "\n\n", text, flags=re.I)
    text = re.sub(r"<[^>]+>", " ", text)
    return normalize_whitespace(html.unescape(text))


class HtmlExtractor:
    content_type = "text/html"

    def __init__(self, summarizer: AISummarizer | None = None):
        self.summarizer = summarizer

    def process(
        self, text: str, source_url: str, options: ExtractionOptions | None = None
    ) -> ExtractedDocument:
        options = options or ExtractionOptions()

        metadata = DocumentMetadata(source_url=source_url, content_type=self.content_type)
        if options.extract_metadata:
            try:
                metadata = self.extract_metadata(text, source_url)
            except Exception as e:
                # Basic metadata is enough to keep going
                logger.warning(
                    "Metadata extraction failed",
                    extra={"extra_fields": {"url": source_url, "error": str(e)}},
                )

        cleaned = None
        if options.clean_content:
            try:
                cleaned = self.clean_content(text)
            except Exception as e:
                logger.warning(
                    "Content cleaning failed, stripping markup instead",
                    extra={"extra_fields": {"url": source_url, "error": str(e)}},
                )
                cleaned = strip_markup(text)

        summary = None
        if options.generate_summary and self.summarizer is not None:
            summary = self.summarizer.summarize(cleaned or text, options.max_summary_length)

        return ExtractedDocument(
            raw_content=text, metadata=metadata, cleaned_content=cleaned or None, summary=summary
        )

    def extract_metadata(self, raw_html: str, source_url: str) -> DocumentMetadata:
        meta = trafilatura.extract_metadata(raw_html, default_url=source_url)

        language = getattr(meta, "language", None) if meta is not None else None
        if not language:
            match = _LANG_ATTR.search(raw_html)
            language = match.group(1) if match else None

        if meta is None:
            return DocumentMetadata(
                source_url=source_url, content_type=self.content_type, language=language
            )

        return DocumentMetadata(
            source_url=source_url,
            content_type=self.content_type,
            title=meta.title or None,
            author=meta.author or None,
            published_date=meta.date or None,
            language=language,
        )

    @staticmethod
    def clean_content(raw_html: str) -> str:
        extracted = trafilatura.extract(
            raw_html,
            include_comments=False,
            include_tables=True,
            include_images=False,
            include_links=False,
            favor_precision=True,
            output_format="txt",
        )
        if extracted and extracted.strip():
            # trafilatura separates blocks with single newlines; chunking splits on blank lines
            return re.sub(r"\n+", "\n\n", normalize_whitespace(extracted))
        return strip_markup(raw_html)


class PlainTextExtractor:
    content_type = "text/plain"

    def __init__(self, summarizer: AISummarizer | None = None):
        self.summarizer = summarizer

    def process(
        self, text: str, source_url: str, options: ExtractionOptions | None = None
    ) -> ExtractedDocument:
        options = options or ExtractionOptions()
        cleaned = normalize_whitespace(text) if options.clean_content else None

        title = None
        if options.extract_metadata:
            first_line = (cleaned or text).strip().split("\n", 1)[0].strip()
            title = first_line if 0 < len(first_line) <= 120 else None

        summary = None
        if options.generate_summary and self.summarizer is not None:
            summary = self.summarizer.summarize(cleaned or text, options.max_summary_length)

        return ExtractedDocument(
            raw_content=text,
            metadata=DocumentMetadata(
                source_url=source_url, content_type=self.content_type, title=title
            ),
            cleaned_content=cleaned or None,
            summary=summary,
        )


class ContentExtractorService:
    """
    Dispatches to the extractor matching the content type.

    Implements the ContentExtractor contract used by MultiStageRAG.
    """

    def __init__(self, summarizer: AISummarizer | None = None):
        html_extractor = HtmlExtractor(summarizer)
        text_extractor = PlainTextExtractor(summarizer)
        self.extractors = {
            "text/html": html_extractor,
            "application/xhtml+xml": html_extractor,
            "text/plain": text_extractor,
            "text/markdown": text_extractor,
        }

    def detect_content_type(self, text: str, source_url: str) -> str:
        """
        Guess the content type from the body and url.

        A PDF signature or `.pdf` extension maps to application/pdf, which has
        no extractor, so binary documents are rejected instead of being read
        as plain text. Otherwise the url extension decides, then a sniff of
        the first 4 KB for HTML tags.

        Returns:
            A MIME type string such as "text/html"
        """
        suffix = PurePosixPath(urlparse(source_url).path).suffix.lower()
        if text.lstrip().startswith(PDF_SIGNATURE) or suffix == ".pdf":
            return "application/pdf"
        if suffix in {".html", ".htm", ".xhtml"}:
            return "text/html"
        if suffix in {".txt", ".md", ".markdown"}:
            return "text/plain"
        return "text/html" if _HTML_SNIFF.search(text[:4096]) else "text/plain"

    def process(
        self,
        text: str,
        source_url: str,
        options: ExtractionOptions | None = None,
        content_type: str | None = None,
    ) -> ExtractedDocument:
        """
        Raises:
            ExtractionError: empty input, unsupported content type, or extractor failure
        """
        if not text or not text.strip():
            raise ExtractionError("Cannot extract from empty content", details={"url": source_url})

        content_type = (content_type or self.detect_content_type(text, source_url)).split(";")[0]
        extractor = self.extractors.get(content_type.strip().lower())
        if extractor is None:
            raise ExtractionError(
                f"Unsupported content type: {content_type}",
                details={"url": source_url, "content_type": content_type},
            )

        try:
            return extractor.process(text, source_url, options)
        except AppError:
            raise
        except Exception as e:
            raise ExtractionError(
                f"Failed to extract content: {e}",
                details={"url": source_url, "content_length": len(text)},
            ) from e
