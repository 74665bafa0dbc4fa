"""Web research tools: search providers, fetching and data contracts."""

from .contracts import (
    Candidate,
    ContentSection,
    DocumentMetadata,
    ExtractedDocument,
    ExtractionOptions,
    IntegratedResult,
    SourceRef,
)

__all__ = [
    "Candidate",
    "ContentSection",
    "DocumentMetadata",
    "ExtractedDocument",
    "ExtractionOptions",
    "IntegratedResult",
    "SourceRef",
]
