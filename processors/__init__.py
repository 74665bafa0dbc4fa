"""Scoring, extraction and integration stages of the research pipeline."""

from .content_extractor import ContentExtractorService, HtmlExtractor, PlainTextExtractor
from .content_integrator import ContentIntegrator, IntegrationOptions
from .relevance_scorer import RelevanceScorer, ScoringOptions
from .summarizer import AISummarizer

__all__ = [
    "AISummarizer",
    "ContentExtractorService",
    "ContentIntegrator",
    "HtmlExtractor",
    "IntegrationOptions",
    "PlainTextExtractor",
    "RelevanceScorer",
    "ScoringOptions",
]
