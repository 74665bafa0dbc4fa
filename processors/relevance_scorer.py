"""
Relevance scoring for search candidates.

Three methods are available:
- keyword: weighted whole-word term frequency, normalized by text length
- semantic: the language model rates the match on a 0-1 scale
- hybrid: weighted blend of the two (default)

Scores are cached per (query, url, method) for the lifetime of the scorer.
The cache has no eviction and no locking: use one scorer per logical caller
and call clear_cache() (or build a new scorer) to bound memory.
"""

import asyncio
import math
import re
from dataclasses import dataclass
from functools import partial
from typing import Literal

from api.base_client import LanguageModel
from tools.web.contracts import Candidate, ExtractedDocument
from utils.logger import get_logger

logger = get_logger(__name__)

ScoringMethod = Literal["keyword", "semantic", "hybrid"]

NEUTRAL_SCORE = 0.5
UNPARSEABLE_REPLY_SCORE = 0.7
SEMANTIC_EXCERPT_CHARS = 500

_NUMBER = re.compile(r"\d+(?:\.\d+)?")


@dataclass(frozen=True)
class ScoringOptions:
    method: ScoringMethod = "hybrid"
    min_threshold: float = 0.3
    enable_cache: bool = True
    keyword_weight: float = 0.4

    def __post_init__(self):
        if self.method not in ("keyword", "semantic", "hybrid"):
            raise ValueError(f"Unknown scoring method: {self.method}")
        if not 0.0 <= self.keyword_weight <= 1.0:
            raise ValueError("keyword_weight must be within [0, 1]")


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def tokenize_query(query: str) -> list[str]:
    """Lowercased query words longer than two characters, punctuation removed."""
    words = (re.sub(r"[^\w\s]", "", word) for word in query.lower().split())
    return [word for word in words if len(word) > 2]


class RelevanceScorer:
    def __init__(self, language_model: LanguageModel | None = None):
        """
        Args:
            language_model: Required for the semantic and hybrid methods. Without
                one, semantic scores fall back to the neutral 0.5.
        """
        self.language_model = language_model
        self._cache: dict[tuple[str, str, str], float] = {}

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    def clear_cache(self) -> None:
        """Drop every cached score."""
        self._cache.clear()

    async def score_results(
        self,
        candidates: list[Candidate],
        documents: list[ExtractedDocument],
        query: str,
        options: ScoringOptions | None = None,
    ) -> list[Candidate]:
        """
        Score candidates against query using their matching documents.

        Args:
            candidates: Search results to score
            documents: Extracted documents, matched to candidates by url
            query: The query the scores are relative to
            options: Scoring method, threshold and cache switch

        Returns:
            Scored copies with score >= options.min_threshold, best first.
            Candidates without a document score 0.
        """
        options = options or ScoringOptions()
        documents_by_url = {doc.source_url: doc for doc in documents}

        scored = await asyncio.gather(
            *(
                self._score_candidate(candidate, documents_by_url.get(candidate.url), query, options)
                for candidate in candidates
            )
        )

        kept = [c for c in scored if c.relevance_score is not None and c.relevance_score >= options.min_threshold]
        kept.sort(key=lambda c: c.relevance_score, reverse=True)

        logger.debug(
            f"Scored {len(candidates)} candidates, {len(kept)} above threshold",
            extra={"extra_fields": {"method": options.method, "threshold": options.min_threshold}},
        )
        return kept

    async def _score_candidate(
        self,
        candidate: Candidate,
        document: ExtractedDocument | None,
        query: str,
        options: ScoringOptions,
    ) -> Candidate:
        if document is None:
            return candidate.with_score(0.0)

        cache_key = (query, candidate.url, options.method)
        if options.enable_cache and cache_key in self._cache:
            return candidate.with_score(self._cache[cache_key])

        if options.method == "keyword":
            score = self.keyword_score(document, query)
        elif options.method == "semantic":
            score = await self._semantic_score_async(document, query)
        else:
            keyword = self.keyword_score(document, query)
            semantic = await self._semantic_score_async(document, query)
            score = keyword * options.keyword_weight + semantic * (1 - options.keyword_weight)

        score = clamp(score)
        if options.enable_cache:
            self._cache[cache_key] = score
        return candidate.with_score(score)

    @staticmethod
    def keyword_score(document: ExtractedDocument, query: str) -> float:
        """
        Weighted whole-word frequency of the query terms in the document text.

        Longer terms weigh more (length / 10, capped at 1) and the total is
        divided by sqrt(len(text) / 100) so long pages do not win by size.

        Args:
            document: Document whose cleaned text (or raw body) is searched
            query: Search query; words of two characters or fewer are ignored

        Returns:
            Score in [0, 1]. 0.5 when the query has no usable terms, 0 for an
            empty document.
        """
        keywords = tokenize_query(query)
        if not keywords:
            return NEUTRAL_SCORE

        text = document.text
        if not text:
            return 0.0

        text_lower = text.lower()
        weighted_matches = 0.0
        for keyword in keywords:
            count = len(re.findall(rf"\b{re.escape(keyword)}\b", text_lower))
            weighted_matches += count * min(1.0, len(keyword) / 10)

        return clamp(weighted_matches / math.sqrt(len(text) / 100))

    async def _semantic_score_async(self, document: ExtractedDocument, query: str) -> float:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(self.semantic_score, document, query))

    def semantic_score(self, document: ExtractedDocument, query: str) -> float:
        """
        Ask the language model to rate the document excerpt against query.

        Returns:
            The parsed rating, or 0.5 without a model or when the call fails
        """
        if self.language_model is None:
            return NEUTRAL_SCORE

        try:
            response = self.language_model.generate_text(
                self._build_scoring_prompt(document, query), temperature=0.1, max_tokens=50
            )
        except Exception as e:
            logger.warning(
                "Semantic scoring call failed",
                extra={"extra_fields": {"url": document.source_url, "error": str(e)}},
            )
            return NEUTRAL_SCORE

        return self.parse_score(response.text)

    @staticmethod
    def parse_score(reply: object) -> float:
        """First numeric token of the reply clamped to [0, 1]; 0.7 if there is none."""
        match = _NUMBER.search(str(reply or ""))
        if match is None:
            return UNPARSEABLE_REPLY_SCORE
        return clamp(float(match.group(0)))

    @staticmethod
    def _build_scoring_prompt(document: ExtractedDocument, query: str) -> str:
        text = document.text
        excerpt = text[:SEMANTIC_EXCERPT_CHARS] + "..." if len(text) > SEMANTIC_EXCERPT_CHARS else text
        return (
            "Rate how relevant the document below is to the search query.\n"
            "Answer with a single number between 0 and 1, where 1 means highly relevant "
            "and 0 means unrelated.\n\n"
            f"Search query: {query}\n\n"
            f"Document:\n{excerpt}\n\n"
            "Relevance score (number only):"
        )
