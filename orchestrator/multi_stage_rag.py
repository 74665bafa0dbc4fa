"""
MultiStageRAG - iterative web retrieval with relevance filtering and query expansion.

Each stage runs search -> concurrent fetch -> extract -> score/filter ->
accumulate, then optionally asks the language model for a more specific query
for the next stage. Stages never overlap; only the fetches inside a stage run
concurrently.

Failure policy:
- a search failure in the first stage is raised to the caller
- everything later degrades instead of aborting: failed fetches/extractions
  are skipped, a failed scoring pass gets a flat default score, a failed
  later search ends the loop, a failed expansion stops expanding, and a
  failed integration returns a labeled fallback result
"""

import asyncio
import concurrent.futures
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Callable

from api.base_client import LanguageModel
from processors.content_integrator import ContentIntegrator, IntegrationOptions
from processors.relevance_scorer import RelevanceScorer, ScoringOptions
from tools.web.contracts import (
    Candidate,
    ContentExtractor,
    ContentFetcher,
    ContentSection,
    ExtractedDocument,
    ExtractionOptions,
    IntegratedResult,
    SearchProvider,
    SourceRef,
)
from utils.errors import AppError, IntegrationError, SearchError
from utils.logger import get_logger

logger = get_logger(__name__)

STAGE_FALLBACK_SCORE = 0.5
EXPANSION_EXCERPT_CHARS = 200
EXPANSION_TOP_RESULTS = 2
FALLBACK_SECTION_CHARS = 500

STAGE_EXTRACTION_OPTIONS = ExtractionOptions(
    extract_metadata=True, clean_content=True, generate_summary=False
)


@dataclass(frozen=True)
class RAGOptions:
    max_stages: int = 2
    max_results_per_stage: int = 5
    min_score_threshold: float = 0.6
    use_query_expansion: bool = True
    fetch_timeout_s: float = 15.0
    scoring: ScoringOptions = field(default_factory=lambda: ScoringOptions(min_threshold=0.4))
    integration: IntegrationOptions = field(
        default_factory=lambda: IntegrationOptions(max_content_length=8000)
    )

    def __post_init__(self):
        if self.max_stages < 1:
            raise ValueError("max_stages must be >= 1")
        if self.max_results_per_stage < 1:
            raise ValueError("max_results_per_stage must be >= 1")
        if not 0.0 <= self.min_score_threshold <= 1.0:
            raise ValueError("min_score_threshold must be within [0, 1]")
        if self.fetch_timeout_s <= 0:
            raise ValueError("fetch_timeout_s must be > 0")


@dataclass
class StageState:
    """Accumulators for a single process() call."""

    current_query: str
    candidates: list[Candidate] = field(default_factory=list)
    documents: list[ExtractedDocument] = field(default_factory=list)
    stages_run: int = 0


def build_expansion_prompt(
    initial_query: str, current_query: str, excerpts: list[tuple[str, str]]
) -> str:
    findings = "\n\n".join(f"### {title}\n{excerpt}" for title, excerpt in excerpts)
    return (
        "Write one new, more specific web search query that digs deeper into the current query.\n"
        "Stay close to the intent of the initial query.\n\n"
        f"Initial query: {initial_query}\n"
        f"Current query: {current_query}\n\n"
        "Relevant information found for the current query:\n"
        f"{findings}\n\n"
        "Output only the search query, short and ready to type into a search engine, "
        "with no explanation.\n\n"
        "New query:"
    )


def normalize_expanded_query(text: str | None) -> str | None:
    """First non-empty line of the model reply with wrapping quotes removed."""
    for line in (text or "").splitlines():
        line = line.strip().strip("\"'`").strip()
        if line:
            return line
    return None


class MultiStageRAG:
    """
    Multi-stage retrieval orchestrator.

    Example usage:
        rag = MultiStageRAG(search_service, HttpContentFetcher(), ContentExtractorService(), llm)
        result = rag.process_sync("capital of France", RAGOptions(max_stages=2))
        print(result.merged_content)
    """

    def __init__(
        self,
        search_provider: SearchProvider,
        fetcher: ContentFetcher,
        extractor: ContentExtractor,
        language_model: LanguageModel | None = None,
        scorer: RelevanceScorer | None = None,
        integrator: ContentIntegrator | None = None,
    ):
        self.search_provider = search_provider
        self.fetcher = fetcher
        self.extractor = extractor
        self.language_model = language_model
        self.scorer = scorer or RelevanceScorer(language_model)
        self.integrator = integrator or ContentIntegrator()

    async def process(self, initial_query: str, options: RAGOptions | None = None) -> IntegratedResult:
        """
        Run up to options.max_stages retrieval rounds and integrate the results.

        Raises:
            AppError: only when the first-stage search fails
        """
        options = options or RAGOptions()
        state = StageState(current_query=initial_query)

        logger.info(
            f"Multi-stage retrieval started: '{initial_query}'",
            extra={
                "extra_fields": {
                    "max_stages": options.max_stages,
                    "max_results_per_stage": options.max_results_per_stage,
                    "min_score_threshold": options.min_score_threshold,
                }
            },
        )

        for stage in range(options.max_stages):
            next_query = await self._run_stage(stage, initial_query, state, options)
            if next_query is None:
                break
            logger.info(f"Query expanded: '{state.current_query}' -> '{next_query}'")
            state.current_query = next_query

        return self._finalize(initial_query, state, options)

    def process_sync(self, initial_query: str, options: RAGOptions | None = None) -> IntegratedResult:
        """
        Blocking wrapper for process().

        When called from inside a running event loop the pipeline runs in a
        separate thread with its own loop.
        """
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return asyncio.run(self.process(initial_query, options))

        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as executor:
            future = executor.submit(asyncio.run, self.process(initial_query, options))
            return future.result()

    async def _run_stage(
        self, stage: int, initial_query: str, state: StageState, options: RAGOptions
    ) -> str | None:
        """Run one stage; returns the next query, or None when the loop should stop."""
        query = state.current_query
        logger.info(f"Stage {stage + 1}: query '{query}'")

        candidates = await self._search(stage, query, options.max_results_per_stage)
        if candidates is None:
            return None
        if not candidates:
            logger.info(f"Stage {stage + 1}: no search results")
            return None
        state.stages_run += 1

        contents = await self._fetch_all(candidates, options.fetch_timeout_s)
        documents = self._extract_all(contents)
        scored = await self._score(stage, candidates, documents, query, options.scoring)

        kept = [c for c in scored if (c.relevance_score or 0.0) >= options.min_score_threshold]
        kept_urls = {c.url for c in kept}
        state.candidates.extend(kept)
        state.documents.extend(doc for doc in documents if doc.source_url in kept_urls)

        logger.info(
            f"Stage {stage + 1}: kept {len(kept)} of {len(candidates)} results",
            extra={
                "extra_fields": {
                    "stage": stage + 1,
                    "searched": len(candidates),
                    "fetched": len(contents),
                    "extracted": len(documents),
                    "kept": len(kept),
                }
            },
        )

        if stage >= options.max_stages - 1:
            return None
        if not options.use_query_expansion or not kept:
            logger.info(f"Stage {stage + 1}: nothing to expand on, stopping")
            return None

        new_query = await self._expand_query(
            initial_query, query, kept[:EXPANSION_TOP_RESULTS], documents
        )
        if not new_query or new_query == query:
            logger.info("No new query produced, stopping")
            return None
        return new_query

    async def _run_blocking(self, fn: Callable[..., Any], *args, **kwargs) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(fn, *args, **kwargs))

    async def _search(self, stage: int, query: str, limit: int) -> list[Candidate] | None:
        try:
            return await self._run_blocking(self.search_provider.search, query, limit=limit)
        except Exception as e:
            if stage == 0:
                logger.error(
                    f"Initial search failed: {e}",
                    extra={"extra_fields": {"query": query, "error_type": type(e).__name__}},
                )
                if isinstance(e, AppError):
                    raise
                raise SearchError(f"Search failed: {e}", details={"query": query}) from e

            logger.warning(
                f"Search failed in stage {stage + 1}, keeping earlier results",
                extra={"extra_fields": {"query": query, "error": str(e)}},
            )
            return None

    async def _fetch_one(self, candidate: Candidate, timeout_s: float) -> tuple[str, str | None]:
        try:
            content = await asyncio.wait_for(
                self.fetcher.fetch_content(candidate.url, timeout_s=timeout_s), timeout=timeout_s
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"Fetch timed out after {timeout_s}s",
                extra={"extra_fields": {"url": candidate.url, "timeout_s": timeout_s}},
            )
            return candidate.url, None
        except Exception as e:
            logger.error(
                f"Fetch failed: {e}",
                extra={
                    "extra_fields": {
                        "url": candidate.url,
                        "title": candidate.title,
                        "error_type": type(e).__name__,
                    }
                },
            )
            return candidate.url, None
        return candidate.url, content

    async def _fetch_all(self, candidates: list[Candidate], timeout_s: float) -> dict[str, str]:
        """Fetch every distinct url concurrently; waits for all fetches to settle."""
        unique = {c.url: c for c in candidates}
        results = await asyncio.gather(*(self._fetch_one(c, timeout_s) for c in unique.values()))
        return {url: content for url, content in results if content}

    def _extract_all(self, contents: dict[str, str]) -> list[ExtractedDocument]:
        documents = []
        for url, content in contents.items():
            try:
                documents.append(self.extractor.process(content, url, STAGE_EXTRACTION_OPTIONS))
            except Exception as e:
                logger.error(
                    f"Extraction failed: {e}",
                    extra={"extra_fields": {"url": url, "content_length": len(content)}},
                )
        return documents

    async def _score(
        self,
        stage: int,
        candidates: list[Candidate],
        documents: list[ExtractedDocument],
        query: str,
        scoring: ScoringOptions,
    ) -> list[Candidate]:
        try:
            return await self.scorer.score_results(candidates, documents, query, scoring)
        except Exception as e:
            logger.error(
                f"Scoring failed in stage {stage + 1}, using default score",
                extra={"extra_fields": {"query": query, "error": str(e)}},
            )
            return [c.with_score(STAGE_FALLBACK_SCORE) for c in candidates]

    async def _expand_query(
        self,
        initial_query: str,
        current_query: str,
        top_results: list[Candidate],
        documents: list[ExtractedDocument],
    ) -> str | None:
        if self.language_model is None:
            return None

        documents_by_url = {doc.source_url: doc for doc in documents}
        excerpts = []
        for candidate in top_results:
            doc = documents_by_url.get(candidate.url)
            if doc is None:
                continue
            text = doc.summary or doc.cleaned_content or doc.raw_content
            excerpts.append((candidate.title, text[:EXPANSION_EXCERPT_CHARS]))

        prompt = build_expansion_prompt(initial_query, current_query, excerpts)
        try:
            response = await self._run_blocking(
                self.language_model.generate_text, prompt, temperature=0.7, max_tokens=100
            )
            return normalize_expanded_query(response.text)
        except Exception as e:
            logger.warning(
                "Query expansion failed",
                extra={"extra_fields": {"query": current_query, "error": str(e)}},
            )
            return None

    def _finalize(self, query: str, state: StageState, options: RAGOptions) -> IntegratedResult:
        if not state.candidates:
            logger.warning(f"No relevant results found for '{query}'")
            message = f"No relevant information found for: {query}"
            return IntegratedResult(
                title=f"Information about: {query}",
                summary=message,
                sources=[],
                content_sections=[],
                merged_content=f"{message}. Try rephrasing the query or broadening its scope.",
            )

        logger.info(f"Integrating {len(state.candidates)} results from {state.stages_run} stage(s)")
        try:
            return self.integrator.integrate(
                state.candidates, state.documents, query, options.integration
            )
        except Exception as e:
            error = IntegrationError(
                f"Integration failed: {e}",
                details={"query": query, "candidates": len(state.candidates)},
            )
            logger.error(str(error), exc_info=True, extra={"extra_fields": error.to_dict()})
            return self._fallback_result(query, state)

    @staticmethod
    def _fallback_result(query: str, state: StageState) -> IntegratedResult:
        return IntegratedResult(
            title=f"Information about: {query}",
            summary=f"Failed to properly integrate information for: {query}",
            sources=[
                SourceRef(title=c.title or c.url, url=c.url, relevance=c.relevance_score)
                for c in state.candidates
            ],
            content_sections=[
                ContentSection(
                    title=doc.metadata.title or "Untitled Section",
                    content=doc.raw_content[:FALLBACK_SECTION_CHARS],
                    source=doc.source_url,
                )
                for doc in state.documents
            ],
            merged_content=(
                "Failed to integrate information properly. "
                f"Please try again or refine your query: {query}"
            ),
        )
