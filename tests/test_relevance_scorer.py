"""
Tests for RelevanceScorer: keyword, semantic and hybrid scoring plus caching.
"""

import asyncio

import pytest

from models.model_response import ModelResponse
from processors.relevance_scorer import RelevanceScorer, ScoringOptions, tokenize_query
from tests.fakes import FakeLanguageModel, make_candidate, make_document

pytestmark = pytest.mark.unit

PARIS_TEXT = "Paris is the capital of France."


def _score(scorer, candidates, documents, query, **option_kwargs):
    return asyncio.run(
        scorer.score_results(candidates, documents, query, ScoringOptions(**option_kwargs))
    )


def test_tokenize_query_drops_short_words_and_punctuation():
    assert tokenize_query("What is the capital of France?") == ["what", "the", "capital", "france"]


def test_keyword_score_for_matching_sentence_is_high():
    doc = make_document("https://a.example", PARIS_TEXT)
    assert RelevanceScorer.keyword_score(doc, "capital of France") >= 0.6


def test_keyword_score_neutral_without_usable_tokens():
    doc = make_document("https://a.example", PARIS_TEXT)
    assert RelevanceScorer.keyword_score(doc, "of a is") == 0.5


def test_keyword_score_counts_whole_words_only():
    doc = make_document("https://a.example", "capitalism capitalized " * 20)
    assert RelevanceScorer.keyword_score(doc, "capital") == 0.0


def test_keyword_score_prefers_cleaned_text():
    doc = make_document("https://a.example", "nothing relevant here at all")
    doc = doc.__class__(
        raw_content="<p>nothing relevant</p>",
        metadata=doc.metadata,
        cleaned_content=PARIS_TEXT,
    )
    assert RelevanceScorer.keyword_score(doc, "capital France") == 1.0


def test_keyword_score_zero_for_empty_text():
    doc = make_document("https://a.example", "", cleaned=False)
    assert RelevanceScorer.keyword_score(doc, "capital France") == 0.0


@pytest.mark.parametrize(
    "reply, expected",
    [
        ("0.85", 0.85),
        ("Relevance: 0.3 overall", 0.3),
        ("7", 1.0),
        ("-0.4", 0.4),
        ("I cannot tell", 0.7),
        ("", 0.7),
    ],
)
def test_parse_score_clamps_and_defaults(reply, expected):
    assert RelevanceScorer.parse_score(reply) == pytest.approx(expected)


def test_semantic_score_failure_returns_neutral():
    scorer = RelevanceScorer(FakeLanguageModel([RuntimeError("model down")]))
    doc = make_document("https://a.example", PARIS_TEXT)
    assert scorer.semantic_score(doc, "capital of France") == 0.5


def test_semantic_prompt_uses_first_500_chars():
    llm = FakeLanguageModel(["0.9"])
    scorer = RelevanceScorer(llm)
    doc = make_document("https://a.example", "x" * 499 + "YZ" + "tail" * 100)
    scorer.semantic_score(doc, "query")
    prompt = llm.prompts[0]
    assert "x" * 499 + "Y..." in prompt
    assert "tail" not in prompt
    assert llm.kwargs[0] == {"temperature": 0.1, "max_tokens": 50}



def test_semantic_score_parses_only_the_reply_text():
    class NumberedModel:
        def generate_text(self, prompt, *, temperature=0.7, max_tokens=500):
            return ModelResponse(text="not sure", provider="openai", model="gpt-4o-mini", latency_ms=1200)

    doc = make_document("https://a.example", PARIS_TEXT)

    assert RelevanceScorer(NumberedModel()).semantic_score(doc, "capital of France") == 0.7


@pytest.mark.parametrize("reply", ["12", "-3", "banana", "0.0001", "1.0000", "99.5 percent"])
def test_semantic_and_hybrid_scores_stay_in_unit_interval(reply):
    candidates = [make_candidate("https://a.example")]
    documents = [make_document("https://a.example", PARIS_TEXT * 3)]
    for method in ("semantic", "hybrid"):
        scorer = RelevanceScorer(FakeLanguageModel([reply]))
        scored = _score(scorer, candidates, documents, "capital of France", method=method, min_threshold=0.0)
        assert 0.0 <= scored[0].relevance_score <= 1.0


def test_hybrid_blends_keyword_and_semantic():
    scorer = RelevanceScorer(FakeLanguageModel(["0.5"]))
    scored = _score(
        scorer,
        [make_candidate("https://a.example")],
        [make_document("https://a.example", PARIS_TEXT)],
        "capital France",
        method="hybrid",
        keyword_weight=0.4,
        min_threshold=0.0,
    )
    # keyword score saturates at 1.0
    assert scored[0].relevance_score == pytest.approx(0.4 * 1.0 + 0.6 * 0.5)


def test_results_sorted_descending_and_filtered():
    replies = {"https://a.example": "0.2", "https://b.example": "0.9", "https://c.example": "0.6"}

    def reply_for(prompt):
        for url, score in replies.items():
            if url.split("//")[1] in prompt:
                return score
        return "0"

    scorer = RelevanceScorer(FakeLanguageModel(reply_for))
    candidates = [make_candidate(url) for url in replies]
    documents = [make_document(url, f"content from {url.split('//')[1]}") for url in replies]

    scored = _score(scorer, candidates, documents, "anything", method="semantic", min_threshold=0.3)

    assert [c.url for c in scored] == ["https://b.example", "https://c.example"]
    assert [c.relevance_score for c in scored] == [0.9, 0.6]


def test_candidate_without_document_scores_zero_and_is_excluded():
    scorer = RelevanceScorer(FakeLanguageModel(["0.9"]))
    scored = _score(
        scorer,
        [make_candidate("https://a.example"), make_candidate("https://missing.example")],
        [make_document("https://a.example", PARIS_TEXT)],
        "capital of France",
        method="keyword",
    )
    assert [c.url for c in scored] == ["https://a.example"]

    everything = _score(
        scorer,
        [make_candidate("https://missing.example")],
        [],
        "capital of France",
        method="keyword",
        min_threshold=0.0,
    )
    assert everything[0].relevance_score == 0.0


def test_scoring_returns_copies():
    candidate = make_candidate("https://a.example")
    scorer = RelevanceScorer()
    scored = _score(
        scorer, [candidate], [make_document("https://a.example", PARIS_TEXT)], "capital France", method="keyword"
    )
    assert candidate.relevance_score is None
    assert scored[0] is not candidate
    assert scored[0].relevance_score == 1.0


def test_scores_are_cached_per_query_url_and_method():
    llm = FakeLanguageModel(["0.8"])
    scorer = RelevanceScorer(llm)
    candidates = [make_candidate("https://a.example")]
    documents = [make_document("https://a.example", PARIS_TEXT)]

    _score(scorer, candidates, documents, "capital", method="semantic")
    _score(scorer, candidates, documents, "capital", method="semantic")
    assert len(llm.prompts) == 1
    assert scorer.cache_size == 1

    _score(scorer, candidates, documents, "capital", method="hybrid")
    _score(scorer, candidates, documents, "another query", method="semantic")
    assert len(llm.prompts) == 3

    scorer.clear_cache()
    assert scorer.cache_size == 0
    _score(scorer, candidates, documents, "capital", method="semantic")
    assert len(llm.prompts) == 4


def test_cache_can_be_disabled():
    llm = FakeLanguageModel(["0.8"])
    scorer = RelevanceScorer(llm)
    candidates = [make_candidate("https://a.example")]
    documents = [make_document("https://a.example", PARIS_TEXT)]

    for _ in range(2):
        _score(scorer, candidates, documents, "capital", method="semantic", enable_cache=False)

    assert len(llm.prompts) == 2
    assert scorer.cache_size == 0


def test_semantic_without_model_is_neutral():
    scorer = RelevanceScorer()
    scored = _score(
        scorer,
        [make_candidate("https://a.example")],
        [make_document("https://a.example", PARIS_TEXT)],
        "capital",
        method="semantic",
    )
    assert scored[0].relevance_score == 0.5


def test_invalid_options_rejected():
    with pytest.raises(ValueError):
        ScoringOptions(method="vector")
    with pytest.raises(ValueError):
        ScoringOptions(keyword_weight=1.5)
