"""
Tests for ContentIntegrator.
"""

import pytest

from processors.content_integrator import EMPTY_TITLE, ContentIntegrator, IntegrationOptions
from tools.web.contracts import ContentSection
from tests.fakes import make_candidate, make_document


@pytest.fixture
def integrator():
    return ContentIntegrator()


def _strip_overlaps(chunks: list[str], overlap_size: int) -> str:
    """Undo chunk overlap: drop the overlap prefix and its blank line from every chunk after the first."""
    parts = [chunks[0]]
    for previous, chunk in zip(chunks, chunks[1:]):
        overlap = previous[-overlap_size:] if overlap_size else ""
        prefix = f"{overlap}\n\n"
        assert chunk.startswith(prefix)
        parts.append(chunk[len(prefix):])
    return "\n\n".join(parts)


def test_duplicate_urls_collapse_to_one_section_and_source(integrator):
    candidates = [make_candidate("https://a.example", score=0.9), make_candidate("https://a.example", score=0.8)]
    documents = [make_document("https://a.example", "Paris is the capital of France.")]

    result = integrator.integrate(candidates, documents, "capital of France")

    assert [s.url for s in result.sources] == ["https://a.example"]
    assert result.sources[0].relevance == 0.9
    assert len(result.content_sections) == 1


def test_dedupe_is_idempotent(integrator):
    candidates = [make_candidate(url) for url in ("https://a", "https://b", "https://a", "https://c", "https://b")]
    once = integrator.dedupe_by_url(candidates)
    assert [c.url for c in once] == ["https://a", "https://b", "https://c"]
    assert integrator.dedupe_by_url(once) == once


def test_sections_with_same_prefix_are_merged(integrator):
    shared = "Paris is the capital and most populous city of France, home to about two million residents. " * 2
    candidates = [make_candidate("https://a.example", score=0.9), make_candidate("https://b.example", score=0.8)]
    documents = [
        make_document("https://a.example", shared + "Source A specific ending."),
        make_document("https://b.example", shared + "Source B specific ending."),
    ]

    result = integrator.integrate(candidates, documents, "capital of France")

    assert len(result.content_sections) == 1
    assert result.content_sections[0].source == "https://a.example"
    assert [s.url for s in result.sources] == ["https://a.example", "https://b.example"]


def test_merge_can_be_disabled(integrator):
    shared = "x" * 150
    candidates = [make_candidate("https://a.example"), make_candidate("https://b.example")]
    documents = [make_document("https://a.example", shared + "a"), make_document("https://b.example", shared + "b")]

    result = integrator.integrate(
        candidates, documents, "q", IntegrationOptions(merge_similar_sections=False)
    )

    assert len(result.content_sections) == 2


def test_long_section_is_chunked_with_overlap(integrator):
    content = "\n\n".join(letter * 300 for letter in "ABCD")
    section = ContentSection(title="Doc", content=content, source="https://a.example")

    chunks = integrator.apply_chunking([section], chunk_size=1000, overlap_size=200)

    assert [c.title for c in chunks] == ["Doc (Part 1)", "Doc (Part 2)"]
    assert chunks[0].content == "\n\n".join(letter * 300 for letter in "ABC")
    assert chunks[1].content == "C" * 200 + "\n\n" + "D" * 300
    assert all(c.source == "https://a.example" for c in chunks)


@pytest.mark.parametrize(
    "paragraph_sizes, chunk_size, overlap_size",
    [
        ([300, 300, 300, 300], 1000, 200),
        ([50, 900, 20, 700, 400, 10], 1000, 200),
        ([1500, 200, 1200], 1000, 200),
        ([400, 400, 400, 400], 500, 0),
        ([0, 600, 600], 500, 50),
    ],
)
def test_chunking_preserves_content(integrator, paragraph_sizes, chunk_size, overlap_size):
    paragraphs = [chr(ord("a") + i) * size for i, size in enumerate(paragraph_sizes)]
    content = "\n\n".join(paragraphs)
    section = ContentSection(title="Doc", content=content, source="https://a.example")

    chunks = integrator.apply_chunking([section], chunk_size, overlap_size)

    assert len(chunks) > 1
    assert _strip_overlaps([c.content for c in chunks], overlap_size) == content


def test_short_section_is_not_chunked(integrator):
    section = ContentSection(title="Doc", content="short text", source="https://a.example")
    assert integrator.apply_chunking([section], 1000, 200) == [section]


def test_single_paragraph_longer_than_chunk_keeps_title(integrator):
    section = ContentSection(title="Doc", content="z" * 1500, source="https://a.example")
    assert integrator.apply_chunking([section], 1000, 200) == [section]


def test_markdown_output(integrator):
    candidates = [make_candidate("https://a.example", title="Paris"), make_candidate("https://b.example", title="Lyon")]
    documents = [make_document("https://a.example", "About Paris."), make_document("https://b.example", "About Lyon.")]

    result = integrator.integrate(candidates, documents, "cities")

    assert result.merged_content == (
        "## Paris\n\nAbout Paris.\n\n*Source: https://a.example*\n\n"
        "---\n\n"
        "## Lyon\n\nAbout Lyon.\n\n*Source: https://b.example*\n\n"
    )


def test_text_output(integrator):
    candidates = [make_candidate("https://a.example", title="Paris"), make_candidate("https://b.example", title="Lyon")]
    documents = [make_document("https://a.example", "About Paris."), make_document("https://b.example", "About Lyon.")]

    result = integrator.integrate(candidates, documents, "cities", IntegrationOptions(format_output="text"))

    assert "Paris\n\nAbout Paris.\n\nSource: https://a.example" in result.merged_content
    assert "-" * 24 + "\n\n" in result.merged_content
    assert "##" not in result.merged_content


def test_html_output_is_escaped(integrator):
    candidates = [make_candidate("https://a.example?x=1&y=2", title="<Paris>")]
    documents = [make_document("https://a.example?x=1&y=2", "Tom & Jerry <script>")]

    result = integrator.integrate(candidates, documents, "q", IntegrationOptions(format_output="html"))

    merged = result.merged_content
    assert merged.startswith('<div class="integrated-content">')
    assert "<h2>&lt;Paris&gt;</h2>" in merged
    assert "Tom &amp; Jerry &lt;script&gt;" in merged
    assert 'href="https://a.example?x=1&amp;y=2"' in merged
    assert "<script>" not in merged


def test_merged_content_is_truncated(integrator):
    candidates = [make_candidate("https://a.example")]
    documents = [make_document("https://a.example", "word " * 100)]

    result = integrator.integrate(candidates, documents, "q", IntegrationOptions(max_content_length=50))

    assert len(result.merged_content) == 53
    assert result.merged_content.endswith("...")


def test_no_truncation_when_limit_disabled(integrator):
    candidates = [make_candidate("https://a.example")]
    documents = [make_document("https://a.example", "word " * 2000)]

    result = integrator.integrate(
        candidates, documents, "q", IntegrationOptions(max_content_length=None, chunk_size=0)
    )

    assert not result.merged_content.endswith("...")
    assert "word " * 2000 in result.merged_content


def test_title_and_summary(integrator):
    candidates = [make_candidate("https://a.example")]
    documents = [make_document("https://a.example", "Short answer.")]

    result = integrator.integrate(candidates, documents, "capital of France")

    assert result.title == "Information about: capital of France"
    assert result.summary == "Short answer."


def test_summary_uses_first_paragraph_then_truncates():
    first = "First paragraph about Paris."
    sections = [ContentSection(title="t", content=first + "\n\n" + "rest " * 100, source="u")]
    assert ContentIntegrator.generate_summary(sections, "q") == first

    sections = [ContentSection(title="t", content="y" * 450, source="u")]
    assert ContentIntegrator.generate_summary(sections, "q") == "y" * 200 + "..."


def test_empty_input(integrator):
    result = integrator.integrate([], [], "capital of France")

    assert result.title == EMPTY_TITLE
    assert result.summary == "No information found for query: capital of France"
    assert result.sources == []
    assert result.content_sections == []
    assert result.merged_content == ""


def test_low_scored_candidates_are_dropped_but_unscored_kept(integrator):
    candidates = [
        make_candidate("https://low.example", score=0.1),
        make_candidate("https://high.example", score=0.8),
        make_candidate("https://unscored.example"),
    ]
    documents = [make_document(c.url, f"text for {c.url}") for c in candidates]

    result = integrator.integrate(candidates, documents, "q")

    assert [s.url for s in result.sources] == ["https://high.example", "https://unscored.example"]
    assert [s.source for s in result.content_sections] == ["https://high.example", "https://unscored.example"]


def test_candidates_without_documents_still_listed_as_sources(integrator):
    candidates = [make_candidate("https://a.example"), make_candidate("https://nodoc.example")]
    documents = [make_document("https://a.example", "text")]

    result = integrator.integrate(candidates, documents, "q")

    assert [s.url for s in result.sources] == ["https://a.example", "https://nodoc.example"]
    assert len(result.content_sections) == 1


def test_every_section_source_is_listed(integrator):
    candidates = [make_candidate(f"https://{n}.example", score=0.5 + n / 10) for n in range(4)]
    documents = [make_document(c.url, f"body {c.url}\n\n" + "p" * 700 + f"\n\nend {c.url}") for c in candidates]

    result = integrator.integrate(candidates, documents, "q")

    source_urls = {s.url for s in result.sources}
    assert {s.source for s in result.content_sections} <= source_urls


def test_invalid_format_rejected():
    with pytest.raises(ValueError):
        IntegrationOptions(format_output="pdf")


@pytest.mark.parametrize(
    "format_output, expected",
    [("markdown", ""), ("text", ""), ("html", '<div class="integrated-content"></div>')],
)
def test_render_without_sections(format_output, expected):
    assert ContentIntegrator.render([], format_output) == expected
