"""
Tests for heuristic content scoring.
"""

import pytest
from bs4 import BeautifulSoup

from marrow.configuration_manager import ScoringConfig
from marrow.exceptions import ContentNotFound, ExtractionTimeout
from marrow.scoring import ScoringEngine
from marrow.utils.cancellation import CancellationToken
from marrow.utils.dom import link_density, node_text


PARAGRAPH = (
    "The council met on Tuesday to discuss the budget, the new library, "
    "and plans for the harbour, which has been closed since spring."
)

SIBLING_HTML = f"""
<html><body>
<div id="story">
<p>{PARAGRAPH}</p>
<p>{PARAGRAPH}</p>
<p>{PARAGRAPH}</p>
</div>
<p>A closing paragraph that sits beside the story block and runs well past eighty characters.</p>
<div class="promo"><a href="/subscribe">Subscribe to our newsletter today</a></div>
</body></html>
"""


def soup(html):
    return BeautifulSoup(html, "html.parser")


class TestScoringEngine:
    """Main content detection."""

    @pytest.fixture
    def engine(self):
        return ScoringEngine(ScoringConfig())

    def test_paragraph_beats_navigation(self, engine):
        doc = soup(
            "<article><h1>T</h1><p>AAAAAAAAAAAAAAAAAAAAAAAAAAAAAA</p>"
            "<nav><a>x</a><a>y</a></nav></article>"
        )

        candidate = engine.extract_main_content(doc)

        assert candidate.subtree.find("p") is not None
        assert "AAAAAAAAAAAAAAAAAAAAAAAAAAAAAA" in node_text(candidate.subtree)
        assert candidate.subtree.find("nav") is None

    def test_tie_goes_to_earlier_node(self, engine):
        doc = soup("<article><p>AAAAAAAAAAAAAAAAAAAAAAAAAAAAAA</p></article>")

        candidate = engine.find_candidate(doc)

        assert candidate.top.node.name == "article"
        assert candidate.top.content_score == 1.0

    def test_document_is_not_modified(self, engine):
        html = SIBLING_HTML
        doc = soup(html)
        before = str(doc)

        engine.extract_main_content(doc)

        assert str(doc) == before

    def test_merges_substantial_sibling_paragraph(self, engine):
        candidate = engine.extract_main_content(soup(SIBLING_HTML))
        text = node_text(candidate.subtree)

        assert candidate.top.node.get("id") == "story"
        assert "A closing paragraph" in text
        assert "Subscribe" not in text
        assert len(candidate.merged) == 2

    def test_short_sibling_paragraph_is_not_merged(self, engine):
        html = SIBLING_HTML.replace(
            "A closing paragraph that sits beside the story block and runs well past eighty characters.",
            "Short note.",
        )

        candidate = engine.extract_main_content(soup(html))

        assert "Short note" not in node_text(candidate.subtree)

    def test_unlikely_chrome_is_stripped(self, engine):
        html = f"""
        <html><body>
        <div class="sidebar"><a href="/a">One link</a> <a href="/b">Another link</a></div>
        <div class="content"><p>{PARAGRAPH}</p><p>{PARAGRAPH}</p></div>
        </body></html>
        """

        candidate = engine.extract_main_content(soup(html))

        assert "One link" not in node_text(candidate.subtree)

    def test_sweep_keeps_short_captions(self, engine):
        html = f"""
        <html><body><div id="story">
        <p>{PARAGRAPH}</p><p>{PARAGRAPH}</p>
        <div class="caption">Photo by <a href="/staff/ann">Ann Lee</a></div>
        <div class="more"><a href="/1">First related story</a> <a href="/2">Second related story</a></div>
        </div></body></html>
        """

        candidate = engine.extract_main_content(soup(html))
        text = node_text(candidate.subtree)

        assert "Photo by Ann Lee" in text
        assert "related story" not in text

    def test_relaxed_retry_recovers_stripped_content(self):
        engine = ScoringEngine(ScoringConfig(sweep_link_density=0.9))
        # The only text lives in a link-heavy node whose class looks like chrome
        html = f"""
        <html><body>
        <div class="comment-thread"><p>{PARAGRAPH} <a href="/x">{PARAGRAPH}</a> <a href="/y">{PARAGRAPH}</a></p></div>
        </body></html>
        """

        with pytest.raises(ContentNotFound):
            engine.find_candidate(soup(html), strip_unlikely=True)
        candidate = engine.extract_main_content(soup(html))

        assert PARAGRAPH in node_text(candidate.subtree)

    def test_seed_text_must_exceed_minimum(self, engine):
        at_minimum = "A" * 25
        above_minimum = "A" * 26

        with pytest.raises(ContentNotFound):
            engine.extract_main_content(soup(f"<article><p>{at_minimum}</p></article>"))
        candidate = engine.extract_main_content(soup(f"<article><p>{above_minimum}</p></article>"))
        assert above_minimum in node_text(candidate.subtree)

    def test_empty_document_raises_not_found(self, engine):
        with pytest.raises(ContentNotFound):
            engine.extract_main_content(soup(""))

    def test_script_only_document_raises_not_found(self, engine):
        html = "<html><body><script>var text = 'aaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaa';</script></body></html>"

        with pytest.raises(ContentNotFound):
            engine.extract_main_content(soup(html))

    def test_cancelled_token_raises_timeout(self, engine):
        token = CancellationToken()
        token.cancel()

        with pytest.raises(ExtractionTimeout):
            engine.extract_main_content(soup(SIBLING_HTML), token)


class TestLinkDensity:
    """Anchor text share used by scoring."""

    def test_no_links(self):
        assert link_density(soup("<p>plain text</p>").p) == 0.0

    def test_all_links(self):
        assert link_density(soup("<nav><a>x</a><a>y</a></nav>").nav) == 1.0

    def test_partial_links(self):
        node = soup("<p>abcd <a>efgh</a></p>").p
        assert link_density(node) == pytest.approx(4 / 9)

    def test_empty_node(self):
        assert link_density(soup("<div></div>").div) == 0.0
