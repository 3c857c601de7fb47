"""
Tests for selector alternatives and the SelectorEngine.
"""

import pytest
from bs4 import BeautifulSoup

from marrow.metrics_collector import MetricsCollector
from marrow.selectors.config import AllOf, FieldSpec, Literal, Simple, WithAttribute
from marrow.selectors.engine import SelectorEngine, read_attribute
from marrow.types import ErrorCategory


def soup(html):
    return BeautifulSoup(html, "html.parser")


class TestSelectField:
    """Field resolution over ordered alternatives."""

    @pytest.fixture
    def engine(self):
        return SelectorEngine()

    def test_falls_through_to_second_alternative(self, engine):
        spec = FieldSpec([Simple("h1.headline"), Simple("h1")])
        assert engine.select_field(soup("<h1>Plain</h1>"), spec) == "Plain"

    def test_first_matching_alternative_wins(self, engine):
        doc = soup('<h1 class="headline">Headline</h1><h1>Plain</h1>')
        spec = FieldSpec([Simple("h1.headline"), Simple("h1")])
        assert engine.select_field(doc, spec) == "Headline"

    def test_no_match_is_empty(self, engine):
        spec = FieldSpec([Simple(".missing")])
        assert engine.select_field(soup("<p>text</p>"), spec) is None

    def test_none_spec_is_empty(self, engine):
        assert engine.select_field(soup("<p>text</p>"), None) is None

    def test_literal_ignores_document(self, engine):
        spec = FieldSpec([Literal("Staff"), Simple("p")])
        assert engine.select_field(soup("<p>Someone</p>"), spec) == "Staff"

    def test_text_is_whitespace_normalized(self, engine):
        doc = soup("<h1>\n  Spread   over\n lines </h1>")
        assert engine.select_field(doc, FieldSpec([Simple("h1")])) == "Spread over lines"

    def test_extract_html_returns_markup(self, engine):
        doc = soup("<div class='dek'>Some <em>emphasis</em></div>")
        value = engine.select_field(doc, FieldSpec([Simple(".dek")]), extract_html=True)
        assert value == '<div class="dek">Some <em>emphasis</em></div>'

    def test_empty_match_does_not_win(self, engine):
        doc = soup('<h1 class="headline">   </h1><h2>Plain</h2>')
        spec = FieldSpec([Simple("h1.headline"), Simple("h2")])
        assert engine.select_field(doc, spec) == "Plain"

    def test_only_first_match_of_an_alternative_counts(self, engine):
        doc = soup('<div class="a">far too long a value</div><div class="a">ok</div><div class="b">B</div>')
        spec = FieldSpec([Simple(".a"), Simple(".b")], max_length=5)
        assert engine.select_field(doc, spec) == "B"

    def test_empty_first_match_fails_the_alternative(self, engine):
        doc = soup('<h1 class="headline">   </h1><h1>Plain</h1>')
        spec = FieldSpec([Simple("h1"), Literal("Fallback")])
        assert engine.select_field(doc, spec) == "Fallback"


class TestWithAttribute:
    """Attribute alternatives and meta payloads."""

    @pytest.fixture
    def engine(self):
        return SelectorEngine()

    def test_reads_meta_content(self, engine):
        doc = soup('<meta name="author" content="Jane Doe">')
        spec = FieldSpec([WithAttribute('meta[name="author"]', "content")])
        assert engine.select_field(doc, spec) == "Jane Doe"

    def test_meta_value_is_interchangeable_with_content(self, engine):
        doc = soup('<meta name="author" value="Jane Doe">')
        spec = FieldSpec([WithAttribute('meta[name="author"]', "content")])
        assert engine.select_field(doc, spec) == "Jane Doe"

    def test_missing_attribute_falls_through(self, engine):
        doc = soup('<a class="next">Next</a><link rel="next" href="/page/2">')
        spec = FieldSpec([
            WithAttribute("a.next", "href"),
            WithAttribute('link[rel="next"]', "href"),
        ])
        assert engine.select_field(doc, spec) == "/page/2"

    def test_later_match_cannot_rescue_missing_attribute(self, engine):
        doc = soup('<meta name="x"><meta name="x" content="late">')
        spec = FieldSpec([WithAttribute('meta[name="x"]', "content"), Literal("fallback")])
        assert engine.select_field(doc, spec) == "fallback"

    def test_multiple_values_skip_nodes_without_attribute(self, engine):
        doc = soup('<a class="tag">x</a><a class="tag" href="/t/1">y</a>')
        spec = FieldSpec([WithAttribute("a.tag", "href")], allow_multiple=True)
        assert engine.select_field(doc, spec) == ["/t/1"]

    def test_read_attribute_strips_whitespace(self):
        node = soup('<img src="  /a.png  ">').img
        assert read_attribute(node, "src") == "/a.png"
        assert read_attribute(node, "alt") is None


class TestMultipleValues:
    """allow_multiple returns every accepted value in document order."""

    @pytest.fixture
    def engine(self):
        return SelectorEngine()

    def test_values_in_document_order(self, engine):
        doc = soup(
            '<span class="author">Ann</span><div><span class="author">Bob</span></div>'
            '<span class="author">Cy</span>'
        )
        spec = FieldSpec([Simple(".author")], allow_multiple=True)
        assert engine.select_field(doc, spec) == ["Ann", "Bob", "Cy"]

    def test_single_value_takes_first_match(self, engine):
        doc = soup('<span class="author">Ann</span><span class="author">Bob</span>')
        assert engine.select_field(doc, FieldSpec([Simple(".author")])) == "Ann"


class TestAllOf:
    """AllOf groups are atomic and ordered as listed."""

    @pytest.fixture
    def engine(self):
        return SelectorEngine()

    def test_group_joins_in_listed_order(self, engine):
        doc = soup('<p class="b">second</p><p class="a">first</p>')
        spec = FieldSpec([AllOf((".a", ".b"))])
        assert engine.select_field(doc, spec) == "first second"

    def test_partial_match_discards_group(self, engine):
        doc = soup('<p class="a">first</p>')
        spec = FieldSpec([AllOf((".a", ".missing")), Simple(".a")])
        selection = engine.select_content(doc, spec)
        assert isinstance(selection.alternative, Simple)
        assert [n.get_text() for n in selection.nodes] == ["first"]

    def test_content_nodes_follow_listed_order(self, engine):
        doc = soup('<div class="body">Body</div><figure class="hero">Hero</figure>')
        spec = FieldSpec([AllOf(("figure.hero", ".body"))])
        selection = engine.select_content(doc, spec)
        assert [n.name for n in selection.nodes] == ["figure", "div"]

    def test_overlapping_members_are_deduplicated(self, engine):
        doc = soup('<div class="a b">Both</div>')
        spec = FieldSpec([AllOf((".a", ".b"))])
        selection = engine.select_content(doc, spec)
        assert len(selection.nodes) == 1


class TestSelectContent:
    """Content node selection."""

    @pytest.fixture
    def engine(self):
        return SelectorEngine()

    def test_empty_match_falls_through(self, engine):
        doc = soup('<div class="body"></div><article>Text</article>')
        spec = FieldSpec([Simple(".body"), Simple("article")])
        selection = engine.select_content(doc, spec)
        assert selection.nodes[0].name == "article"

    def test_image_only_match_counts_as_content(self, engine):
        doc = soup('<figure class="hero"><img src="/a.jpg"></figure>')
        selection = engine.select_content(doc, FieldSpec([Simple(".hero")]))
        assert selection is not None

    def test_with_attribute_yields_no_nodes(self, engine):
        doc = soup('<meta name="x" content="y"><article>Text</article>')
        spec = FieldSpec([WithAttribute('meta[name="x"]', "content"), Simple("article")])
        selection = engine.select_content(doc, spec)
        assert isinstance(selection.alternative, Simple)

    def test_literal_becomes_fragment(self, engine):
        selection = engine.select_content(soup(""), FieldSpec([Literal("<p>Fixed</p>")]))
        assert selection.nodes[0].p.get_text() == "Fixed"

    def test_nothing_matches(self, engine):
        assert engine.select_content(soup("<p>x</p>"), FieldSpec([Simple(".body")])) is None


class TestMalformedSelectors:
    """A malformed selector only disqualifies its own alternative."""

    def test_malformed_alternative_is_skipped(self):
        metrics = MetricsCollector()
        engine = SelectorEngine(metrics)
        issues = []
        spec = FieldSpec([Simple("h1["), Simple("h1")])

        value = engine.select_field(soup("<h1>Plain</h1>"), spec, field_name="title", issues=issues)

        assert value == "Plain"
        assert len(issues) == 1
        assert issues[0].field == "title"
        assert issues[0].category == ErrorCategory.MALFORMED_SELECTOR
        assert metrics.get_metrics().issue_categories["malformed_selector"] == 1

    def test_malformed_content_alternative_is_skipped(self):
        engine = SelectorEngine()
        issues = []
        spec = FieldSpec([AllOf(("div:nth-child(", ".body")), Simple(".body")])

        selection = engine.select_content(soup('<div class="body">B</div>'), spec, issues=issues)

        assert isinstance(selection.alternative, Simple)
        assert issues[0].category == ErrorCategory.MALFORMED_SELECTOR


class TestFieldSpecValidity:
    """Length limits and reject patterns filter candidate values."""

    @pytest.fixture
    def engine(self):
        return SelectorEngine()

    def test_too_short_value_is_rejected(self, engine):
        doc = soup('<p class="dek">Hi</p><p class="sub">A proper summary line</p>')
        spec = FieldSpec([Simple(".dek"), Simple(".sub")], min_length=5)
        assert engine.select_field(doc, spec) == "A proper summary line"

    def test_reject_pattern(self, engine):
        doc = soup('<p class="dek">Read more at https://example.com</p>')
        spec = FieldSpec([Simple(".dek")], reject_pattern=r"https?://")
        assert engine.select_field(doc, spec) is None

    def test_value_pattern_on_simple(self, engine):
        doc = soup('<div class="byline">By Ann Lee</div>')
        spec = FieldSpec([Simple(".byline", r"(?i)^\s*By\b")])
        assert engine.select_field(doc, spec) == "By Ann Lee"

    def test_pattern_mismatch_on_first_match_falls_through(self, engine):
        doc = soup(
            '<div class="byline">Updated today</div><div class="byline">By Ann Lee</div>'
            '<span class="writer">Ann Lee</span>'
        )
        spec = FieldSpec([Simple(".byline", r"(?i)^\s*By\b"), Simple(".writer")])
        assert engine.select_field(doc, spec) == "Ann Lee"
