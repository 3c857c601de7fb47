"""
Tests for derived result fields.
"""

import pytest
from bs4 import BeautifulSoup

from marrow.extractors.derived import (
    ELLIPSIS,
    canonical_url,
    domain_of,
    ellipsize,
    excerpt_from_text,
    first_image_url,
    text_direction,
    word_count,
)
from marrow.types import TextDirection


class TestTextDirection:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("Hello world", TextDirection.LTR),
            ("שלום עולם", TextDirection.RTL),
            ("مرحبا بالعالم", TextDirection.RTL),
            ("Hello שלום", TextDirection.BIDI),
            ("2024", TextDirection.LTR),
            ("", TextDirection.NONE),
            (None, TextDirection.NONE),
            ("   ", TextDirection.NONE),
        ],
    )
    def test_direction(self, text, expected):
        assert text_direction(text) == expected

    def test_marks_take_precedence(self):
        assert text_direction("\u200fHello") == TextDirection.RTL
        assert text_direction("\u200e\u05e9\u05dc\u05d5\u05dd") == TextDirection.LTR
        assert text_direction("\u200e\u200f") == TextDirection.BIDI


class TestExcerpt:
    def test_short_text_is_unchanged(self):
        assert ellipsize("  A short   line ") == "A short line"

    def test_cut_at_word_boundary(self):
        text = "alpha " * 50

        result = ellipsize(text)

        assert result.endswith("alpha" + ELLIPSIS)
        assert len(result) <= 201

    def test_empty_content_has_no_excerpt(self):
        assert excerpt_from_text("") is None


class TestUrls:
    def test_canonical_wins(self):
        assert canonical_url("/story", "https://example.com/story?utm=x") == "https://example.com/story"

    def test_non_http_canonical_is_ignored(self):
        assert canonical_url("javascript:void(0)", "https://example.com/a") == "https://example.com/a"

    def test_input_url_fallback(self):
        assert canonical_url(None, "https://example.com/a") == "https://example.com/a"
        assert canonical_url(None, None) is None

    def test_domain(self):
        assert domain_of("https://news.example.com:8443/a") == "news.example.com"
        assert domain_of(None) is None

    def test_first_image_skips_data_uris(self):
        subtree = BeautifulSoup(
            '<div><img src="data:image/gif;base64,AAAA"><img src="/b.jpg"></div>', "html.parser"
        ).div

        assert first_image_url(subtree, "https://example.com/x/") == "https://example.com/b.jpg"
        assert first_image_url(None, "https://example.com/") is None


def test_word_count():
    assert word_count("one two\n three\tfour") == 4
    assert word_count("") == 0
