"""
Shared fixtures for the marrow unit tests.
"""

import pytest
from bs4 import BeautifulSoup

from marrow.configuration_manager import ExtractorConfig
from marrow.extractors.factory import ExtractorFactory
from marrow.selectors.registry import Registry


ARTICLE_HTML = """
<html>
<head>
    <title>Fallback Title | Example News</title>
    <meta property="og:title" content="Storm Hits the Coast">
    <meta name="author" content="Site Developer">
    <meta name="dc.creator" content="Jane Reporter">
    <meta property="article:published_time" content="2024-03-01T10:00:00Z">
    <meta property="og:image" content="/images/storm.jpg">
    <meta property="og:description" content="A powerful storm made landfall overnight.">
    <link rel="canonical" href="https://example.com/news/storm">
</head>
<body>
    <nav class="site-nav"><a href="/">Home</a> <a href="/world">World</a> <a href="/sport">Sport</a></nav>
    <div id="story">
        <h1 class="headline">Storm Hits the Coast</h1>
        <p>The storm arrived shortly after midnight, bringing heavy rain, strong winds and flooding to several towns along the coast.</p>
        <p>Emergency crews worked through the night, clearing roads, restoring power and helping residents leave low lying areas.</p>
        <p>Officials said the damage, while severe, was less than feared, and schools are expected to reopen later this week.</p>
    </div>
    <div class="footer-links"><a href="/about">About us</a> <a href="/contact">Contact</a></div>
</body>
</html>
"""


@pytest.fixture
def article_html():
    return ARTICLE_HTML


@pytest.fixture
def article_doc():
    return BeautifulSoup(ARTICLE_HTML, "html.parser")


@pytest.fixture
def registry():
    return Registry()


@pytest.fixture
def factory(registry):
    """Factory over an empty registry, without bundled rules."""
    return ExtractorFactory(ExtractorConfig(load_bundled_rules=False, rules_dir=None), registry)
