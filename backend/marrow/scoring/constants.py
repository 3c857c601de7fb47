"""
Keyword patterns and tag groups used by content scoring.
"""
import re

# Class/id fragments marking page chrome rather than article text
UNLIKELY_CANDIDATES_RE = re.compile(
    r"ad-break|ad-banner|adbox|advert|addthis|agegate|aux|blogger-labels|combx|"
    r"comment|conversation|disqus|entry-unrelated|extra|foot|header|hidden|"
    r"loader|login|menu|meta|nav|outbrain|pager|pagination|predicta|"
    r"presence_control_external|popup|printfriendly|related|remove|remark|rss|"
    r"share|shoutbox|sidebar|sociable|sponsor|taboola|tools",
    re.IGNORECASE,
)

# Fragments that keep a node even when it also matches the pattern above
LIKELY_CANDIDATES_RE = re.compile(
    r"and|article|body|blogindex|column|content|entry-content-asset|format|"
    r"hfeed|hentry|hatom|main|page|posts|shadow",
    re.IGNORECASE,
)

# Semantic tags whose name counts as a class hint when stripping
CHROME_TAGS = frozenset(["nav", "aside", "footer", "header", "menu"])

# Scored on their full text
PARAGRAPH_TAGS = frozenset(["p", "pre", "td"])

# Paragraph-like siblings eligible for the substantial-paragraph merge rule
MERGEABLE_PARAGRAPH_TAGS = frozenset(["p", "pre"])

# Removed from the working copy before scoring starts
NON_CONTENT_TAGS = ["script", "style", "noscript", "template", "link", "meta"]

NON_TOP_CANDIDATE_TAGS = frozenset([
    "br", "b", "i", "label", "hr", "area", "base", "basefont", "input",
    "img", "link", "meta", "html", "head",
])

CAPTION_TAGS = frozenset(["figcaption", "caption"])
