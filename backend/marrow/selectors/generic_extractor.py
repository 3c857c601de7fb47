"""
The built-in generic rule set used when no site rules apply.

Every heuristic here is plain field-spec data: ordered meta tag lists,
common class names and byline patterns. The content field has no
selectors, so the orchestrator always hands it to the scoring engine.
"""

from typing import List

from marrow.selectors.config import (
    ContentFieldSpec,
    FieldSpec,
    RuleSet,
    SelectorAlternative,
    Simple,
    WithAttribute,
)

GENERIC_DOMAIN = "*"

STRONG_TITLE_META_TAGS = ["tweetmeme-title", "dc.title", "rbtitle", "headline", "title"]
WEAK_TITLE_META_TAGS = ["og:title"]

STRONG_TITLE_SELECTORS = [
    ".hentry .entry-title",
    "h1#articleHeader",
    "h1.articleHeader",
    "h1.article",
    ".instapaper_title",
    "#meebo-title",
]

WEAK_TITLE_SELECTORS = [
    "article h1",
    "#entry-title",
    ".entry-title",
    "#entryTitle",
    "#entrytitle",
    ".entryTitle",
    ".entrytitle",
    "#articleTitle",
    ".articleTitle",
    ".post .post-title",
    "h1.title",
    "h2.article",
    "h1",
    "head title",
    "title",
]

# "author" alone is too often the page's developer
AUTHOR_META_TAGS = ["byl", "clmst", "dc.author", "dcsext.author", "dc.creator", "rbauthors", "authors"]

AUTHOR_SELECTORS = [
    ".entry .entry-author",
    ".author.vcard .fn",
    ".author .vcard .fn",
    ".byline.vcard .fn",
    ".byline .vcard .fn",
    ".byline .by .author",
    ".byline .by",
    ".byline .author",
    ".post-author.vcard",
    ".post-author .vcard",
    "a[rel=author]",
    "#by_author",
    ".by_author",
    "#entryAuthor",
    ".entryAuthor",
    ".byline a[href*=author]",
    "#author .authorname",
    ".author .authorname",
    "#author",
    ".author",
    ".articleauthor",
    ".ArticleAuthor",
]

BYLINE_PATTERN = r"(?i)^\s*By\b"
BYLINE_SELECTORS = ["#byline", ".byline"]

AUTHOR_MAX_LENGTH = 300

DATE_PUBLISHED_META_TAGS = [
    "article:published_time",
    "displaydate",
    "dc.date",
    "dc.date.issued",
    "rbpubdate",
    "publish_date",
    "pub_date",
    "pagedate",
    "pubdate",
    "revision_date",
    "doc_date",
    "date_created",
    "content_create_date",
    "lastmodified",
    "created",
    "date",
]

DATE_PUBLISHED_SELECTORS = [
    ".hentry .dtstamp.published",
    ".hentry .published",
    ".hentry .dtstamp.updated",
    ".hentry .updated",
    ".single .published",
    ".meta .published",
    ".meta .postDate",
    ".entry-date",
    ".byline .date",
    ".postmetadata .date",
    ".article_datetime",
    ".date-header",
    ".story-date",
    ".dateStamp",
    "#story .datetime",
    ".dateline",
    ".pubdate",
]

LEAD_IMAGE_META_TAGS = ["og:image", "twitter:image", "twitter:image:src", "image_src"]

DEK_SELECTORS = [
    ".entry-summary",
    'h2[itemprop="description"]',
    ".subtitle",
    ".sub-title",
    ".deck",
    ".dek",
    ".standfirst",
]

DEK_MIN_LENGTH = 5
DEK_MAX_LENGTH = 1000
URL_IN_TEXT_PATTERN = r"https?://"

EXCERPT_META_TAGS = ["og:description", "twitter:description"]

URL_META_TAGS = ["og:url"]


def meta_alternatives(names: List[str]) -> List[SelectorAlternative]:
    """Read the payload of meta tags keyed by name or property, in list order."""
    alternatives: List[SelectorAlternative] = []
    for name in names:
        alternatives.append(WithAttribute(f'meta[name="{name}" i]', "content"))
        alternatives.append(WithAttribute(f'meta[property="{name}" i]', "content"))
    return alternatives


def simple_alternatives(selectors: List[str]) -> List[SelectorAlternative]:
    return [Simple(selector) for selector in selectors]


def build_generic_rule_set() -> RuleSet:
    """Create a fresh generic rule set."""
    title = FieldSpec(
        alternatives=(
            meta_alternatives(STRONG_TITLE_META_TAGS)
            + simple_alternatives(STRONG_TITLE_SELECTORS)
            + meta_alternatives(WEAK_TITLE_META_TAGS)
            + simple_alternatives(WEAK_TITLE_SELECTORS)
        )
    )

    author = FieldSpec(
        alternatives=(
            meta_alternatives(AUTHOR_META_TAGS)
            + simple_alternatives(AUTHOR_SELECTORS)
            + [Simple(selector, BYLINE_PATTERN) for selector in BYLINE_SELECTORS]
        ),
        max_length=AUTHOR_MAX_LENGTH,
    )

    date_published = FieldSpec(
        alternatives=(
            meta_alternatives(DATE_PUBLISHED_META_TAGS)
            + [WithAttribute("time[datetime][pubdate]", "datetime")]
            + simple_alternatives(DATE_PUBLISHED_SELECTORS)
        )
    )

    lead_image_url = FieldSpec(
        alternatives=(
            meta_alternatives(LEAD_IMAGE_META_TAGS)
            + [WithAttribute('link[rel="image_src"]', "href")]
        )
    )

    dek = FieldSpec(
        alternatives=simple_alternatives(DEK_SELECTORS),
        min_length=DEK_MIN_LENGTH,
        max_length=DEK_MAX_LENGTH,
        reject_pattern=URL_IN_TEXT_PATTERN,
    )

    next_page_url = FieldSpec(
        alternatives=[
            WithAttribute('link[rel="next"]', "href"),
            WithAttribute('a[rel="next"]', "href"),
        ]
    )

    excerpt = FieldSpec(alternatives=meta_alternatives(EXCERPT_META_TAGS))

    url = FieldSpec(
        alternatives=[WithAttribute('link[rel="canonical"]', "href")]
        + meta_alternatives(URL_META_TAGS)
    )

    return RuleSet(
        domain=GENERIC_DOMAIN,
        title=title,
        author=author,
        date_published=date_published,
        lead_image_url=lead_image_url,
        dek=dek,
        next_page_url=next_page_url,
        excerpt=excerpt,
        url=url,
        content=ContentFieldSpec(default_cleaner=True),
        is_generic=True,
    )


GENERIC_RULE_SET = build_generic_rule_set()
