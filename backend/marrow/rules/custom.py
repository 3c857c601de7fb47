"""
Site rule sets that need Custom transforms and so cannot live in rule files.
"""

import re
from typing import List, Optional

from bs4 import BeautifulSoup
from bs4.element import Tag

from marrow.selectors.config import (
    AllOf,
    ContentFieldSpec,
    Custom,
    FieldSpec,
    RenameTag,
    RuleSet,
    Simple,
    TransformContext,
    WithAttribute,
)


def _meta(name: str, attribute: str = "name") -> WithAttribute:
    return WithAttribute(f'meta[{attribute}="{name}"]', "content")


def unwrap_noscript_image(node: Tag, context: TransformContext) -> Optional[str]:
    """Replace a noscript holding a single image with a span around that image."""
    children = node.find_all(True, recursive=False)
    if len(children) != 1 or children[0].name != "img":
        return None
    node.attrs = {}
    return "span"


def collapse_drop_cap(node: Tag, context: TransformContext) -> Optional[str]:
    """A one-letter span used as a drop cap becomes plain text."""
    text = node.get_text()
    if len(text) == 1 and re.match(r"^[a-zA-Z()]$", text):
        node.unwrap()
    return None


_EMBEDLY_YOUTUBE_RE = re.compile(r"https://i\.embed\.ly/.+url=https://i\.ytimg\.com/vi/(\w+)/")


def medium_iframe(node: Tag, context: TransformContext) -> Optional[str]:
    """Turn embed.ly YouTube thumbnails back into embeds; drop other embeds."""
    thumbnail = node.get("data-thumbnail")
    parent = node.parent
    if not thumbnail or parent is None or parent.name != "figure":
        return None

    thumbnail = thumbnail.replace("%3A", ":").replace("%2F", "/")
    match = _EMBEDLY_YOUTUBE_RE.search(thumbnail)
    if match is None:
        parent.decompose()
        return None

    node["src"] = f"https://www.youtube.com/embed/{match.group(1)}"
    caption = parent.find("figcaption")
    for child in list(parent.children):
        if child is not node and child is not caption:
            child.extract()
    return None


def medium_figure(node: Tag, context: TransformContext) -> Optional[str]:
    """Keep only the largest image and the caption of a figure."""
    if node.find("iframe") is not None:
        return None
    images = node.find_all("img")
    if len(images) < 2:
        return None

    def width(img: Tag) -> int:
        try:
            return int(img.get("width") or 0)
        except ValueError:
            return 0

    keep = max(images, key=width)
    for image in images:
        if image is not keep:
            image.decompose()
    return None


def medium_image(node: Tag, context: TransformContext) -> Optional[str]:
    """Drop tracking pixels and avatar-sized images."""
    try:
        width = int(node.get("width") or 0)
    except ValueError:
        width = 0
    if 0 < width < 100:
        node.decompose()
    return None


def wikipedia_infobox_image(node: Tag, context: TransformContext) -> Optional[str]:
    """Move the first infobox image to the top of its infobox figure."""
    infobox = node.find_parent(class_="infobox")
    if infobox is None:
        return None
    first_child = next(iter(infobox.find_all(True, recursive=False)), None)
    if first_child is not None and first_child.name == "img":
        return None
    infobox.insert(0, node.extract())
    return None


def arstechnica_heading_break(node: Tag, context: TransformContext) -> Optional[str]:
    """Separate inline section headings from the preceding paragraph."""
    previous = node.find_previous_sibling()
    if previous is not None and previous.name == "p" and not previous.get_text(strip=True):
        return None
    holder = BeautifulSoup("", "html.parser")
    node.insert_before(holder.new_tag("p"))
    return None


THE_VERGE = RuleSet(
    domain="www.theverge.com",
    supported_domains=["www.polygon.com"],
    title=FieldSpec([Simple("h1")]),
    author=FieldSpec([
        _meta("author"),
        _meta("parsely-author"),
        _meta("cse-authors"),
    ]),
    date_published=FieldSpec([_meta("article:published_time", "property"), _meta("article:published_time")]),
    dek=FieldSpec([Simple(".p-dek")]),
    lead_image_url=FieldSpec([_meta("og:image", "property"), _meta("og:image")]),
    content=ContentFieldSpec(
        alternatives=[
            AllOf((".duet--article--article-body-component", ".tly2fw0")),
            AllOf(("div[id*='zephr-anchor']", ".tly2fw0")),
            Simple(".duet--article--article-body-component"),
            Simple("div[id*='zephr-anchor']"),
            AllOf((".c-entry-hero .e-image", ".c-entry-intro", ".c-entry-content")),
            AllOf((".e-image--hero", ".c-entry-content")),
            Simple(".l-wrapper .l-feature"),
            Simple("div.c-entry-content"),
            Simple("article"),
        ],
        allow_multiple=True,
        transforms={"noscript": Custom(unwrap_noscript_image, "noscript-image")},
        clean=[
            ".aside",
            "img.c-dynamic-image",
            ".duet--media--content-warning",
            "._1etxtj1",
        ],
    ),
)

MEDIUM = RuleSet(
    domain="medium.com",
    detect=['meta[name="al:ios:app_name"][content="Medium"]', 'meta[name="al:ios:app_name"][value="Medium"]'],
    title=FieldSpec([Simple("h1"), _meta("og:title", "property")]),
    author=FieldSpec([_meta("author")]),
    date_published=FieldSpec([_meta("article:published_time", "property")]),
    lead_image_url=FieldSpec([_meta("og:image", "property")]),
    content=ContentFieldSpec(
        alternatives=[Simple("article")],
        transforms={
            "section span:first-of-type": Custom(collapse_drop_cap, "drop-cap"),
            "iframe": Custom(medium_iframe, "embedly-youtube"),
            "figure": Custom(medium_figure, "largest-image"),
            "img": Custom(medium_image, "small-images"),
        },
        clean=["span a", "svg"],
    ),
)

WIKIPEDIA = RuleSet(
    domain="wikipedia.org",
    title=FieldSpec([Simple("h1#firstHeading"), Simple("h2.title")]),
    date_published=FieldSpec([Simple("#footer-info-lastmod")]),
    content=ContentFieldSpec(
        alternatives=[Simple("#mw-content-text")],
        transforms={
            ".infobox img": Custom(wikipedia_infobox_image, "infobox-image"),
            ".infobox caption": RenameTag("figcaption"),
            ".infobox": RenameTag("figure"),
        },
        clean=[
            ".mw-editsection",
            "figure tr, figure td, figure tbody",
            "#toc",
            ".navbox",
        ],
        default_cleaner=False,
    ),
)

ARS_TECHNICA = RuleSet(
    domain="arstechnica.com",
    title=FieldSpec([Simple("h1"), Simple("title")]),
    author=FieldSpec([Simple('*[rel="author"] *[itemprop="name"]')]),
    date_published=FieldSpec([WithAttribute(".byline time", "datetime")]),
    dek=FieldSpec([Simple('h2[itemprop="description"]')]),
    lead_image_url=FieldSpec([_meta("og:image", "property")]),
    content=ContentFieldSpec(
        alternatives=[Simple('div[itemprop="articleBody"]')],
        transforms={"h2": Custom(arstechnica_heading_break, "heading-break")},
        clean=[
            "figcaption .enlarge-link",
            "figcaption .sep",
            "figure.video",
            ".gallery",
            "aside",
            ".sidebar",
        ],
    ),
)


def custom_rule_sets() -> List[RuleSet]:
    return [THE_VERGE, MEDIUM, WIKIPEDIA, ARS_TECHNICA]
