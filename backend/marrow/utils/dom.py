"""
Helpers over the BeautifulSoup tree: selector compilation, text and
link-density measurements, and subtree cloning.
"""
import copy
import re
from functools import lru_cache
from typing import Dict, Iterable, List, Optional
from urllib.parse import urljoin

import soupsieve
from bs4 import BeautifulSoup
from bs4.element import NavigableString, Tag

from marrow.exceptions import MalformedSelectorError


_WHITESPACE_RE = re.compile(r"\s+")

BLOCK_LEVEL_TAGS = frozenset([
    "article", "aside", "blockquote", "body", "br", "button", "canvas",
    "caption", "col", "colgroup", "dd", "div", "dl", "dt", "embed",
    "fieldset", "figcaption", "figure", "footer", "form", "h1", "h2", "h3",
    "h4", "h5", "h6", "header", "hgroup", "li", "map", "object", "ol",
    "output", "p", "pre", "progress", "section", "table", "tbody",
    "textarea", "tfoot", "th", "thead", "tr", "ul", "video", "main", "nav",
])


@lru_cache(maxsize=2048)
def compile_selector(selector: str) -> soupsieve.SoupSieve:
    """Compile a CSS selector, raising MalformedSelectorError when invalid."""
    if not selector or not selector.strip():
        raise MalformedSelectorError(selector or "", "empty selector")
    try:
        return soupsieve.compile(selector)
    except soupsieve.SelectorSyntaxError as e:
        raise MalformedSelectorError(selector, str(e).splitlines()[0]) from e


def is_valid_selector(selector: str) -> bool:
    try:
        compile_selector(selector)
        return True
    except MalformedSelectorError:
        return False


def select_all(root: Tag, selector: str) -> List[Tag]:
    """All descendants of root matching selector, in document order."""
    return compile_selector(selector).select(root)


def select_first(root: Tag, selector: str) -> Optional[Tag]:
    return compile_selector(selector).select_one(root)


def normalize_spaces(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text or "").strip()


def node_text(node: Tag) -> str:
    return normalize_spaces(node.get_text())


def text_length(node: Tag) -> int:
    return len(node_text(node))


def direct_text(node: Tag) -> str:
    """Text held directly by node, excluding nested elements."""
    parts = [
        str(child)
        for child in node.children
        if type(child) is NavigableString
    ]
    return normalize_spaces(" ".join(parts))


def link_density(node: Tag) -> float:
    """Share of a node's text that sits inside anchors."""
    total = text_length(node)
    if total == 0:
        return 0.0
    if node.name == "a":
        return 1.0

    link_length = 0
    for anchor in node.find_all("a"):
        # Nested anchors are counted through their outermost ancestor
        if anchor.find_parent("a") is not None:
            continue
        link_length += text_length(anchor)
    return min(1.0, link_length / total)


def contains_image(node: Tag) -> bool:
    return node.name == "img" or node.find("img") is not None


def is_detached(node: Tag) -> bool:
    """True when node was decomposed earlier in the current pass."""
    return getattr(node, "decomposed", False)


def document_order(root: Tag) -> Dict[int, int]:
    """Map id(tag) to its position in a depth-first walk from root."""
    return {id(tag): index for index, tag in enumerate(root.find_all(True))}


def clone(node: Tag) -> Tag:
    """Deep copy of node that is detached from its document."""
    return copy.copy(node)


def wrap_clones(nodes: Iterable[Tag], wrapper_tag: str = "div") -> Tag:
    """Place deep copies of nodes, in the given order, under a fresh wrapper."""
    holder = BeautifulSoup("", "html.parser")
    wrapper = holder.new_tag(wrapper_tag)
    holder.append(wrapper)
    for node in nodes:
        wrapper.append(clone(node))
    return wrapper


def absolutize(href: Optional[str], base_url: Optional[str]) -> Optional[str]:
    """Resolve href against base_url; absolute and special URLs pass through."""
    if not href:
        return href
    href = href.strip()
    if not base_url or href.startswith(("#", "data:", "mailto:", "javascript:", "tel:")):
        return href
    return urljoin(base_url, href)
