"""
Fields computed from other fields rather than selected from the document.
"""
import re
from typing import Optional
from urllib.parse import urlparse

from bs4.element import Tag

from marrow.types import TextDirection
from marrow.utils.dom import absolutize, normalize_spaces

EXCERPT_MAX_LENGTH = 200
ELLIPSIS = "\u2026"

LTR_MARK = "\u200e"
RTL_MARK = "\u200f"

# Hebrew, Arabic, Syriac, Thaana, NKo, Tifinagh
RTL_SCRIPT_RANGES = (
    (0x0590, 0x05FF),
    (0x0600, 0x06FF),
    (0x0700, 0x074F),
    (0x0780, 0x07BF),
    (0x07C0, 0x07FF),
    (0x2D30, 0x2D7F),
)

_NON_DIRECTIONAL_RE = re.compile(r"[\s\x00'\"\-0-9+?!.,:;()\[\]/]+")


def ellipsize(text: str, max_length: int = EXCERPT_MAX_LENGTH) -> str:
    """Cut text to max_length at a word boundary and append an ellipsis."""
    text = normalize_spaces(text)
    if len(text) <= max_length:
        return text
    cut = text[:max_length]
    if " " in cut:
        cut = cut[: cut.rfind(" ")]
    return cut.rstrip(" ,;:") + ELLIPSIS


def excerpt_from_text(content_text: str) -> Optional[str]:
    excerpt = ellipsize(content_text)
    return excerpt or None


def word_count(content_text: str) -> int:
    return len(content_text.split())


def _is_rtl_char(char: str) -> bool:
    code = ord(char)
    return any(low <= code <= high for low, high in RTL_SCRIPT_RANGES)


def text_direction(text: Optional[str]) -> TextDirection:
    """
    Direction of a piece of text.

    Explicit LTR/RTL marks take precedence; otherwise the letters decide.
    Digits alone count as left-to-right.
    """
    if not text:
        return TextDirection.NONE

    has_ltr_mark = LTR_MARK in text
    has_rtl_mark = RTL_MARK in text
    if has_ltr_mark and has_rtl_mark:
        return TextDirection.BIDI
    if has_ltr_mark:
        return TextDirection.LTR
    if has_rtl_mark:
        return TextDirection.RTL

    letters = _NON_DIRECTIONAL_RE.sub("", text)
    has_rtl = any(_is_rtl_char(c) for c in letters)
    has_ltr = any(not _is_rtl_char(c) for c in letters)
    if not has_rtl and not has_ltr and any(c.isdigit() for c in text):
        has_ltr = True

    if has_rtl and has_ltr:
        return TextDirection.BIDI
    if has_rtl:
        return TextDirection.RTL
    if has_ltr:
        return TextDirection.LTR
    return TextDirection.NONE


def canonical_url(selected: Optional[str], input_url: Optional[str]) -> Optional[str]:
    """Selected canonical URL made absolute, or the input URL."""
    if selected:
        resolved = absolutize(selected, input_url)
        if resolved and urlparse(resolved).scheme in ("http", "https"):
            return resolved
    return input_url or None


def domain_of(url: Optional[str]) -> Optional[str]:
    if not url:
        return None
    return urlparse(url).hostname or None


def first_image_url(subtree: Optional[Tag], base_url: Optional[str]) -> Optional[str]:
    """Source of the first image in processed content."""
    if subtree is None:
        return None
    for image in subtree.find_all("img"):
        src = image.get("src")
        if src and not src.startswith("data:"):
            return absolutize(src, base_url)
    return None
