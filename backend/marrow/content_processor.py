"""
Content processing for extracted article bodies.
Applies rule-set transforms, removal lists and the default cleanup pass.
"""
import re
from typing import Dict, Iterable, List, Optional

from bs4 import BeautifulSoup
from bs4.element import Comment, NavigableString, Tag

from marrow.exceptions import MalformedSelectorError, TransformFailure
from marrow.metrics_collector import MetricsCollector
from marrow.selectors.config import ContentFieldSpec, Transform, TransformContext
from marrow.types import FieldIssue
from marrow.utils.dom import absolutize, contains_image, is_detached, select_all
from marrow.utils.logger import setup_logger


logger = setup_logger()

# Stripped by the default cleaner
STRIP_OUTPUT_TAGS = [
    "script", "style", "noscript", "template", "title", "link", "meta",
    "hr", "embed", "object", "form", "button", "input", "select", "textarea",
]

# Iframes pointing at these hosts are media embeds worth keeping
KEEP_IFRAME_RE = re.compile(r"(?:youtube(?:-nocookie)?\.com|player\.vimeo\.com)", re.IGNORECASE)

WHITELIST_ATTRS = frozenset([
    "src", "srcset", "sizes", "type", "href", "class", "id", "alt",
    "xlink:href", "width", "height", "colspan", "rowspan", "datetime",
])

URL_ATTRS = ("href", "src")

# Removed when they hold neither text nor media
EMPTY_REMOVABLE_TAGS = frozenset(["p", "span", "div", "section", "li", "strong", "em", "b", "i", "a"])

MEDIA_TAGS = frozenset(["img", "iframe", "video", "audio", "picture", "source", "svg", "br", "embed"])

_WHITESPACE_RUN_RE = re.compile(r"\s+")

# Text inside these keeps its whitespace
_PRESERVE_WHITESPACE_TAGS = frozenset(["pre", "code", "textarea"])


class TransformCleanPipeline:
    """
    Mutates a content subtree in a fixed order:
    transforms, then the clean list, then the optional default cleaner.

    The subtree is changed in place; callers pass a copy when the
    original document must stay intact. Running the pipeline a second time
    on its own output changes nothing.
    """

    def __init__(self, metrics: Optional[MetricsCollector] = None):
        self.metrics = metrics

    def process(
        self,
        subtree: Tag,
        transforms: Optional[Dict[str, Transform]] = None,
        clean: Optional[Iterable[str]] = None,
        apply_default_cleaner: bool = True,
        base_url: Optional[str] = None,
        issues: Optional[List[FieldIssue]] = None,
    ) -> Tag:
        """
        Process a content subtree.

        Args:
            subtree: Root of the content to process, mutated in place
            transforms: Selector to transform, applied in insertion order
            clean: Selectors whose matches are removed
            apply_default_cleaner: Run the generic cleanup pass afterwards
            base_url: URL relative links are resolved against
            issues: List that receives recoverable problems

        Returns:
            The processed subtree
        """
        for selector, transform in (transforms or {}).items():
            self._apply_transform(subtree, selector, transform, base_url, issues)

        for selector in clean or []:
            self._remove_matches(subtree, selector, issues)

        if apply_default_cleaner:
            self.default_clean(subtree, base_url)

        return subtree

    def process_with_spec(
        self,
        subtree: Tag,
        spec: Optional[ContentFieldSpec],
        base_url: Optional[str] = None,
        issues: Optional[List[FieldIssue]] = None,
        apply_default_cleaner: Optional[bool] = None,
    ) -> Tag:
        if apply_default_cleaner is None:
            apply_default_cleaner = spec.default_cleaner if spec else True
        return self.process(
            subtree,
            transforms=spec.transforms if spec else None,
            clean=spec.clean if spec else None,
            apply_default_cleaner=apply_default_cleaner,
            base_url=base_url,
            issues=issues,
        )

    def _apply_transform(
        self,
        subtree: Tag,
        selector: str,
        transform: Transform,
        base_url: Optional[str],
        issues: Optional[List[FieldIssue]],
    ) -> None:
        # Queried now so earlier transforms in the table are visible
        try:
            matches = select_all(subtree, selector)
        except MalformedSelectorError as e:
            self._record(issues, e)
            return

        context = TransformContext(base_url=base_url, selector=selector)
        for node in matches:
            if is_detached(node):
                continue
            try:
                transform.apply(node, context)
            except Exception as e:
                self._record(issues, TransformFailure(selector, transform.describe(), str(e)))

    def _remove_matches(
        self, subtree: Tag, selector: str, issues: Optional[List[FieldIssue]]
    ) -> None:
        try:
            matches = select_all(subtree, selector)
        except MalformedSelectorError as e:
            self._record(issues, e)
            return
        for node in matches:
            if not is_detached(node):
                node.decompose()

    def _record(self, issues: Optional[List[FieldIssue]], error: Exception) -> None:
        logger.warning(f"Content processing skipped a step: {error}")
        issue = FieldIssue.from_exception("content", error)
        if issues is not None:
            issues.append(issue)
        if self.metrics:
            self.metrics.record_issue(issue.category.value)

    def default_clean(self, subtree: Tag, base_url: Optional[str] = None) -> Tag:
        """
        Generic cleanup: drop non-content and empty nodes, trim attributes,
        collapse whitespace and resolve relative links.
        """
        self._strip_output_tags(subtree)
        self._strip_comments(subtree)
        self._clean_attributes(subtree)
        self._absolutize_links(subtree, base_url)
        self._remove_empty(subtree)
        self._normalize_whitespace(subtree)
        return subtree

    @staticmethod
    def _strip_output_tags(subtree: Tag) -> None:
        for node in subtree.find_all(STRIP_OUTPUT_TAGS):
            if not is_detached(node):
                node.decompose()
        for iframe in subtree.find_all("iframe"):
            if not KEEP_IFRAME_RE.search(iframe.get("src") or ""):
                iframe.decompose()

    @staticmethod
    def _strip_comments(subtree: Tag) -> None:
        for comment in subtree.find_all(string=lambda s: isinstance(s, Comment)):
            comment.extract()

    @staticmethod
    def _clean_attributes(subtree: Tag) -> None:
        for node in subtree.find_all(True):
            node.attrs = {
                name: value for name, value in node.attrs.items() if name in WHITELIST_ATTRS
            }

    @staticmethod
    def _absolutize_links(subtree: Tag, base_url: Optional[str]) -> None:
        if not base_url:
            return
        for attribute in URL_ATTRS:
            for node in subtree.find_all(attrs={attribute: True}):
                node[attribute] = absolutize(node[attribute], base_url)

    @staticmethod
    def _remove_empty(subtree: Tag) -> None:
        # Children are visited before parents so emptied parents go too
        for node in reversed(subtree.find_all(True)):
            if is_detached(node) or node.name not in EMPTY_REMOVABLE_TAGS:
                continue
            if node.get_text(strip=True):
                continue
            if contains_image(node) or node.find(MEDIA_TAGS):
                continue
            node.decompose()

    @staticmethod
    def _normalize_whitespace(subtree: Tag) -> None:
        for text in subtree.find_all(string=True):
            if type(text) is not NavigableString:
                continue
            if text.find_parent(_PRESERVE_WHITESPACE_TAGS) is not None:
                continue
            collapsed = _WHITESPACE_RUN_RE.sub(" ", str(text))
            if collapsed != str(text):
                text.replace_with(NavigableString(collapsed))


def serialize_content(subtree: Tag) -> str:
    """Serialized HTML of a processed content wrapper's children."""
    return subtree.decode_contents().strip()


def fragment_root(html: str, parser: str = "html.parser") -> Tag:
    """Parse an HTML fragment and return a div wrapping it."""
    soup = BeautifulSoup(f"<div>{html}</div>", parser)
    return soup.div
