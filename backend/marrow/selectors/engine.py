"""
Resolves a FieldSpec against a parsed document.
"""

import re
from dataclasses import dataclass
from typing import List, Optional

from bs4 import BeautifulSoup
from bs4.element import Tag

from marrow.exceptions import MalformedSelectorError
from marrow.metrics_collector import MetricsCollector
from marrow.selectors.config import (
    AllOf,
    FieldSpec,
    Literal,
    SelectorAlternative,
    Simple,
    WithAttribute,
)
from marrow.types import FieldIssue, FieldValue
from marrow.utils.dom import contains_image, node_text, select_all, select_first
from marrow.utils.logger import setup_logger

logger = setup_logger()

# Attributes meta tags use interchangeably for their payload
_META_PAYLOAD_ATTRIBUTES = ("content", "value")


@dataclass
class ContentSelection:
    """Nodes chosen for the content field and the alternative that chose them."""
    alternative: SelectorAlternative
    nodes: List[Tag]


def read_attribute(node: Tag, attribute: str) -> Optional[str]:
    """Read an attribute, treating meta content/value as the same thing."""
    value = node.get(attribute)
    if not value and node.name == "meta" and attribute in _META_PAYLOAD_ATTRIBUTES:
        other = "value" if attribute == "content" else "content"
        value = node.get(other)
    if isinstance(value, list):
        value = " ".join(value)
    if value is None:
        return None
    value = value.strip()
    return value or None


class SelectorEngine:
    """
    Tries a field's selector alternatives in order against a document.

    Alternatives are tried in declared order and the first one yielding an
    acceptable value wins. A malformed selector only disqualifies its own
    alternative.
    """

    def __init__(self, metrics: Optional[MetricsCollector] = None):
        self.metrics = metrics

    def select_field(
        self,
        doc: Tag,
        spec: Optional[FieldSpec],
        extract_html: bool = False,
        field_name: str = "",
        issues: Optional[List[FieldIssue]] = None,
    ) -> FieldValue:
        """
        Resolve a metadata field.

        Args:
            doc: Document or subtree to search
            spec: Field spec to resolve; None yields empty
            extract_html: Return serialized HTML of matches instead of text
            field_name: Name used for logging and issue records
            issues: List that receives recoverable problems

        Returns:
            A string, a list of strings when allow_multiple is set, or None
        """
        if spec is None:
            return None

        for alternative in spec.alternatives:
            try:
                value = self._resolve_value(doc, alternative, spec, extract_html)
            except MalformedSelectorError as e:
                self._record_malformed(field_name, e, issues)
                continue
            if value:
                logger.debug(f"{field_name or 'field'} resolved by {alternative}")
                return value
        return None

    def select_content(
        self,
        doc: Tag,
        spec: Optional[FieldSpec],
        field_name: str = "content",
        issues: Optional[List[FieldIssue]] = None,
    ) -> Optional[ContentSelection]:
        """Resolve the nodes making up the content field, without copying them."""
        if spec is None:
            return None

        for alternative in spec.alternatives:
            try:
                nodes = self._resolve_nodes(doc, alternative, spec.allow_multiple)
            except MalformedSelectorError as e:
                self._record_malformed(field_name, e, issues)
                continue
            if nodes and any(self._has_content(node) for node in nodes):
                return ContentSelection(alternative=alternative, nodes=nodes)
        return None

    def _resolve_value(
        self,
        doc: Tag,
        alternative: SelectorAlternative,
        spec: FieldSpec,
        extract_html: bool,
    ) -> FieldValue:
        if isinstance(alternative, Literal):
            return alternative.value

        if isinstance(alternative, (WithAttribute, Simple)):
            if spec.allow_multiple:
                nodes = select_all(doc, alternative.selector)
            else:
                # Only the first match counts; if it is unusable the alternative fails
                first = select_first(doc, alternative.selector)
                nodes = [first] if first is not None else []
            values = [self._node_value(node, alternative, extract_html) for node in nodes]
            return self._pick(spec, [v for v in values if v])

        if isinstance(alternative, AllOf):
            nodes = self._resolve_nodes(doc, alternative, spec.allow_multiple)
            if not nodes:
                return None
            values = [v for v in (self._render(n, extract_html) for n in nodes) if v]
            if spec.allow_multiple:
                return self._pick(spec, values)
            joined = ("" if extract_html else " ").join(values)
            return joined if joined and spec.accepts(joined) else None

        raise TypeError(f"Unknown selector alternative {alternative!r}")

    def _resolve_nodes(
        self, doc: Tag, alternative: SelectorAlternative, allow_multiple: bool
    ) -> Optional[List[Tag]]:
        if isinstance(alternative, Literal):
            fragment = BeautifulSoup(f"<div>{alternative.value}</div>", "html.parser")
            return [fragment.div]

        if isinstance(alternative, WithAttribute):
            logger.debug(f"Attribute alternative {alternative} cannot supply content nodes")
            return None

        if isinstance(alternative, Simple):
            matches = select_all(doc, alternative.selector)
            if not matches:
                return None
            return matches if allow_multiple else matches[:1]

        if isinstance(alternative, AllOf):
            # Evaluate every member first so a miss discards the whole group
            groups = []
            for selector in alternative.group:
                matches = select_all(doc, selector)
                if not matches:
                    return None
                groups.append(matches if allow_multiple else matches[:1])
            collected: List[Tag] = []
            seen = set()
            for matches in groups:
                for node in matches:
                    if id(node) not in seen:
                        seen.add(id(node))
                        collected.append(node)
            return collected

        raise TypeError(f"Unknown selector alternative {alternative!r}")

    @classmethod
    def _node_value(
        cls, node: Tag, alternative: SelectorAlternative, extract_html: bool
    ) -> Optional[str]:
        if isinstance(alternative, WithAttribute):
            return read_attribute(node, alternative.attribute)
        value = cls._render(node, extract_html)
        if value and alternative.pattern and not re.search(alternative.pattern, value):
            return None
        return value

    @staticmethod
    def _render(node: Tag, extract_html: bool) -> str:
        if extract_html:
            return str(node).strip() if node_text(node) or contains_image(node) else ""
        return node_text(node)

    @staticmethod
    def _pick(spec: FieldSpec, values: List[str]) -> FieldValue:
        accepted = [v for v in values if v and spec.accepts(v)]
        if not accepted:
            return None
        return accepted if spec.allow_multiple else accepted[0]

    @staticmethod
    def _has_content(node: Tag) -> bool:
        return bool(node_text(node)) or contains_image(node)

    def _record_malformed(
        self,
        field_name: str,
        error: MalformedSelectorError,
        issues: Optional[List[FieldIssue]],
    ) -> None:
        logger.warning(f"Skipping alternative for {field_name or 'field'}: {error}")
        if issues is not None:
            issues.append(FieldIssue.from_exception(field_name, error))
        if self.metrics:
            self.metrics.record_issue("malformed_selector")
