"""
Heuristic main-content detection for documents no rule set covers.

The engine works on a private copy of the document:
    1. strip link-heavy nodes whose class/id look like page chrome
    2. seed paragraph-like nodes with a text-based score
    3. propagate each seed to its parent and grandparent
    4. pick the highest scoring node, earliest in document order on ties
    5. merge qualifying siblings of that node
    6. sweep link-heavy blocks out of the merged subtree
"""

import copy
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from bs4 import BeautifulSoup
from bs4.element import Comment, Tag

from marrow.configs.app_configs import HTML_PARSER
from marrow.configuration_manager import ScoringConfig
from marrow.exceptions import ContentNotFound
from marrow.scoring.constants import (
    CAPTION_TAGS,
    CHROME_TAGS,
    LIKELY_CANDIDATES_RE,
    MERGEABLE_PARAGRAPH_TAGS,
    NON_CONTENT_TAGS,
    NON_TOP_CANDIDATE_TAGS,
    PARAGRAPH_TAGS,
    UNLIKELY_CANDIDATES_RE,
)
from marrow.utils.cancellation import CancellationToken
from marrow.utils.dom import (
    BLOCK_LEVEL_TAGS,
    contains_image,
    direct_text,
    document_order,
    is_detached,
    link_density,
    node_text,
    text_length,
)
from marrow.utils.logger import setup_logger

logger = setup_logger()

# Elements never removed by the unlikely-candidate pass
_PROTECTED_TAGS = frozenset(["html", "body", "a"])


@dataclass
class ScoredNode:
    """Score bookkeeping for one element of the working copy."""
    node: Tag
    order: int
    link_density: float
    base_score: float = 0.0
    content_score: float = 0.0


@dataclass
class Candidate:
    """The winning node plus the merged, swept subtree built around it."""
    top: ScoredNode
    subtree: Tag
    merged: List[Tag] = field(default_factory=list)

    @property
    def text_length(self) -> int:
        return text_length(self.subtree)


class ScoringEngine:
    """Locates the article body by scoring text density."""

    def __init__(self, config: Optional[ScoringConfig] = None, html_parser: str = HTML_PARSER):
        self.config = config or ScoringConfig()
        self.html_parser = html_parser

    def extract_main_content(
        self, doc: Tag, token: Optional[CancellationToken] = None
    ) -> Candidate:
        """
        Find the main content of a document.

        A first pass strips unlikely candidates. When it finds nothing, or
        less than min_content_length characters, a second pass runs without
        stripping and the longer result is kept.

        Args:
            doc: Parsed document; it is not modified
            token: Cancellation token; one is created from config.timeout if omitted

        Returns:
            The winning Candidate

        Raises:
            ContentNotFound: nothing scored in either pass
            ExtractionTimeout: the deadline elapsed while scoring
        """
        if token is None:
            token = CancellationToken(self.config.timeout)

        first: Optional[Candidate] = None
        try:
            first = self.find_candidate(doc, strip_unlikely=True, token=token)
        except ContentNotFound:
            logger.debug("No candidate with unlikely nodes stripped, retrying relaxed")

        if first is not None and first.text_length >= self.config.min_content_length:
            return first

        try:
            relaxed = self.find_candidate(doc, strip_unlikely=False, token=token)
        except ContentNotFound:
            relaxed = None

        if relaxed is not None and (first is None or relaxed.text_length > first.text_length):
            return relaxed
        if first is not None:
            return first
        raise ContentNotFound()

    def find_candidate(
        self,
        doc: Tag,
        strip_unlikely: bool = True,
        token: Optional[CancellationToken] = None,
    ) -> Candidate:
        """Run one scoring pass over a fresh copy of doc."""
        token = token or CancellationToken()
        working = self._working_copy(doc)

        self._strip_non_content(working)
        if strip_unlikely:
            self._strip_unlikely_candidates(working, token)

        scored = self._score_paragraphs(working, token)
        top = self._select_top_candidate(scored)
        if top is None:
            raise ContentNotFound()

        logger.debug(
            f"Top candidate <{top.node.name}> score={top.content_score:.2f} "
            f"link_density={top.link_density:.2f}"
        )

        subtree, merged = self._merge_siblings(working, top, scored)
        self._sweep_link_heavy(subtree, top, token)
        return Candidate(top=top, subtree=subtree, merged=merged)

    def _working_copy(self, doc: Tag) -> BeautifulSoup:
        if isinstance(doc, BeautifulSoup):
            return copy.copy(doc)
        return BeautifulSoup(str(doc), self.html_parser)

    @staticmethod
    def _strip_non_content(working: BeautifulSoup) -> None:
        for node in working.find_all(NON_CONTENT_TAGS):
            if not is_detached(node):
                node.decompose()
        for comment in working.find_all(string=lambda s: isinstance(s, Comment)):
            comment.extract()

    def _strip_unlikely_candidates(
        self, working: BeautifulSoup, token: CancellationToken
    ) -> None:
        removed = 0
        for node in working.find_all(True):
            token.raise_if_cancelled("scoring")
            if is_detached(node) or node.name in _PROTECTED_TAGS:
                continue

            hint = self._class_hint(node)
            if not hint or not UNLIKELY_CANDIDATES_RE.search(hint):
                continue
            if LIKELY_CANDIDATES_RE.search(hint):
                continue
            if link_density(node) > self.config.unlikely_link_density:
                node.decompose()
                removed += 1

        if removed:
            logger.debug(f"Stripped {removed} unlikely candidates")

    @staticmethod
    def _class_hint(node: Tag) -> str:
        parts = list(node.get("class") or [])
        node_id = node.get("id")
        if node_id:
            parts.append(node_id)
        if node.name in CHROME_TAGS:
            parts.append(node.name)
        return " ".join(parts)

    def _score_paragraphs(
        self, working: BeautifulSoup, token: CancellationToken
    ) -> Dict[int, ScoredNode]:
        order = document_order(working)
        scored: Dict[int, ScoredNode] = {}

        def entry(node: Tag) -> ScoredNode:
            scored_node = scored.get(id(node))
            if scored_node is None:
                scored_node = ScoredNode(
                    node=node,
                    order=order.get(id(node), len(order)),
                    link_density=link_density(node),
                )
                scored[id(node)] = scored_node
            return scored_node

        for node in working.find_all(True):
            token.raise_if_cancelled("scoring")

            if node.name in PARAGRAPH_TAGS:
                text = node_text(node)
            elif node.name in BLOCK_LEVEL_TAGS:
                text = direct_text(node)
            else:
                continue
            if len(text) <= self.config.min_seed_text_length:
                continue

            seed = entry(node)
            score = self._base_score(text) * (1.0 - seed.link_density)
            seed.base_score = score
            seed.content_score += score

            parent = node.parent
            if self._is_scorable(parent):
                entry(parent).content_score += score * self.config.parent_weight
                grandparent = parent.parent
                if self._is_scorable(grandparent):
                    entry(grandparent).content_score += score * self.config.grandparent_weight

        return scored

    def _base_score(self, text: str) -> float:
        length_bonus = min(
            self.config.max_length_bonus, len(text) // self.config.length_bonus_divisor
        )
        return 1.0 + text.count(",") + length_bonus

    @staticmethod
    def _is_scorable(node: Optional[Tag]) -> bool:
        return isinstance(node, Tag) and not isinstance(node, BeautifulSoup)

    @staticmethod
    def _select_top_candidate(scored: Dict[int, ScoredNode]) -> Optional[ScoredNode]:
        top: Optional[ScoredNode] = None
        for candidate in scored.values():
            if candidate.content_score <= 0 or candidate.node.name in NON_TOP_CANDIDATE_TAGS:
                continue
            if (
                top is None
                or candidate.content_score > top.content_score
                or (candidate.content_score == top.content_score and candidate.order < top.order)
            ):
                top = candidate
        return top

    def _merge_siblings(
        self,
        working: BeautifulSoup,
        top: ScoredNode,
        scored: Dict[int, ScoredNode],
    ) -> Tuple[Tag, List[Tag]]:
        node = top.node
        parent = node.parent

        members = [node]
        if self._is_scorable(parent) and node.name != "body":
            members = [
                sibling
                for sibling in parent.find_all(True, recursive=False)
                if sibling is node or self._admit_sibling(sibling, top, scored)
            ]

        wrapper = working.new_tag("div")
        for member in members:
            wrapper.append(member.extract())

        if len(members) > 1:
            logger.debug(f"Merged {len(members) - 1} siblings into the top candidate")
        return wrapper, members

    def _admit_sibling(
        self, sibling: Tag, top: ScoredNode, scored: Dict[int, ScoredNode]
    ) -> bool:
        """A sibling joins when it scores well itself or is a substantial paragraph."""
        existing = scored.get(id(sibling))
        if existing and existing.content_score >= self.config.sibling_score_ratio * top.content_score:
            return True

        if sibling.name not in MERGEABLE_PARAGRAPH_TAGS:
            return False
        if text_length(sibling) <= self.config.sibling_paragraph_min_length:
            return False
        density = existing.link_density if existing else link_density(sibling)
        return density < self.config.sibling_paragraph_max_link_density

    def _sweep_link_heavy(
        self, subtree: Tag, top: ScoredNode, token: CancellationToken
    ) -> None:
        for node in subtree.find_all(True):
            token.raise_if_cancelled("scoring")
            if is_detached(node) or node is top.node or node.name not in BLOCK_LEVEL_TAGS:
                continue
            density = link_density(node)
            if density <= self.config.sweep_link_density:
                continue
            if contains_image(node) or self._is_caption(node, density):
                continue
            node.decompose()

    def _is_caption(self, node: Tag, density: float) -> bool:
        if text_length(node) > self.config.caption_max_length:
            return False
        if node.name in CAPTION_TAGS or node.find_parent("figure") is not None:
            return True
        # Mostly links means navigation, not a caption
        return density <= self.config.caption_max_link_density
