"""
Drives per-field extraction and assembles the Result.
"""

import time
from enum import Enum
from typing import List, Optional, Union

from bs4.element import Tag

from marrow.content_processor import TransformCleanPipeline, serialize_content
from marrow.exceptions import ContentNotFound, ExtractionTimeout
from marrow.extractors.derived import (
    canonical_url,
    domain_of,
    ellipsize,
    excerpt_from_text,
    first_image_url,
    text_direction,
    word_count,
)
from marrow.instrumentation import get_tracer
from marrow.metrics_collector import MetricsCollector
from marrow.scoring.scorer import ScoringEngine
from marrow.selectors.config import RuleSet
from marrow.selectors.engine import SelectorEngine
from marrow.selectors.generic_extractor import GENERIC_RULE_SET
from marrow.selectors.resolver import RuleSetRef
from marrow.types import (
    SELECTABLE_FIELDS,
    ExtractionOptions,
    FieldIssue,
    FieldValue,
    ResolverTier,
    Result,
)
from marrow.utils.dom import absolutize, contains_image, node_text, normalize_spaces, wrap_clones
from marrow.utils.logger import setup_logger

logger = setup_logger()
tracer = get_tracer()


class FieldState(str, Enum):
    """Per-field resolution states."""
    TRY_RULE_SET = "try_rule_set"
    TRY_GENERIC = "try_generic"
    DONE = "done"


class FieldExtractionOrchestrator:
    """
    Extracts every field of a Result from one document.

    Metadata fields only read the document and run first. Content is
    built from copies of the selected nodes, so the caller's document is
    never mutated.
    """

    def __init__(
        self,
        selector_engine: Optional[SelectorEngine] = None,
        pipeline: Optional[TransformCleanPipeline] = None,
        scoring_engine: Optional[ScoringEngine] = None,
        generic_rule_set: Optional[RuleSet] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.metrics = metrics
        self.selector_engine = selector_engine or SelectorEngine(metrics)
        self.pipeline = pipeline or TransformCleanPipeline(metrics)
        self.scoring_engine = scoring_engine or ScoringEngine()
        self.generic_rule_set = generic_rule_set or GENERIC_RULE_SET

    def extract(
        self,
        doc: Tag,
        url: Optional[str],
        rule_set: Union[RuleSet, RuleSetRef, None] = None,
        options: Optional[ExtractionOptions] = None,
    ) -> Result:
        """
        Extract all fields from doc.

        Args:
            doc: Parsed document
            url: URL the document was fetched from; base for relative links
            rule_set: Rule set or resolved reference; the generic rule set if None
            options: Extraction options

        Returns:
            Result with the fixed field set; fields that could not be
            extracted are empty and any degradation is listed in issues
        """
        start_time = time.time()
        options = options or ExtractionOptions()

        tier = None
        if isinstance(rule_set, RuleSetRef):
            tier = rule_set.tier
            rule_set = rule_set.rule_set
        if rule_set is None:
            rule_set = self.generic_rule_set
            tier = ResolverTier.GENERIC

        result = Result(rule_set=rule_set.domain, resolver_tier=tier)

        with tracer.start_as_current_span("marrow.extract") as span:
            span.set_attribute("marrow.rule_set", rule_set.domain)
            span.set_attribute("marrow.url", url or "")

            if not options.content_only:
                for name in SELECTABLE_FIELDS:
                    setattr(result, name, self._guarded(
                        name, result.issues, self._extract_field, doc, name, rule_set, options, result.issues,
                    ))
                for name, spec in rule_set.extend.items():
                    result.extended[name] = self._guarded(
                        name, result.issues, self.selector_engine.select_field,
                        doc, spec, options.wants_html(name), name, result.issues,
                    )

            subtree = self._guarded(
                "content", result.issues, self._extract_content, doc, url, rule_set, options, result
            )
            if subtree is not None:
                if options.wants_html("content"):
                    result.content = serialize_content(subtree) or None
                else:
                    result.content = node_text(subtree) or None

            self._derive_fields(url, subtree, result, options)

            span.set_attribute("marrow.content_from_scoring", result.content_from_scoring)
            span.set_attribute("marrow.issues", len(result.issues))

        result.processing_time = time.time() - start_time
        if self.metrics:
            self.metrics.record_extraction(
                has_content=bool(result.content),
                processing_time=result.processing_time,
                used_scoring=result.content_from_scoring,
            )
        logger.debug(
            f"Extracted {url} with {rule_set.domain}: "
            f"content={'yes' if result.content else 'no'}, issues={len(result.issues)}"
        )
        return result

    def _extract_field(
        self,
        doc: Tag,
        name: str,
        rule_set: RuleSet,
        options: ExtractionOptions,
        issues: List[FieldIssue],
    ) -> FieldValue:
        extract_html = options.wants_html(name)
        value: FieldValue = None
        state = FieldState.TRY_RULE_SET

        while state != FieldState.DONE:
            if state == FieldState.TRY_RULE_SET:
                value = self.selector_engine.select_field(
                    doc, rule_set.field_spec(name), extract_html, name, issues
                )
                if value or rule_set.is_generic or not options.fallback:
                    state = FieldState.DONE
                else:
                    state = FieldState.TRY_GENERIC
            elif state == FieldState.TRY_GENERIC:
                value = self.selector_engine.select_field(
                    doc, self.generic_rule_set.field_spec(name), extract_html, name, issues
                )
                state = FieldState.DONE

        return value

    def _extract_content(
        self,
        doc: Tag,
        url: Optional[str],
        rule_set: RuleSet,
        options: ExtractionOptions,
        result: Result,
    ) -> Optional[Tag]:
        spec = rule_set.content
        subtree: Optional[Tag] = None
        state = FieldState.TRY_RULE_SET

        while state != FieldState.DONE:
            if state == FieldState.TRY_RULE_SET:
                state = FieldState.TRY_GENERIC
                if rule_set.is_generic or options.force_fallback or spec is None:
                    continue
                selection = self.selector_engine.select_content(doc, spec, "content", result.issues)
                if selection is None:
                    logger.debug(f"No content selector of {rule_set.domain} matched")
                    continue
                processed = self.pipeline.process_with_spec(
                    wrap_clones(selection.nodes), spec, url, result.issues
                )
                if self._has_content(processed):
                    subtree = processed
                    state = FieldState.DONE
            elif state == FieldState.TRY_GENERIC:
                subtree = self._score_content(doc, url, rule_set, result)
                state = FieldState.DONE

        return subtree

    def _score_content(
        self, doc: Tag, url: Optional[str], rule_set: RuleSet, result: Result
    ) -> Optional[Tag]:
        try:
            candidate = self.scoring_engine.extract_main_content(doc)
        except (ContentNotFound, ExtractionTimeout) as e:
            logger.info(f"Scoring produced no content for {url}: {e}")
            self._record_issue(result, "content", e)
            return None

        result.content_from_scoring = True
        spec = rule_set.content
        # Scored output always gets the default cleaner
        subtree = self.pipeline.process(
            candidate.subtree,
            transforms=spec.transforms if spec else None,
            clean=spec.clean if spec else None,
            apply_default_cleaner=True,
            base_url=url,
            issues=result.issues,
        )
        return subtree if self._has_content(subtree) else None

    def _derive_fields(
        self,
        url: Optional[str],
        subtree: Optional[Tag],
        result: Result,
        options: ExtractionOptions,
    ) -> None:
        content_text = node_text(subtree) if subtree is not None else ""
        result.word_count = word_count(content_text)

        if options.content_only:
            result.url = url or None
            result.domain = domain_of(result.url)
            return

        result.url = canonical_url(result.url if isinstance(result.url, str) else None, url)
        result.domain = domain_of(result.url)

        if isinstance(result.excerpt, str):
            result.excerpt = ellipsize(result.excerpt) or None
        if not result.excerpt:
            result.excerpt = excerpt_from_text(content_text)

        if isinstance(result.dek, str) and isinstance(result.excerpt, str):
            if normalize_spaces(result.dek) == normalize_spaces(result.excerpt):
                result.dek = None

        if isinstance(result.lead_image_url, str):
            result.lead_image_url = absolutize(result.lead_image_url, url)
        if not result.lead_image_url:
            result.lead_image_url = first_image_url(subtree, url)

        if isinstance(result.next_page_url, str):
            next_url = absolutize(result.next_page_url, url)
            result.next_page_url = next_url if next_url != result.url and next_url != url else None

        title = result.title if isinstance(result.title, str) else None
        result.direction = text_direction(title).value

    def _guarded(self, field_name: str, issues: List[FieldIssue], func, *args):
        """Run one field's extraction; an unexpected error empties only that field."""
        try:
            return func(*args)
        except Exception as e:
            logger.error(f"Unexpected error extracting {field_name}: {e}")
            issues.append(FieldIssue.from_exception(field_name, e))
            if self.metrics:
                self.metrics.record_issue("unexpected")
            return None

    def _record_issue(self, result: Result, field_name: str, error: Exception) -> None:
        issue = result.add_issue(field_name, error)
        if self.metrics:
            self.metrics.record_issue(issue.category.value)

    @staticmethod
    def _has_content(subtree: Optional[Tag]) -> bool:
        return subtree is not None and (bool(node_text(subtree)) or contains_image(subtree))
