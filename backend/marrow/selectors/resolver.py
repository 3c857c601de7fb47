"""
Chooses the rule set for a document.

Resolution order, first hit wins:
    1. exact hostname
    2. base domain (last two labels of the hostname)
    3. content detectors, in registration order
    4. the generic rule set
"""

import asyncio
import enum
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional
from urllib.parse import urlparse

from bs4.element import Tag

from marrow.configuration_manager import MAX_RESOLVER_WORKERS, ResolverConfig
from marrow.exceptions import ExtractionTimeout, MalformedSelectorError
from marrow.instrumentation import get_tracer
from marrow.metrics_collector import MetricsCollector
from marrow.selectors.config import RuleSet
from marrow.selectors.generic_extractor import GENERIC_RULE_SET
from marrow.selectors.registry import RuleSetSource
from marrow.types import ResolverTier
from marrow.utils.cancellation import CancellationToken
from marrow.utils.dom import compile_selector
from marrow.utils.logger import setup_logger

logger = setup_logger()
tracer = get_tracer()


@dataclass(frozen=True)
class RuleSetRef:
    """A resolved rule set and how it was found."""
    rule_set: RuleSet
    tier: ResolverTier
    key: str

    @property
    def domain(self) -> str:
        return self.rule_set.domain

    @property
    def is_generic(self) -> bool:
        return self.tier == ResolverTier.GENERIC


def normalize_hostname(hostname: str) -> str:
    hostname = (hostname or "").strip().lower().rstrip(".")
    if hostname.count(":") == 1:
        hostname = hostname.split(":", 1)[0]
    return hostname


def base_domain(hostname: str) -> str:
    """Last two dot-separated labels of hostname."""
    labels = normalize_hostname(hostname).split(".")
    return ".".join(labels[-2:])


def hostname_from_url(url: str) -> str:
    return normalize_hostname(urlparse(url).hostname or "")


def document_matches(doc: Tag, selector: str, token: Optional[CancellationToken] = None) -> bool:
    """
    Whether any element of doc matches selector.

    The walk checks token before every element so a cancelled or expired
    probe stops promptly.
    """
    compiled = compile_selector(selector)
    if token is None:
        return compiled.select_one(doc) is not None

    for node in doc.descendants:
        if token.cancelled:
            raise ExtractionTimeout(f"detector '{selector}'", token.timeout or 0.0)
        if isinstance(node, Tag) and compiled.match(node):
            return True
    return False


@dataclass
class _Probe:
    """One step of the resolution chain; lower priority values win."""
    priority: int
    tier: ResolverTier
    key: str
    run: Callable[[Optional[CancellationToken]], Optional[RuleSet]]


class _Outcome(enum.Enum):
    PENDING = "pending"
    HIT = "hit"
    MISS = "miss"


class ExtractorResolver:
    """Resolves hostnames and documents to rule sets; never fails."""

    def __init__(
        self,
        registry: RuleSetSource,
        generic_rule_set: Optional[RuleSet] = None,
        config: Optional[ResolverConfig] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.registry = registry
        self.generic_rule_set = generic_rule_set or GENERIC_RULE_SET
        self.config = config or ResolverConfig()
        self.metrics = metrics

    def resolve(
        self,
        hostname: str,
        doc: Optional[Tag] = None,
        base: Optional[str] = None,
    ) -> RuleSetRef:
        """
        Resolve sequentially, stopping at the first hit.

        Args:
            hostname: Host of the page
            doc: Parsed document for content detectors; detectors are skipped without it
            base: Base domain override; derived from hostname when omitted

        Returns:
            RuleSetRef, the generic rule set at minimum
        """
        with tracer.start_as_current_span("marrow.resolve") as span:
            span.set_attribute("marrow.hostname", hostname or "")
            for probe in self._build_probes(hostname, doc, base):
                rule_set = self._run_safely(probe, None)
                if rule_set is not None:
                    return self._finish(RuleSetRef(rule_set, probe.tier, probe.key), span)
            return self._finish(self._generic_ref(), span)

    async def resolve_concurrent(
        self,
        hostname: str,
        doc: Optional[Tag] = None,
        base: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> RuleSetRef:
        """
        Resolve with all probes running on a bounded worker pool.

        The winner is the highest priority hit. A finished lower priority hit
        waits for pending higher priority probes until they finish or the
        shared deadline passes. Once a winner is settled or time runs out the
        remaining probes are cancelled.

        Args:
            hostname: Host of the page
            doc: Parsed document for content detectors
            base: Base domain override
            timeout: Shared deadline in seconds, defaults to config.timeout

        Returns:
            RuleSetRef, the generic rule set at minimum

        Raises:
            ValueError: timeout is not positive
        """
        if timeout is not None and timeout <= 0:
            raise ValueError(f"resolver timeout must be positive, got {timeout}")

        probes = self._build_probes(hostname, doc, base)
        if not probes:
            return self._finish(self._generic_ref(), None)

        token = CancellationToken(timeout if timeout is not None else self.config.timeout)
        workers = max(1, min(len(probes), self.config.max_workers, MAX_RESOLVER_WORKERS))
        semaphore = asyncio.Semaphore(workers)

        outcomes: Dict[int, _Outcome] = {p.priority: _Outcome.PENDING for p in probes}
        hits: Dict[int, RuleSet] = {}
        tasks = {
            asyncio.ensure_future(self._run_probe(probe, semaphore, token)): probe
            for probe in probes
        }
        pending = set(tasks)

        with tracer.start_as_current_span("marrow.resolve_concurrent") as span:
            span.set_attribute("marrow.hostname", hostname or "")
            span.set_attribute("marrow.probes", len(probes))
            try:
                winner = self._merge(probes, outcomes, hits, deadline_elapsed=False)
                while winner is None and pending:
                    remaining = token.remaining()
                    if remaining is not None and remaining <= 0:
                        break
                    done, pending = await asyncio.wait(
                        pending, timeout=remaining, return_when=asyncio.FIRST_COMPLETED
                    )
                    for task in done:
                        probe = tasks[task]
                        rule_set = task.result()
                        if rule_set is not None:
                            outcomes[probe.priority] = _Outcome.HIT
                            hits[probe.priority] = rule_set
                        else:
                            outcomes[probe.priority] = _Outcome.MISS
                    winner = self._merge(probes, outcomes, hits, deadline_elapsed=False)

                if winner is None:
                    # Deadline passed or every probe finished; pending probes count as misses
                    if pending:
                        logger.warning(
                            f"Resolver deadline elapsed for {hostname} with "
                            f"{len(pending)} probes pending"
                        )
                        if self.metrics:
                            self.metrics.record_issue("timeout")
                    winner = self._merge(probes, outcomes, hits, deadline_elapsed=True)
            finally:
                token.cancel()
                for task in pending:
                    task.cancel()

            if winner is None:
                return self._finish(self._generic_ref(), span)
            return self._finish(winner, span)

    async def _run_probe(
        self, probe: _Probe, semaphore: asyncio.Semaphore, token: CancellationToken
    ) -> Optional[RuleSet]:
        async with semaphore:
            if token.cancelled:
                return None
            return await asyncio.to_thread(self._run_safely, probe, token)

    def _run_safely(
        self, probe: _Probe, token: Optional[CancellationToken]
    ) -> Optional[RuleSet]:
        try:
            return probe.run(token)
        except MalformedSelectorError as e:
            logger.warning(f"Skipping detector: {e}")
            if self.metrics:
                self.metrics.record_issue("malformed_selector")
        except ExtractionTimeout as e:
            logger.debug(f"Probe {probe.key} stopped: {e}")
        except Exception as e:
            logger.error(f"Probe {probe.key} failed unexpectedly: {e}")
        return None

    @staticmethod
    def _merge(
        probes: List[_Probe],
        outcomes: Dict[int, _Outcome],
        hits: Dict[int, RuleSet],
        deadline_elapsed: bool,
    ) -> Optional[RuleSetRef]:
        """
        Pick the winner by static priority from the outcomes so far.

        Returns None while a higher priority probe is still pending, unless
        the deadline has elapsed, and also when every probe missed.
        """
        for probe in probes:
            outcome = outcomes[probe.priority]
            if outcome == _Outcome.HIT:
                return RuleSetRef(hits[probe.priority], probe.tier, probe.key)
            if outcome == _Outcome.PENDING and not deadline_elapsed:
                return None
        return None

    def _build_probes(
        self, hostname: str, doc: Optional[Tag], base: Optional[str]
    ) -> List[_Probe]:
        probes: List[_Probe] = []
        host = normalize_hostname(hostname)

        if host:
            probes.append(_Probe(len(probes), ResolverTier.HOSTNAME, host, self._lookup(host)))
            base_key = normalize_hostname(base) if base else base_domain(host)
            if base_key and base_key != host:
                probes.append(
                    _Probe(len(probes), ResolverTier.BASE_DOMAIN, base_key, self._lookup(base_key))
                )

        if doc is not None:
            for selector, rule_set in self.registry.detectors():
                probes.append(
                    _Probe(
                        len(probes),
                        ResolverTier.DETECTOR,
                        selector,
                        self._detector(doc, selector, rule_set),
                    )
                )
        return probes

    def _lookup(self, key: str) -> Callable[[Optional[CancellationToken]], Optional[RuleSet]]:
        def run(token: Optional[CancellationToken]) -> Optional[RuleSet]:
            rule_set, found = self.registry.lookup(key)
            return rule_set if found else None
        return run

    @staticmethod
    def _detector(
        doc: Tag, selector: str, rule_set: RuleSet
    ) -> Callable[[Optional[CancellationToken]], Optional[RuleSet]]:
        def run(token: Optional[CancellationToken]) -> Optional[RuleSet]:
            return rule_set if document_matches(doc, selector, token) else None
        return run

    def _generic_ref(self) -> RuleSetRef:
        return RuleSetRef(self.generic_rule_set, ResolverTier.GENERIC, self.generic_rule_set.domain)

    def _finish(self, ref: RuleSetRef, span) -> RuleSetRef:
        logger.info(f"Resolved rule set {ref.domain} via {ref.tier.value} ({ref.key})")
        if span is not None:
            span.set_attribute("marrow.rule_set", ref.domain)
            span.set_attribute("marrow.tier", ref.tier.value)
        if self.metrics:
            self.metrics.record_resolution(ref.tier.value)
        return ref
