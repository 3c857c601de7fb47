"""
Metrics collection for the extraction core.
Counts extractions, resolver decisions and recoverable issues.
"""
import threading
import time
from dataclasses import dataclass, field, replace
from typing import Dict, Optional

from marrow.utils.logger import setup_logger


logger = setup_logger()


@dataclass
class ExtractionMetrics:
    """Data class for extraction metrics."""
    start_time: Optional[float] = None
    documents_processed: int = 0
    documents_with_content: int = 0
    scoring_fallbacks: int = 0
    content_not_found: int = 0
    avg_processing_time: float = 0.0
    resolver_tiers: Dict[str, int] = field(default_factory=dict)
    issue_categories: Dict[str, int] = field(default_factory=dict)

    # Derived metrics
    elapsed_time: float = 0.0
    documents_per_second: float = 0.0
    content_rate: float = 0.0
    fallback_rate: float = 0.0

    def calculate_derived_metrics(self) -> None:
        """Calculate derived metrics from base metrics."""
        if self.start_time:
            self.elapsed_time = time.time() - self.start_time
            if self.elapsed_time > 0:
                self.documents_per_second = self.documents_processed / self.elapsed_time

        if self.documents_processed > 0:
            self.content_rate = self.documents_with_content / self.documents_processed
            self.fallback_rate = self.scoring_fallbacks / self.documents_processed


class MetricsCollector:
    """
    Thread-safe metrics collection shared by the resolver and orchestrator.
    """

    def __init__(self):
        self._metrics = ExtractionMetrics(start_time=time.time())
        self._lock = threading.Lock()

    def record_extraction(
        self,
        has_content: bool,
        processing_time: Optional[float] = None,
        used_scoring: bool = False,
    ) -> None:
        """Record one finished extraction."""
        with self._lock:
            self._metrics.documents_processed += 1
            if has_content:
                self._metrics.documents_with_content += 1
            if used_scoring:
                self._metrics.scoring_fallbacks += 1

            if processing_time is not None:
                count = self._metrics.documents_processed
                current_avg = self._metrics.avg_processing_time
                self._metrics.avg_processing_time = (
                    (current_avg * (count - 1) + processing_time) / count
                )

    def record_resolution(self, tier: str) -> None:
        with self._lock:
            tiers = self._metrics.resolver_tiers
            tiers[tier] = tiers.get(tier, 0) + 1

    def record_issue(self, category: str) -> None:
        """Increment the count for an issue category."""
        with self._lock:
            categories = self._metrics.issue_categories
            categories[category] = categories.get(category, 0) + 1
            if category == "not_found":
                self._metrics.content_not_found += 1

    def get_metrics(self) -> ExtractionMetrics:
        """Get a snapshot with derived metrics calculated."""
        with self._lock:
            snapshot = replace(
                self._metrics,
                resolver_tiers=dict(self._metrics.resolver_tiers),
                issue_categories=dict(self._metrics.issue_categories),
            )
        snapshot.calculate_derived_metrics()
        return snapshot

    def reset(self) -> None:
        with self._lock:
            self._metrics = ExtractionMetrics(start_time=time.time())

