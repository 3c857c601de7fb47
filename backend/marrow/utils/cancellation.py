"""
Cooperative cancellation shared between a coordinator and its workers.
"""
import threading
import time
from typing import Optional

from marrow.exceptions import ExtractionTimeout


class CancellationToken:
    """
    A cancel flag combined with an optional deadline.

    Workers poll cancelled between units of work; the coordinator calls
    cancel() once it no longer needs their results.
    """

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout
        self._expires_at = time.monotonic() + timeout if timeout and timeout > 0 else None
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def expired(self) -> bool:
        return self._expires_at is not None and time.monotonic() >= self._expires_at

    @property
    def cancelled(self) -> bool:
        return self._event.is_set() or self.expired

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None without one."""
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - time.monotonic())

    def raise_if_cancelled(self, stage: str) -> None:
        if self.cancelled:
            raise ExtractionTimeout(stage, self.timeout or 0.0)
