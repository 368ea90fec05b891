"""Bounded retry with linear backoff, shared by push-token acquisition and submission."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, TypeVar

T = TypeVar("T")

BackoffFn = Callable[[int], float]


def linear_backoff(base_s: float) -> BackoffFn:
    """Return a backoff function waiting ``attempt * base_s`` seconds."""

    def _delay(attempt: int) -> float:
        return max(0.0, attempt * base_s)

    return _delay


@dataclass
class RetryPolicy:
    """Call a function up to ``max_attempts`` times, sleeping between failures.

    Attributes:
        max_attempts: Total attempts including the first one.
        backoff: Delay in seconds after failed attempt ``n`` (1-based).
        sleep: Sleep function, replaceable in tests.
    """

    max_attempts: int = 3
    backoff: BackoffFn = field(default_factory=lambda: linear_backoff(1.0))
    sleep: Callable[[float], None] = time.sleep

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    def run(self, fn: Callable[[], T], *, label: str = "operation") -> T:
        """Return the first successful result of ``fn``.

        Raises:
            Exception: The last failure once every attempt is used.
        """
        log = logging.getLogger(__name__)
        last_err: Optional[Exception] = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                return fn()
            except Exception as exc:
                last_err = exc
                if attempt == self.max_attempts:
                    log.error("%s failed after %d attempts: %s", label, attempt, exc)
                    break
                delay = self.backoff(attempt)
                log.warning(
                    "%s attempt %d/%d failed (%s); retrying in %.1fs",
                    label,
                    attempt,
                    self.max_attempts,
                    exc,
                    delay,
                )
                self.sleep(delay)
        assert last_err is not None
        raise last_err


__all__ = ["BackoffFn", "RetryPolicy", "linear_backoff"]
