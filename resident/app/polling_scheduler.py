"""Scheduler helper that owns poll timers for the notification sync engine.

The host passes ``after``/``after_cancel`` style callables into this class
(Tk, another UI loop, or ``TimerBackend`` for headless runs) so timer state is
tracked in one place and canceled safely when polling stops or the app closes.
"""

from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Optional

ScheduleFn = Callable[[int, Callable[[], None]], str]
CancelFn = Callable[[str], None]


@dataclass
class PollHandle:
    """Timer token associated with a single poll channel.

    Attributes:
        key: Channel key (for example ``notifications``).
        token: Scheduler token returned by the host scheduler implementation.
    """

    key: str
    token: str


class PollingScheduler:
    """Manage keyed one-shot poll timers using a host scheduler."""

    def __init__(self, schedule: ScheduleFn, cancel: CancelFn) -> None:
        """Store schedule/cancel functions and initialize handle registry.

        Args:
            schedule: Function compatible with ``after(delay_ms, callback)``.
            cancel: Function compatible with ``after_cancel(token)``.
        """
        self._schedule = schedule
        self._cancel = cancel
        self._handles: Dict[str, PollHandle] = {}
        self._lock = threading.Lock()
        self._log = logging.getLogger(__name__)

    def schedule(self, key: str, delay_ms: int, callback: Callable[[], None]) -> None:
        """Schedule or reschedule the next poll for a channel.

        Args:
            key: Poll channel key.
            delay_ms: Delay in milliseconds before callback execution.
            callback: Poll callback to execute.
        """
        delay = max(1, int(delay_ms))
        self.cancel(key)
        token = self._schedule(delay, callback)
        with self._lock:
            self._handles[key] = PollHandle(key=key, token=token)

    def cancel(self, key: str) -> None:
        """Cancel a pending poll for a channel; unknown keys are ignored."""
        with self._lock:
            handle = self._handles.pop(key, None)
        if not handle:
            return
        try:
            self._cancel(handle.token)
        except Exception as exc:
            self._log.debug("Cancel of %s timer failed: %s", key, exc)

    def cancel_all(self) -> None:
        """Cancel all pending polls across all channel keys."""
        with self._lock:
            keys = list(self._handles.keys())
        for key in keys:
            self.cancel(key)

    def handle_for(self, key: str) -> Optional[PollHandle]:
        """Return the current handle for a channel, if scheduled."""
        with self._lock:
            return self._handles.get(key)


class TimerBackend:
    """``after``/``after_cancel`` pair backed by ``threading.Timer`` for headless use."""

    def __init__(self) -> None:
        self._timers: Dict[str, threading.Timer] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def after(self, delay_ms: int, callback: Callable[[], None]) -> str:
        token = f"timer-{next(self._ids)}"

        def _fire() -> None:
            with self._lock:
                self._timers.pop(token, None)
            callback()

        timer = threading.Timer(delay_ms / 1000.0, _fire)
        timer.daemon = True
        with self._lock:
            self._timers[token] = timer
        timer.start()
        return token

    def after_cancel(self, token: str) -> None:
        with self._lock:
            timer = self._timers.pop(token, None)
        if timer is not None:
            timer.cancel()

    def pending(self) -> int:
        with self._lock:
            return len(self._timers)


def headless_scheduler() -> PollingScheduler:
    """Build a ``PollingScheduler`` driven by ``TimerBackend``."""
    backend = TimerBackend()
    return PollingScheduler(backend.after, backend.after_cancel)


__all__ = ["PollHandle", "PollingScheduler", "TimerBackend", "headless_scheduler"]
