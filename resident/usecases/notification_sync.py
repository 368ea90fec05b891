"""Polling engine keeping a rolling notification view in sync with the backend.

Each reconciliation cycle reads three slices concurrently (notification page,
announcement page, unread counter), keeps the last good value for any slice
whose read failed, compares counts against the previous snapshot, and hands
the result to every subscriber in registration order.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Any, Callable, Dict, List, Optional

from resident.domain.notifications import (
    SLICE_ANNOUNCEMENTS,
    SLICE_NOTIFICATIONS,
    SLICE_UNREAD,
    NotificationSnapshot,
    SyncResult,
)
from resident.domain.ports import (
    ListenerHandle,
    NotificationPort,
    PollSchedulerPort,
    PushPlatformPort,
)
from resident.usecases.error_mapping import map_api_error
from resident.usecases.register_push_token import RegisterPushToken
from resident.usecases.retry_policy import RetryPolicy

Subscriber = Callable[[SyncResult], None]
Unsubscribe = Callable[[], None]

STATE_IDLE = "idle"
STATE_POLLING = "polling"
_POLL_KEY = "notifications"
_FAILED = object()


class NotificationSyncEngine:
    """Own the polling lifecycle, subscriber list and count snapshot.

    One engine is built per application session and handed to consumers
    explicitly; nothing here is module-level state.
    """

    def __init__(
        self,
        notification_port: NotificationPort,
        scheduler: PollSchedulerPort,
        *,
        poll_interval_ms: int = 15000,
        notifications_limit: int = 20,
        announcements_limit: int = 10,
        push_platform: Optional[PushPlatformPort] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ) -> None:
        """Wire the engine to its collaborators.

        Args:
            notification_port: Adapter reading the three slices.
            scheduler: Keyed timer used to arm the next cycle.
            poll_interval_ms: Delay between the end of one cycle and the next.
            notifications_limit: Page size for the notification read.
            announcements_limit: Page size for the announcement read.
            push_platform: Host push capabilities, ``None`` when unsupported.
            retry_policy: Policy for push-token acquisition and submission.
        """
        self.notification_port = notification_port
        self.scheduler = scheduler
        self.poll_interval_ms = max(1, int(poll_interval_ms))
        self.notifications_limit = notifications_limit
        self.announcements_limit = announcements_limit
        self.push_platform = push_platform
        self._register_push = RegisterPushToken(
            platform=push_platform,
            notification_port=notification_port,
            retry_policy=retry_policy or RetryPolicy(),
        )
        self._lock = threading.RLock()
        self._cycle_lock = threading.Lock()
        self._state = STATE_IDLE
        self._generation = 0
        self._subscribers: List[Subscriber] = []
        self._snapshot = NotificationSnapshot.zero()
        self._latest = SyncResult()
        self._log = logging.getLogger(__name__)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    @property
    def state(self) -> str:
        return self._state

    @property
    def is_polling(self) -> bool:
        return self._state == STATE_POLLING

    @property
    def snapshot(self) -> NotificationSnapshot:
        return self._snapshot

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def start_polling(self, subscriber: Optional[Subscriber] = None) -> Unsubscribe:
        """Register ``subscriber`` and start polling if idle.

        The first call runs one cycle immediately on the calling thread, then
        arms the timer. Calls made while already polling only add the
        subscriber.

        Returns:
            Unsubscribe: Callable removing this subscriber; safe to call twice.
        """
        with self._lock:
            if subscriber is not None:
                self._subscribers.append(subscriber)
            already_polling = self._state == STATE_POLLING
            if not already_polling:
                self._state = STATE_POLLING
                self._generation += 1
                generation = self._generation

        if not already_polling:
            self._log.info("Polling started (%d ms interval)", self.poll_interval_ms)
            self._run_cycle(generation)

        def _unsubscribe() -> None:
            if subscriber is None:
                return
            with self._lock:
                for idx, existing in enumerate(self._subscribers):
                    if existing is subscriber:
                        del self._subscribers[idx]
                        break

        return _unsubscribe

    def stop_polling(self) -> None:
        """Cancel the timer, drop subscribers and zero the snapshot."""
        with self._lock:
            if self._state == STATE_IDLE:
                return
            self._state = STATE_IDLE
            self._generation += 1
            self._subscribers.clear()
            self._snapshot = NotificationSnapshot.zero()
            self._latest = SyncResult()
        self.scheduler.cancel(_POLL_KEY)
        self._log.info("Polling stopped")

    def poll_once(self) -> SyncResult:
        """Run one reconciliation cycle outside the timer and return its result."""
        with self._lock:
            generation = self._generation
        return self._reconcile(generation)

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------
    def _run_cycle(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                return
        try:
            self._reconcile(generation)
        except Exception:
            self._log.exception("Polling error")
        with self._lock:
            if generation != self._generation or self._state != STATE_POLLING:
                return
            self.scheduler.schedule(
                _POLL_KEY, self.poll_interval_ms, lambda: self._run_cycle(generation)
            )

    def _reconcile(self, generation: int) -> SyncResult:
        with self._cycle_lock:
            outcomes = self._read_slices()
            with self._lock:
                previous = self._latest
                snapshot = self._snapshot
                subscribers = list(self._subscribers)

            failed = frozenset(name for name, value in outcomes.items() if value is _FAILED)

            def _pick(name: str, fallback: Any) -> Any:
                value = outcomes.get(name, _FAILED)
                return fallback if value is _FAILED else value

            notifications = tuple(_pick(SLICE_NOTIFICATIONS, previous.notifications))
            announcements = tuple(_pick(SLICE_ANNOUNCEMENTS, previous.announcements))
            unread_count = int(_pick(SLICE_UNREAD, previous.unread_count))
            counts = NotificationSnapshot(
                notifications=len(notifications),
                announcements=len(announcements),
                unread_count=unread_count,
            )
            result = SyncResult(
                notifications=notifications,
                announcements=announcements,
                unread_count=unread_count,
                has_changes=counts.differs_from(snapshot),
                failed_slices=failed,
            )

            self._fan_out(result, subscribers, generation)

            with self._lock:
                if generation == self._generation and self._state == STATE_POLLING:
                    self._snapshot = counts
                    self._latest = result
            return result

    def _read_slices(self) -> Dict[str, Any]:
        reads: Dict[str, Callable[[], Any]] = {
            SLICE_NOTIFICATIONS: lambda: self.notification_port.list_notifications(
                1, self.notifications_limit
            ),
            SLICE_ANNOUNCEMENTS: lambda: self.notification_port.list_announcements(
                1, self.announcements_limit
            ),
            SLICE_UNREAD: self.notification_port.unread_count,
        }
        outcomes: Dict[str, Any] = {}
        with ThreadPoolExecutor(max_workers=len(reads), thread_name_prefix="resident-sync") as pool:
            futures = {pool.submit(fn): name for name, fn in reads.items()}
            wait(futures)
        for future, name in futures.items():
            try:
                outcomes[name] = future.result()
            except Exception as exc:
                mapped = map_api_error(exc, default_code="SYNC_READ_FAILED")
                self._log.warning("%s read failed (%s): %s", name, mapped.code, mapped.message)
                outcomes[name] = _FAILED
        return outcomes

    def _fan_out(self, result: SyncResult, subscribers: List[Subscriber], generation: int) -> None:
        for subscriber in subscribers:
            if generation != self._generation:
                # Stopped by an earlier subscriber in this cycle.
                return
            try:
                subscriber(result)
            except Exception:
                self._log.exception("Subscriber %r failed", subscriber)

    # ------------------------------------------------------------------
    # Push delivery
    # ------------------------------------------------------------------
    def register_for_push_notifications(self) -> Optional[str]:
        """Acquire a push token and register it with the backend.

        Never touches polling state; safe to call repeatedly.
        """
        return self._register_push()

    def add_foreground_listener(self, callback: Callable[[Any], None]) -> Optional[ListenerHandle]:
        if self.push_platform is None:
            self._log.debug("Listeners not available")
            return None
        return self.push_platform.add_received_listener(callback)

    def add_response_listener(self, callback: Callable[[Any], None]) -> Optional[ListenerHandle]:
        if self.push_platform is None:
            self._log.debug("Response listeners not available")
            return None
        return self.push_platform.add_response_listener(callback)

    def remove_listener(self, handle: Optional[ListenerHandle]) -> None:
        if handle is None or self.push_platform is None:
            return
        self.push_platform.remove_listener(handle)


__all__ = [
    "NotificationSyncEngine",
    "STATE_IDLE",
    "STATE_POLLING",
    "Subscriber",
    "Unsubscribe",
]
