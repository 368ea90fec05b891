from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Set

from resident.adapters.api_errors import ApiNetworkError
from resident.domain.notifications import (
    SLICE_ANNOUNCEMENTS,
    SLICE_NOTIFICATIONS,
    SLICE_UNREAD,
    Notification,
    NotificationSnapshot,
    SyncResult,
)
from resident.usecases.notification_sync import (
    STATE_IDLE,
    STATE_POLLING,
    NotificationSyncEngine,
)
from resident.usecases.retry_policy import RetryPolicy


def _items(prefix: str, count: int) -> List[Notification]:
    return [Notification(id=f"{prefix}{idx}") for idx in range(count)]


class _FakePort:
    def __init__(self, notifications: int = 0, announcements: int = 0, unread: int = 0) -> None:
        self.notifications = notifications
        self.announcements = announcements
        self.unread = unread
        self.fail: Set[str] = set()
        self.reads: List[str] = []
        self.tokens: List[str] = []

    def _check(self, name: str) -> None:
        self.reads.append(name)
        if name in self.fail:
            raise ApiNetworkError("offline")

    def list_notifications(self, page: int = 1, limit: int = 20, **_: Any) -> List[Notification]:
        self._check(SLICE_NOTIFICATIONS)
        return _items("n", self.notifications)

    def list_announcements(self, page: int = 1, limit: int = 10) -> List[Notification]:
        self._check(SLICE_ANNOUNCEMENTS)
        return _items("a", self.announcements)

    def unread_count(self) -> int:
        self._check(SLICE_UNREAD)
        return self.unread

    def register_token(self, push_token: str) -> None:
        self.tokens.append(push_token)


class _ManualScheduler:
    def __init__(self) -> None:
        self.pending: Dict[str, Callable[[], None]] = {}
        self.schedule_calls: List[tuple] = []
        self.cancelled: List[str] = []

    def schedule(self, key: str, delay_ms: int, callback: Callable[[], None]) -> None:
        self.schedule_calls.append((key, delay_ms))
        self.pending[key] = callback

    def cancel(self, key: str) -> None:
        self.cancelled.append(key)
        self.pending.pop(key, None)

    def fire(self, key: str = "notifications") -> None:
        callback = self.pending.pop(key)
        callback()


class _FakePlatform:
    def __init__(self, token: str = "ExponentPushToken[dev]") -> None:
        self.token = token
        self.listeners: List[Any] = []
        self.removed: List[Any] = []

    def request_permission(self) -> bool:
        return True

    def get_push_token(self) -> str:
        return self.token

    def add_received_listener(self, callback: Callable[[Any], None]) -> str:
        self.listeners.append(("received", callback))
        return f"sub-{len(self.listeners)}"

    def add_response_listener(self, callback: Callable[[Any], None]) -> str:
        self.listeners.append(("response", callback))
        return f"sub-{len(self.listeners)}"

    def remove_listener(self, handle: Any) -> None:
        self.removed.append(handle)


def _engine(
    port: _FakePort,
    scheduler: _ManualScheduler,
    *,
    push_platform: Optional[_FakePlatform] = None,
) -> NotificationSyncEngine:
    return NotificationSyncEngine(
        port,  # type: ignore[arg-type]
        scheduler,
        poll_interval_ms=15000,
        push_platform=push_platform,  # type: ignore[arg-type]
        retry_policy=RetryPolicy(sleep=lambda _s: None),
    )


def test_start_runs_cycle_immediately_and_arms_one_timer() -> None:
    port = _FakePort(notifications=2, announcements=1, unread=3)
    scheduler = _ManualScheduler()
    engine = _engine(port, scheduler)
    received: List[SyncResult] = []

    engine.start_polling(received.append)

    assert engine.state == STATE_POLLING
    assert len(received) == 1
    assert received[0].has_changes is True
    assert received[0].unread_count == 3
    assert sorted(port.reads) == sorted([SLICE_NOTIFICATIONS, SLICE_ANNOUNCEMENTS, SLICE_UNREAD])
    assert scheduler.schedule_calls == [("notifications", 15000)]
    assert engine.snapshot == NotificationSnapshot(notifications=2, announcements=1, unread_count=3)


def test_second_start_only_adds_subscriber() -> None:
    port = _FakePort(unread=1)
    scheduler = _ManualScheduler()
    engine = _engine(port, scheduler)
    first: List[SyncResult] = []
    second: List[SyncResult] = []

    engine.start_polling(first.append)
    engine.start_polling(second.append)

    assert len(scheduler.schedule_calls) == 1
    assert engine.subscriber_count == 2
    assert len(first) == 1
    assert second == []

    scheduler.fire()

    assert len(first) == 2
    assert len(second) == 1


def test_counts_drive_change_detection_across_cycles() -> None:
    port = _FakePort(unread=2)
    scheduler = _ManualScheduler()
    engine = _engine(port, scheduler)
    received: List[SyncResult] = []

    engine.start_polling(received.append)
    scheduler.fire()
    port.unread = 5
    scheduler.fire()

    assert [r.unread_count for r in received] == [2, 2, 5]
    assert [r.has_changes for r in received] == [True, False, True]


def test_decreasing_count_is_a_change() -> None:
    port = _FakePort(notifications=3)
    scheduler = _ManualScheduler()
    engine = _engine(port, scheduler)
    received: List[SyncResult] = []

    engine.start_polling(received.append)
    port.notifications = 1
    scheduler.fire()

    assert received[-1].has_changes is True
    assert len(received[-1].notifications) == 1


def test_failed_slice_keeps_last_good_value() -> None:
    port = _FakePort(notifications=2, announcements=1, unread=4)
    scheduler = _ManualScheduler()
    engine = _engine(port, scheduler)
    received: List[SyncResult] = []

    engine.start_polling(received.append)
    port.fail = {SLICE_UNREAD}
    port.notifications = 3
    scheduler.fire()

    latest = received[-1]
    assert latest.unread_count == 4
    assert len(latest.notifications) == 3
    assert latest.failed_slices == frozenset({SLICE_UNREAD})
    assert latest.has_changes is True
    assert "notifications" in scheduler.pending


def test_every_slice_failing_still_notifies_and_rearms() -> None:
    port = _FakePort()
    port.fail = {SLICE_NOTIFICATIONS, SLICE_ANNOUNCEMENTS, SLICE_UNREAD}
    scheduler = _ManualScheduler()
    engine = _engine(port, scheduler)
    received: List[SyncResult] = []

    engine.start_polling(received.append)

    assert len(received) == 1
    assert received[0].has_changes is False
    assert received[0].failed_slices == frozenset(
        {SLICE_NOTIFICATIONS, SLICE_ANNOUNCEMENTS, SLICE_UNREAD}
    )
    assert "notifications" in scheduler.pending


def test_raising_subscriber_does_not_block_others_or_the_timer() -> None:
    port = _FakePort(unread=1)
    scheduler = _ManualScheduler()
    engine = _engine(port, scheduler)
    received: List[SyncResult] = []

    def _broken(_result: SyncResult) -> None:
        raise RuntimeError("render failed")

    engine.start_polling(_broken)
    engine.start_polling(received.append)
    scheduler.fire()

    assert len(received) == 1
    assert "notifications" in scheduler.pending


def test_stop_resets_state_and_cancels_timer() -> None:
    port = _FakePort(unread=2)
    scheduler = _ManualScheduler()
    engine = _engine(port, scheduler)

    engine.start_polling(lambda _r: None)
    engine.stop_polling()

    assert engine.state == STATE_IDLE
    assert engine.subscriber_count == 0
    assert engine.snapshot == NotificationSnapshot.zero()
    assert scheduler.cancelled == ["notifications"]
    assert scheduler.pending == {}


def test_stop_while_idle_is_a_no_op() -> None:
    scheduler = _ManualScheduler()
    engine = _engine(_FakePort(), scheduler)

    engine.stop_polling()

    assert scheduler.cancelled == []
    assert engine.state == STATE_IDLE


def test_restart_behaves_like_a_fresh_engine() -> None:
    port = _FakePort(unread=2)
    scheduler = _ManualScheduler()
    engine = _engine(port, scheduler)

    engine.start_polling(lambda _r: None)
    engine.stop_polling()
    received: List[SyncResult] = []
    engine.start_polling(received.append)

    assert received[0].has_changes is True
    assert engine.subscriber_count == 1


def test_stale_timer_after_stop_does_nothing() -> None:
    port = _FakePort(unread=1)
    scheduler = _ManualScheduler()
    engine = _engine(port, scheduler)
    received: List[SyncResult] = []

    engine.start_polling(received.append)
    stale = scheduler.pending["notifications"]
    engine.stop_polling()
    reads_before = len(port.reads)

    stale()

    assert len(received) == 1
    assert len(port.reads) == reads_before
    assert scheduler.pending == {}
    assert engine.snapshot == NotificationSnapshot.zero()


def test_subscriber_stopping_the_engine_halts_fan_out() -> None:
    port = _FakePort(unread=1)
    scheduler = _ManualScheduler()
    engine = _engine(port, scheduler)
    later: List[SyncResult] = []

    engine.start_polling(lambda _r: None)
    engine.start_polling(lambda _r: engine.stop_polling())
    engine.start_polling(later.append)
    scheduler.fire()

    assert later == []
    assert engine.state == STATE_IDLE
    assert scheduler.pending == {}


def test_unsubscribe_removes_only_that_subscriber() -> None:
    port = _FakePort()
    scheduler = _ManualScheduler()
    engine = _engine(port, scheduler)
    kept: List[SyncResult] = []
    dropped: List[SyncResult] = []

    engine.start_polling(kept.append)
    unsubscribe = engine.start_polling(dropped.append)
    unsubscribe()
    unsubscribe()
    scheduler.fire()

    assert len(kept) == 2
    assert dropped == []
    assert engine.state == STATE_POLLING


def test_poll_once_while_idle_does_not_seed_snapshot() -> None:
    port = _FakePort(unread=9)
    engine = _engine(port, _ManualScheduler())

    result = engine.poll_once()

    assert result.unread_count == 9
    assert result.has_changes is True
    assert engine.snapshot == NotificationSnapshot.zero()


def test_listeners_without_push_platform_return_none() -> None:
    engine = _engine(_FakePort(), _ManualScheduler())

    assert engine.add_foreground_listener(lambda _n: None) is None
    assert engine.add_response_listener(lambda _n: None) is None
    engine.remove_listener(None)
    assert engine.register_for_push_notifications() is None


def test_push_registration_leaves_polling_state_untouched() -> None:
    port = _FakePort(unread=2)
    scheduler = _ManualScheduler()
    platform = _FakePlatform()
    engine = _engine(port, scheduler, push_platform=platform)

    engine.start_polling(lambda _r: None)
    snapshot = engine.snapshot
    token = engine.register_for_push_notifications()

    assert token == "ExponentPushToken[dev]"
    assert port.tokens == ["ExponentPushToken[dev]"]
    assert engine.snapshot == snapshot
    assert len(scheduler.schedule_calls) == 1

    handle = engine.add_foreground_listener(lambda _n: None)
    response_handle = engine.add_response_listener(lambda _n: None)
    engine.remove_listener(handle)

    assert [kind for kind, _cb in platform.listeners] == ["received", "response"]
    assert platform.removed == [handle]
    assert response_handle == "sub-2"


def test_subscribers_run_in_registration_order_every_cycle() -> None:
    port = _FakePort(unread=1)
    scheduler = _ManualScheduler()
    engine = _engine(port, scheduler)
    calls: List[str] = []

    def _tagged(tag: str, *, fail: bool = False) -> Callable[[SyncResult], None]:
        def _subscriber(_result: SyncResult) -> None:
            calls.append(tag)
            if fail:
                raise RuntimeError(f"{tag} failed")

        return _subscriber

    engine.start_polling(_tagged("a"))
    engine.start_polling(_tagged("b", fail=True))
    engine.start_polling(_tagged("c"))
    calls.clear()

    scheduler.fire()
    scheduler.fire()

    assert calls == ["a", "b", "c", "a", "b", "c"]


def test_announcement_count_change_is_detected_per_slice() -> None:
    port = _FakePort(notifications=4, announcements=2, unread=3)
    scheduler = _ManualScheduler()
    engine = _engine(port, scheduler)
    received: List[SyncResult] = []

    engine.start_polling(received.append)
    assert engine.snapshot.announcements == 2

    scheduler.fire()
    port.announcements = 5
    scheduler.fire()

    assert [len(r.announcements) for r in received] == [2, 2, 5]
    assert [r.has_changes for r in received[1:]] == [False, True]
    assert [r.unread_count for r in received] == [3, 3, 3]
    assert engine.snapshot == NotificationSnapshot(notifications=4, announcements=5, unread_count=3)
