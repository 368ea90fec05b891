"""Ports (hexagonal boundaries) consumed by the use-case layer."""

from __future__ import annotations

from typing import Any, Callable, Iterable, List, Optional, Protocol

from resident.domain.notifications import Notification

NotificationId = str
ListenerHandle = Any


class CredentialStore(Protocol):
    """Persistent key-value store holding session credentials."""

    def get(self, key: str) -> Optional[str]: ...
    def set(self, key: str, value: str) -> None: ...
    def remove_many(self, keys: Iterable[str]) -> None: ...  # absent keys are ignored


class NotificationPort(Protocol):
    """Notification reads/writes against the backend REST API."""

    def list_notifications(
        self,
        page: int = 1,
        limit: int = 20,
        *,
        type: Optional[str] = None,
        is_read: Optional[bool] = None,
    ) -> List[Notification]: ...
    def list_announcements(self, page: int = 1, limit: int = 10) -> List[Notification]: ...
    def unread_count(self) -> int: ...
    def mark_as_read(self, notification_id: NotificationId) -> None: ...
    def mark_all_as_read(self) -> None: ...
    def delete_notification(self, notification_id: NotificationId) -> None: ...
    def register_token(self, push_token: str) -> None: ...


class PollSchedulerPort(Protocol):
    """Keyed one-shot timers (see ``resident.app.polling_scheduler``)."""

    def schedule(self, key: str, delay_ms: int, callback: Callable[[], None]) -> None: ...
    def cancel(self, key: str) -> None: ...


class PushPlatformPort(Protocol):
    """Device push-delivery capabilities provided by the host platform."""

    def request_permission(self) -> bool: ...  # False when the user denies
    def get_push_token(self) -> str: ...
    def add_received_listener(self, callback: Callable[[Any], None]) -> ListenerHandle: ...
    def add_response_listener(self, callback: Callable[[Any], None]) -> ListenerHandle: ...
    def remove_listener(self, handle: ListenerHandle) -> None: ...


__all__ = [
    "CredentialStore",
    "ListenerHandle",
    "NotificationId",
    "NotificationPort",
    "PollSchedulerPort",
    "PushPlatformPort",
]
