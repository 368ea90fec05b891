"""Domain DTOs for the notification sync engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple

SLICE_NOTIFICATIONS = "notifications"
SLICE_ANNOUNCEMENTS = "announcements"
SLICE_UNREAD = "unread_count"
SLICES: Tuple[str, ...] = (SLICE_NOTIFICATIONS, SLICE_ANNOUNCEMENTS, SLICE_UNREAD)


@dataclass(frozen=True)
class Notification:
    """Typed notification or announcement entry."""

    id: str
    title: str = ""
    message: str = ""
    type: Optional[str] = None
    is_read: bool = False
    created_at: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Notification":
        """Build a typed entry from one backend record."""
        ident = str(payload.get("_id") or payload.get("id") or "").strip()
        if not ident:
            raise ValueError("Missing id in notification payload.")

        def _as_text(value: Any) -> Optional[str]:
            text = str(value).strip() if value is not None else ""
            return text or None

        is_read = payload.get("isRead")
        if is_read is None:
            is_read = payload.get("read", False)
        return cls(
            id=ident,
            title=_as_text(payload.get("title")) or "",
            message=_as_text(payload.get("message") or payload.get("body")) or "",
            type=_as_text(payload.get("type")),
            is_read=bool(is_read),
            created_at=_as_text(payload.get("createdAt") or payload.get("created_at")),
            raw=dict(payload),
        )


@dataclass(frozen=True)
class NotificationSnapshot:
    """Last-observed counts per slice, used for delta detection."""

    notifications: int = 0
    announcements: int = 0
    unread_count: int = 0

    @classmethod
    def zero(cls) -> "NotificationSnapshot":
        return cls()

    def differs_from(self, other: "NotificationSnapshot") -> bool:
        return (
            self.notifications != other.notifications
            or self.announcements != other.announcements
            or self.unread_count != other.unread_count
        )


@dataclass(frozen=True)
class SyncResult:
    """Outcome of one reconciliation cycle handed to every subscriber.

    Attributes:
        notifications: Latest known notification page.
        announcements: Latest known announcement page.
        unread_count: Latest known unread counter.
        has_changes: True if any slice count differs from the previous cycle.
        failed_slices: Slices whose read failed this cycle (values are stale).
    """

    notifications: Tuple[Notification, ...] = ()
    announcements: Tuple[Notification, ...] = ()
    unread_count: int = 0
    has_changes: bool = False
    failed_slices: FrozenSet[str] = frozenset()

    def counts(self) -> NotificationSnapshot:
        return NotificationSnapshot(
            notifications=len(self.notifications),
            announcements=len(self.announcements),
            unread_count=self.unread_count,
        )


__all__ = [
    "Notification",
    "NotificationSnapshot",
    "SLICES",
    "SLICE_ANNOUNCEMENTS",
    "SLICE_NOTIFICATIONS",
    "SLICE_UNREAD",
    "SyncResult",
]
