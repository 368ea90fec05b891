from __future__ import annotations

import json
import logging
import threading
from concurrent.futures import Future
from typing import Any, Callable, Dict, List, Optional, TypeVar

from resident.domain.envelope import ResponseEnvelope
from resident.domain.notifications import Notification
from resident.domain.ports import NotificationId, NotificationPort

from .api_errors import ApiMalformedResponseError, ApiValidationError
from .http_client import RequestExecutor

T = TypeVar("T")

MAX_PAGE_SIZE = 100


def _clamp_page(page: Any) -> int:
    try:
        return max(1, int(page))
    except (TypeError, ValueError):
        return 1


def _clamp_limit(limit: Any, default: int) -> int:
    try:
        value = int(limit)
    except (TypeError, ValueError):
        value = default
    return min(MAX_PAGE_SIZE, max(1, value or default))


class NotificationRestAdapter(NotificationPort):
    """REST adapter for the ``/notifications`` route family.

    Identical reads issued while one is already in flight share its result
    instead of hitting the backend twice.
    """

    def __init__(self, executor: RequestExecutor) -> None:
        self.executor = executor
        self._pending: Dict[str, Future] = {}
        self._pending_lock = threading.Lock()
        self._log = logging.getLogger(__name__)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def list_notifications(
        self,
        page: int = 1,
        limit: int = 20,
        *,
        type: Optional[str] = None,
        is_read: Optional[bool] = None,
    ) -> List[Notification]:
        params: Dict[str, Any] = {"page": _clamp_page(page), "limit": _clamp_limit(limit, 20)}
        if type:
            params["type"] = type
        if is_read is not None:
            params["isRead"] = is_read
        key = f"notifications-{json.dumps(params, sort_keys=True)}"
        envelope = self._deduplicated(key, lambda: self.executor.get("/notifications", params))
        return self._entries(envelope, "GET /notifications")

    def list_announcements(self, page: int = 1, limit: int = 10) -> List[Notification]:
        params = {"page": _clamp_page(page), "limit": _clamp_limit(limit, 10)}
        key = f"announcements-{params['page']}-{params['limit']}"
        envelope = self._deduplicated(
            key, lambda: self.executor.get("/notifications/announcements", params)
        )
        return self._entries(envelope, "GET /notifications/announcements")

    def unread_count(self) -> int:
        ctx = "GET /notifications/unread-count"
        envelope = self._deduplicated(
            "unread-count", lambda: self.executor.get("/notifications/unread-count")
        )
        data = self._ensure_success(envelope, ctx)
        count = data.get("count") if isinstance(data, dict) else None
        if isinstance(count, bool) or not isinstance(count, (int, float)):
            raise ApiMalformedResponseError(f"{ctx}: expected numeric count", context=ctx, payload=data)
        return int(count)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def mark_as_read(self, notification_id: NotificationId) -> None:
        ident = self._require_id(notification_id)
        path = f"/notifications/{ident}/read"
        self._ensure_success(self.executor.put(path), f"PUT {path}")

    def mark_all_as_read(self) -> None:
        self._ensure_success(
            self.executor.put("/notifications/read-all"), "PUT /notifications/read-all"
        )

    def delete_notification(self, notification_id: NotificationId) -> None:
        ident = self._require_id(notification_id)
        path = f"/notifications/{ident}"
        self._ensure_success(self.executor.delete(path), f"DELETE {path}")

    def register_token(self, push_token: str) -> None:
        token = (push_token or "").strip() if isinstance(push_token, str) else ""
        if not token:
            raise ValueError("Push token must be a non-empty string")
        envelope = self.executor.post("/notifications/register-token", {"pushToken": token})
        self._ensure_success(envelope, "POST /notifications/register-token")
        self._log.debug("Push token registered")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _deduplicated(self, key: str, call: Callable[[], T]) -> T:
        with self._pending_lock:
            shared = self._pending.get(key)
            if shared is None:
                owner = Future()
                self._pending[key] = owner
        if shared is not None:
            self._log.debug("Joining in-flight request %s", key)
            return shared.result()

        try:
            result = call()
        except BaseException as exc:
            owner.set_exception(exc)
            raise
        else:
            owner.set_result(result)
            return result
        finally:
            with self._pending_lock:
                self._pending.pop(key, None)

    @staticmethod
    def _ensure_success(envelope: ResponseEnvelope, ctx: str) -> Any:
        if not envelope.success:
            raise ApiValidationError(
                envelope.message or f"{ctx}: request was not successful",
                context=ctx,
                field_errors=envelope.errors,
            )
        return envelope.data

    def _entries(self, envelope: ResponseEnvelope, ctx: str) -> List[Notification]:
        data = self._ensure_success(envelope, ctx)
        if data is None:
            return []
        if not isinstance(data, list):
            raise ApiMalformedResponseError(f"{ctx}: expected list data", context=ctx, payload=data)
        entries: List[Notification] = []
        for item in data:
            if not isinstance(item, dict):
                continue
            try:
                entries.append(Notification.from_payload(item))
            except ValueError:
                self._log.debug("%s: skipping entry without id", ctx)
        return entries

    @staticmethod
    def _require_id(notification_id: NotificationId) -> str:
        ident = str(notification_id or "").strip()
        if not ident:
            raise ValueError("Invalid notification ID")
        return ident


__all__ = ["NotificationRestAdapter"]
