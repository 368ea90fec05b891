"""Use case registering this device for push delivery.

Token acquisition and backend submission are each wrapped by the same
``RetryPolicy``; submission retries never re-acquire the token.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from resident.domain.errors import UseCaseError
from resident.domain.ports import NotificationPort, PushPlatformPort
from resident.usecases.error_mapping import map_api_error
from resident.usecases.retry_policy import RetryPolicy


@dataclass
class RegisterPushToken:
    """Use-case callable returning the push token, or ``None`` when unavailable.

    Attributes:
        platform: Host push capabilities; ``None`` when push is unsupported.
        notification_port: Adapter used to submit the token to the backend.
        retry_policy: Bounded linear-backoff policy for both phases.
    """

    platform: Optional[PushPlatformPort]
    notification_port: NotificationPort
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)

    def __call__(self) -> Optional[str]:
        """Request permission, acquire a token and submit it.

        Returns:
            Optional[str]: Token on success, ``None`` if push is unavailable
            or permission was denied.

        Raises:
            UseCaseError: ``PUSH_TOKEN_UNAVAILABLE`` once token acquisition
            has used all attempts.
        """
        log = logging.getLogger(__name__)
        if self.platform is None:
            log.debug("Push notifications not available")
            return None
        if not self.platform.request_permission():
            log.info("Push permission denied")
            return None

        try:
            token = self.retry_policy.run(self._acquire, label="push token")
        except Exception as exc:
            mapped = map_api_error(
                exc,
                default_code="PUSH_TOKEN_UNAVAILABLE",
                default_message="Could not obtain a push token.",
            )
            raise UseCaseError("PUSH_TOKEN_UNAVAILABLE", mapped.message) from exc

        try:
            self.retry_policy.run(
                lambda: self.notification_port.register_token(token),
                label="push token registration",
            )
        except Exception as exc:
            # Registration is idempotent backend-side and repeats on the next call.
            mapped = map_api_error(exc, default_code="PUSH_REGISTRATION_FAILED")
            log.warning("Push token registration failed (%s): %s", mapped.code, mapped.message)
        return token

    def _acquire(self) -> str:
        token = self.platform.get_push_token() if self.platform else None
        text = token.strip() if isinstance(token, str) else ""
        if not text:
            raise ValueError("Platform returned an empty push token")
        return text


__all__ = ["RegisterPushToken"]
