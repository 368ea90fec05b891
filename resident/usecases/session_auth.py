"""Use cases writing session credentials: login and logout per scope."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from resident.adapters.credential_store import clear_session, save_session
from resident.adapters.http_client import RequestExecutor
from resident.domain.errors import UseCaseError
from resident.domain.ports import CredentialStore
from resident.domain.routing import CredentialScope
from resident.usecases.error_mapping import map_api_error

_LOGIN_PATHS = {
    CredentialScope.STANDARD: "/auth/login",
    CredentialScope.ELEVATED: "/admin/auth/login",
}
_PROFILE_KEYS = {
    CredentialScope.STANDARD: "user",
    CredentialScope.ELEVATED: "admin",
}


@dataclass
class LoginResult:
    """Outcome of a successful login."""

    scope: CredentialScope
    token: str
    profile: Optional[Dict[str, Any]] = None


@dataclass
class Login:
    """Authenticate against the backend and persist the returned token."""

    executor: RequestExecutor
    store: CredentialStore

    def __call__(
        self,
        credentials: Dict[str, Any],
        *,
        scope: CredentialScope = CredentialScope.STANDARD,
    ) -> LoginResult:
        """Post ``credentials`` to the scope's login route.

        Raises:
            UseCaseError: ``LOGIN_FAILED`` for rejected credentials or a
                response without token, otherwise the mapped transport code.
        """
        path = _LOGIN_PATHS[scope]
        try:
            envelope = self.executor.post(path, dict(credentials))
        except Exception as exc:
            mapped = map_api_error(exc, default_code="LOGIN_FAILED")
            if mapped.code in ("INVALID_PARAMS", "SESSION_EXPIRED"):
                raise UseCaseError("LOGIN_FAILED", mapped.message, meta=mapped.meta) from exc
            raise mapped from exc

        data = envelope.data if envelope.success else None
        token = data.get("token") if isinstance(data, dict) else None
        if not isinstance(token, str) or not token.strip():
            raise UseCaseError("LOGIN_FAILED", envelope.message or "Login failed.")

        profile = data.get(_PROFILE_KEYS[scope])
        profile = profile if isinstance(profile, dict) else None
        save_session(self.store, scope, token.strip(), profile)
        logging.getLogger(__name__).info("Logged in (%s session)", scope.value)
        return LoginResult(scope=scope, token=token.strip(), profile=profile)


@dataclass
class Logout:
    """Drop the stored session for one scope; idempotent."""

    store: CredentialStore

    def __call__(self, scope: CredentialScope = CredentialScope.STANDARD) -> None:
        clear_session(self.store, scope)
        logging.getLogger(__name__).info("Logged out (%s session)", scope.value)


__all__ = ["Login", "LoginResult", "Logout"]
