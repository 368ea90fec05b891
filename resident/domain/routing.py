"""Route-family table deciding which stored credential a request uses.

Admin routes live under ``/admin/`` and use the elevated session, every other
route uses the resident session. A short allow-list of routes may be called
without any stored credential.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Tuple
from urllib.parse import urlsplit


class CredentialScope(str, Enum):
    """Partition of stored bearer credentials."""

    STANDARD = "standard"
    ELEVATED = "elevated"

    @property
    def token_key(self) -> str:
        """Persistent-store key holding the bearer token for this scope."""
        return "adminToken" if self is CredentialScope.ELEVATED else "token"

    @property
    def profile_key(self) -> str:
        """Persistent-store key holding the cached session profile."""
        return "adminUser" if self is CredentialScope.ELEVATED else "user"

    @property
    def session_keys(self) -> Tuple[str, str]:
        return (self.token_key, self.profile_key)


def _route_path(path: str) -> str:
    """Return ``path`` without query string or fragment, always ``/``-prefixed."""
    raw = urlsplit(path or "").path or "/"
    if not raw.startswith("/"):
        raw = "/" + raw
    return raw


@dataclass(frozen=True)
class RouteTable:
    """Resolve credential scope and public/login status for API paths.

    Attributes:
        elevated_prefixes: Path prefixes served with the admin credential.
        public_prefixes: Path prefixes that may be called without credential.
    """

    elevated_prefixes: Tuple[str, ...] = ("/admin/",)
    public_prefixes: Tuple[str, ...] = (
        "/auth/login",
        "/auth/register",
        "/admin/auth/login",
        "/health",
    )

    def scope_for(self, path: str) -> CredentialScope:
        route = _route_path(path)
        for prefix in self.elevated_prefixes:
            if route.startswith(prefix):
                return CredentialScope.ELEVATED
        return CredentialScope.STANDARD

    def is_public(self, path: str) -> bool:
        route = _route_path(path).rstrip("/") or "/"
        for prefix in self.public_prefixes:
            if route == prefix or route.startswith(prefix.rstrip("/") + "/"):
                return True
        return False

    def is_login(self, path: str) -> bool:
        route = _route_path(path).rstrip("/")
        return route.rsplit("/", 1)[-1] == "login"


DEFAULT_ROUTES = RouteTable()


__all__ = ["CredentialScope", "DEFAULT_ROUTES", "RouteTable"]
