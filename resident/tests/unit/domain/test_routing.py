from __future__ import annotations

import pytest

from resident.domain.routing import DEFAULT_ROUTES, CredentialScope, RouteTable


@pytest.mark.parametrize(
    "path, scope",
    [
        ("/notifications", CredentialScope.STANDARD),
        ("/admin/payments?page=2", CredentialScope.ELEVATED),
        ("admin/users", CredentialScope.ELEVATED),
        ("/administrators", CredentialScope.STANDARD),
    ],
)
def test_scope_follows_route_family(path: str, scope: CredentialScope) -> None:
    assert DEFAULT_ROUTES.scope_for(path) is scope


@pytest.mark.parametrize(
    "path, public",
    [
        ("/auth/login", True),
        ("/auth/register/images", True),
        ("/admin/auth/login", True),
        ("/health?probe=1", True),
        ("/auth/logout", False),
        ("/auth/login-history", False),
        ("/notifications", False),
    ],
)
def test_public_allow_list(path: str, public: bool) -> None:
    assert DEFAULT_ROUTES.is_public(path) is public


def test_login_detection_uses_last_segment() -> None:
    assert DEFAULT_ROUTES.is_login("/admin/auth/login/")
    assert not DEFAULT_ROUTES.is_login("/auth/login-history")


def test_scope_keys() -> None:
    assert CredentialScope.STANDARD.session_keys == ("token", "user")
    assert CredentialScope.ELEVATED.session_keys == ("adminToken", "adminUser")


def test_custom_table() -> None:
    table = RouteTable(elevated_prefixes=("/staff/",), public_prefixes=("/ping",))

    assert table.scope_for("/staff/roster") is CredentialScope.ELEVATED
    assert table.scope_for("/admin/users") is CredentialScope.STANDARD
    assert table.is_public("/ping")
