"""Typed runtime settings for the client core, read from ``RESIDENT_*`` variables."""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from typing import Mapping, Optional

from resident.utils.logging import env_truthy

_ENV_PREFIX = "RESIDENT_"


@dataclass(frozen=True)
class ClientSettings:
    """Backend location, timeouts, polling cadence and retry policy."""

    base_url: str = "http://127.0.0.1:5000/api"
    request_timeout_s: float = 30.0
    upload_timeout_s: float = 180.0
    poll_interval_ms: int = 15000
    retry_attempts: int = 3
    retry_base_delay_s: float = 1.0
    credentials_path: str = os.path.join(os.path.expanduser("~"), ".resident", "session.json")
    debug_logging: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ClientSettings":
        """Build settings from environment variables.

        Unparseable values fall back to the field default; the result is not
        range-checked (see ``validated``).
        """
        env = os.environ if environ is None else environ
        defaults = cls()
        overrides = {}
        for item in fields(cls):
            raw = env.get(f"{_ENV_PREFIX}{item.name.upper()}")
            if raw is None or not raw.strip():
                continue
            default = getattr(defaults, item.name)
            value = _coerce(raw.strip(), default)
            if value is not None:
                overrides[item.name] = value
        return replace(defaults, **overrides)

    def validated(self) -> "ClientSettings":
        """Return ``self`` or raise ``ValueError`` naming the first bad field."""
        if not self.base_url.strip():
            raise ValueError("base_url must not be empty")
        for name in ("request_timeout_s", "upload_timeout_s", "retry_base_delay_s"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        for name in ("poll_interval_ms", "retry_attempts"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be at least 1")
        return self


def _coerce(raw: str, default: object) -> object:
    if isinstance(default, bool):
        return env_truthy(raw)
    if isinstance(default, int):
        try:
            return int(raw)
        except ValueError:
            return None
    if isinstance(default, float):
        try:
            return float(raw)
        except ValueError:
            return None
    return raw


__all__ = ["ClientSettings"]
