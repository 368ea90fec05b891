"""Domain-level error types for use-case and adapter mapping.

Errors defined here cross layer boundaries without leaking transport-specific
exception details to view code.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class UseCaseError(Exception):
    """Base class for use case level errors (user-presentable)."""

    def __init__(self, code: str, message: str, meta: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.meta = meta


__all__ = ["UseCaseError"]
