"""Translate executor errors into user-facing UseCaseError instances."""

from __future__ import annotations

from typing import Optional

from resident.adapters.api_errors import ApiError, ErrorKind
from resident.domain.errors import UseCaseError

_CODES = {
    ErrorKind.UNAUTHENTICATED: "AUTH_REQUIRED",
    ErrorKind.UNAUTHORIZED: "SESSION_EXPIRED",
    ErrorKind.TIMEOUT: "REQUEST_TIMEOUT",
    ErrorKind.NETWORK_UNREACHABLE: "NETWORK_UNREACHABLE",
    ErrorKind.SERVER_FAULT: "SERVER_ERROR",
    ErrorKind.VALIDATION_FAILED: "INVALID_PARAMS",
    ErrorKind.MALFORMED_RESPONSE: "INVALID_RESPONSE",
    ErrorKind.CANCELLED: "CANCELLED",
}


def map_api_error(
    exc: Exception,
    *,
    default_code: str,
    default_message: Optional[str] = None,
) -> UseCaseError:
    """Map adapter exceptions to stable UseCaseError codes.

    Args:
        exc: Exception raised by an adapter or use case.
        default_code: Code used for exceptions outside the ``ApiError`` tree.
        default_message: Message used when ``exc`` carries no text.

    Returns:
        UseCaseError: Error carrying a stable code and a presentable message.
    """
    if isinstance(exc, UseCaseError):
        return exc
    if isinstance(exc, ApiError):
        code = _CODES.get(exc.kind, "API_ERROR")
        meta = None
        if exc.field_errors:
            meta = {"field_errors": list(exc.field_errors)}
        message = exc.message or str(exc) or default_message or "Request failed."
        return UseCaseError(code, message, meta=meta)

    message = default_message or str(exc) or "Unexpected error."
    return UseCaseError(default_code, message)


__all__ = ["map_api_error"]
