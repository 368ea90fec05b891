from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

SESSION_EXPIRED_MESSAGE = "Session expired. Please login again."
NETWORK_MESSAGE = "Cannot connect to server. Check your internet connection."
TIMEOUT_MESSAGE = "Request timed out. Please try again."
SERVER_FAULT_MESSAGE = "Server error. Please try again later."
MALFORMED_MESSAGE = "Server returned invalid response"
UNAUTHENTICATED_MESSAGE = "Not authenticated"
CANCELLED_MESSAGE = "Request cancelled"


class ErrorKind(str, Enum):
    """Classification attached to every executor failure."""

    UNAUTHENTICATED = "unauthenticated"
    UNAUTHORIZED = "unauthorized"
    TIMEOUT = "timeout"
    NETWORK_UNREACHABLE = "network_unreachable"
    SERVER_FAULT = "server_fault"
    VALIDATION_FAILED = "validation_failed"
    MALFORMED_RESPONSE = "malformed_response"
    CANCELLED = "cancelled"


class ApiError(RuntimeError):
    """Base class for request executor failures."""

    kind: ErrorKind = ErrorKind.SERVER_FAULT

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        payload: Any = None,
        context: Optional[str] = None,
        field_errors: Optional[List[Dict[str, Any]]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.payload = payload
        self.context = context
        self.field_errors: List[Dict[str, Any]] = list(field_errors or [])


class ApiUnauthenticatedError(ApiError):
    """No stored credential for a protected route; nothing was sent."""

    kind = ErrorKind.UNAUTHENTICATED


class ApiUnauthorizedError(ApiError):
    """HTTP 401: the server rejected the credential."""

    kind = ErrorKind.UNAUTHORIZED


class ApiTimeoutError(ApiError):
    """The timeout won the race against the network call."""

    kind = ErrorKind.TIMEOUT


class ApiNetworkError(ApiError):
    """DNS, connection refused and other transport-level failures."""

    kind = ErrorKind.NETWORK_UNREACHABLE


class ApiServerError(ApiError):
    """HTTP 5xx from the backend."""

    kind = ErrorKind.SERVER_FAULT


class ApiValidationError(ApiError):
    """Request rejected by the backend, optionally with field errors."""

    kind = ErrorKind.VALIDATION_FAILED


class ApiMalformedResponseError(ApiError):
    """Body was not the JSON envelope the client expects."""

    kind = ErrorKind.MALFORMED_RESPONSE


class ApiCancelledError(ApiError):
    """Request aborted by ``cancel_all``."""

    kind = ErrorKind.CANCELLED


def parse_error_payload(resp: Any) -> Any:
    """Best-effort extraction of error payload without raising."""
    try:
        return resp.json()
    except Exception:
        snippet = getattr(resp, "text", "")
        if not snippet:
            return None
        return snippet[:400]


def extract_field_errors(payload: Any) -> List[Dict[str, Any]]:
    """Return the envelope's ``errors`` array, keeping object entries verbatim."""
    if not isinstance(payload, dict):
        return []
    errors = payload.get("errors")
    if not isinstance(errors, list):
        return []
    return [entry for entry in errors if isinstance(entry, dict)]


def build_validation_message(field_errors: List[Dict[str, Any]]) -> Optional[str]:
    parts = []
    for entry in field_errors:
        message = entry.get("message")
        if isinstance(message, str) and message.strip():
            parts.append(message.strip())
        else:
            parts.append(f"{entry.get('field')}: validation failed")
    return ", ".join(parts) or None


def first_string(payload: Any) -> Optional[str]:
    if isinstance(payload, str):
        text = payload.strip()
        return text or None
    if isinstance(payload, dict):
        for key in ("message", "detail", "error", "title"):
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
            if isinstance(value, (list, dict)):
                candidate = first_string(value)
                if candidate:
                    return candidate
    if isinstance(payload, list):
        for item in payload:
            candidate = first_string(item)
            if candidate:
                return candidate
    return None


__all__ = [
    "ApiCancelledError",
    "ApiError",
    "ApiMalformedResponseError",
    "ApiNetworkError",
    "ApiServerError",
    "ApiTimeoutError",
    "ApiUnauthenticatedError",
    "ApiUnauthorizedError",
    "ApiValidationError",
    "CANCELLED_MESSAGE",
    "ErrorKind",
    "MALFORMED_MESSAGE",
    "NETWORK_MESSAGE",
    "SERVER_FAULT_MESSAGE",
    "SESSION_EXPIRED_MESSAGE",
    "TIMEOUT_MESSAGE",
    "UNAUTHENTICATED_MESSAGE",
    "build_validation_message",
    "extract_field_errors",
    "first_string",
    "parse_error_payload",
]
