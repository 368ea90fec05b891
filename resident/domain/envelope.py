"""Request and response value objects shared by the executor and adapters."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional


@dataclass(frozen=True)
class MultipartBody:
    """Multipart/binary payload marker.

    Attributes:
        files: Mapping consumed by ``requests`` as ``files=``; values may be
            file handles or ``(filename, handle, content_type)`` tuples.
        fields: Plain form fields sent alongside the files.
    """

    files: Mapping[str, Any] = field(default_factory=dict)
    fields: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RequestDescriptor:
    """One outbound call, built by the call site and discarded afterwards."""

    path: str
    method: str = "GET"
    body: Any = None
    headers: Optional[Mapping[str, str]] = None

    @property
    def is_multipart(self) -> bool:
        return isinstance(self.body, MultipartBody)

    @property
    def context(self) -> str:
        return f"{self.method.upper()} {self.path}"


@dataclass(frozen=True)
class ResponseEnvelope:
    """Parsed outcome of a successful transport round-trip.

    ``data`` is only meaningful when ``success`` is true.
    """

    success: bool
    data: Any = None
    message: Optional[str] = None
    errors: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Any) -> "ResponseEnvelope":
        if not isinstance(payload, Mapping):
            raise ValueError("Expected a JSON object envelope.")
        message = payload.get("message")
        raw_errors = payload.get("errors")
        errors = [dict(e) for e in raw_errors if isinstance(e, Mapping)] if isinstance(raw_errors, list) else []
        return cls(
            success=bool(payload.get("success")),
            data=payload.get("data"),
            message=str(message) if message is not None else None,
            errors=errors,
        )

    def require_data(self) -> Any:
        """Return ``data``; raise ``ValueError`` when the envelope reports failure."""
        if not self.success:
            raise ValueError(self.message or "Response reported failure.")
        return self.data


__all__ = ["MultipartBody", "RequestDescriptor", "ResponseEnvelope"]
