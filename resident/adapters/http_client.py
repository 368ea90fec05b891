"""Shared HTTP request executor used by every backend adapter.

This module wraps ``requests.Session`` so all callers share one credential
policy, one timeout policy, one cancellation switch, and one error taxonomy.

Dependencies:
    - ``requests`` for network I/O.
    - ``threading`` and ``concurrent.futures`` to race the blocking send
      against the timeout and the cancellation scope.
    - ``resident.adapters.api_errors`` for typed failures.

Call context:
    - Constructed once per application session in ``resident/app/main.py``.
    - Used by ``NotificationRestAdapter`` and the session use cases; view code
      never talks to ``requests`` directly.
"""

from __future__ import annotations

import json
import logging
import threading
from concurrent.futures import FIRST_COMPLETED, Future, wait
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlencode

import requests
from requests import exceptions as req_exc

from resident.domain.envelope import MultipartBody, RequestDescriptor, ResponseEnvelope
from resident.domain.ports import CredentialStore
from resident.domain.routing import DEFAULT_ROUTES, CredentialScope, RouteTable

from .api_errors import (
    CANCELLED_MESSAGE,
    MALFORMED_MESSAGE,
    NETWORK_MESSAGE,
    SERVER_FAULT_MESSAGE,
    SESSION_EXPIRED_MESSAGE,
    TIMEOUT_MESSAGE,
    UNAUTHENTICATED_MESSAGE,
    ApiCancelledError,
    ApiError,
    ApiMalformedResponseError,
    ApiNetworkError,
    ApiServerError,
    ApiTimeoutError,
    ApiUnauthenticatedError,
    ApiUnauthorizedError,
    ApiValidationError,
    build_validation_message,
    extract_field_errors,
    first_string,
    parse_error_payload,
)

_JSON_CONTENT_TYPE = "application/json"


@dataclass
class HttpConfig:
    """Timeout configuration for executor calls.

    Attributes:
        request_timeout_s: Timeout in seconds for JSON API calls.
        upload_timeout_s: Timeout in seconds for multipart uploads.
    """

    request_timeout_s: float = 30.0
    upload_timeout_s: float = 180.0


class CancellationScope:
    """One-shot cancellation signal shared by the requests issued under it."""

    def __init__(self) -> None:
        self._signal: Future = Future()

    @property
    def signal(self) -> Future:
        return self._signal

    @property
    def cancelled(self) -> bool:
        return self._signal.done()

    def cancel(self) -> None:
        if not self._signal.done():
            self._signal.set_result(True)


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class RequestExecutor:
    """Single choke point for outbound calls to the society backend.

    The executor never retries. Every failure reaches the caller as an
    ``ApiError`` subclass carrying exactly one ``ErrorKind``.
    """

    def __init__(
        self,
        base_url: str,
        store: CredentialStore,
        *,
        cfg: Optional[HttpConfig] = None,
        routes: RouteTable = DEFAULT_ROUTES,
        session: Any = None,
    ) -> None:
        """Create an executor bound to one backend.

        Args:
            base_url: API root, e.g. ``http://host:5000/api``.
            store: Persistent store holding one bearer token per scope.
            cfg: Timeout settings.
            routes: Route table deciding credential scope per path.
            session: Object exposing ``request(method, url, **kwargs)``;
                defaults to a new ``requests.Session``.
        """
        self.base_url = base_url.rstrip("/")
        self.store = store
        self.cfg = cfg or HttpConfig()
        self.routes = routes
        self.session = session if session is not None else requests.Session()
        self._scope_lock = threading.Lock()
        self._scope = CancellationScope()
        self._log = logging.getLogger(__name__)

    # ------------------------------------------------------------------
    # Public surface
    # ------------------------------------------------------------------
    def execute(self, descriptor: RequestDescriptor) -> ResponseEnvelope:
        """Send one request and normalize the outcome.

        Args:
            descriptor: Path, verb, optional body and header overrides.

        Returns:
            ResponseEnvelope: Parsed JSON envelope of a 2xx response.

        Raises:
            ApiError: Classified failure (see ``ErrorKind``).

        Side Effects:
            Purges the scope credential when the backend answers 401 on a
            non-login route.
        """
        ctx = descriptor.context
        scope = self.routes.scope_for(descriptor.path)
        token = self._read_token(scope)
        if not token and not self.routes.is_public(descriptor.path):
            self._log.warning("%s: no %s credential stored", ctx, scope.value)
            raise ApiUnauthenticatedError(UNAUTHENTICATED_MESSAGE, status=401, context=ctx)

        timeout = (
            self.cfg.upload_timeout_s if descriptor.is_multipart else self.cfg.request_timeout_s
        )
        with self._scope_lock:
            cancel_scope = self._scope

        self._log.debug("%s", ctx)
        resp = self._race(
            descriptor,
            headers=self._headers(descriptor, token),
            body=self._body_kwargs(descriptor),
            timeout=timeout,
            cancel_scope=cancel_scope,
        )
        envelope = self._normalize(descriptor, scope, resp)
        self._log.debug("%s succeeded", ctx)
        return envelope

    def get(self, path: str, params: Optional[Mapping[str, Any]] = None) -> ResponseEnvelope:
        if params:
            pairs = [(key, _query_value(value)) for key, value in params.items() if value is not None]
            if pairs:
                sep = "&" if "?" in path else "?"
                path = f"{path}{sep}{urlencode(pairs)}"
        return self.execute(RequestDescriptor(path=path, method="GET"))

    def post(self, path: str, body: Any = None) -> ResponseEnvelope:
        return self.execute(RequestDescriptor(path=path, method="POST", body=body))

    def put(self, path: str, body: Any = None) -> ResponseEnvelope:
        return self.execute(RequestDescriptor(path=path, method="PUT", body=body))

    def patch(self, path: str, body: Any = None) -> ResponseEnvelope:
        return self.execute(RequestDescriptor(path=path, method="PATCH", body=body))

    def delete(self, path: str) -> ResponseEnvelope:
        return self.execute(RequestDescriptor(path=path, method="DELETE"))

    def cancel_all(self) -> None:
        """Abort every in-flight request and start a fresh cancellation scope."""
        with self._scope_lock:
            previous = self._scope
            self._scope = CancellationScope()
        self._log.info("Cancelling all pending requests")
        previous.cancel()

    def health_check(self) -> bool:
        """Return whether ``GET /health`` answers 2xx; never raises."""
        url = f"{self.base_url}/health"
        try:
            resp = self.session.request(
                "GET",
                url,
                headers={"Accept": _JSON_CONTENT_TYPE},
                timeout=self.cfg.request_timeout_s,
            )
        except req_exc.RequestException as exc:
            self._log.error("Health check failed: %s", exc)
            return False
        healthy = 200 <= int(resp.status_code) < 300
        self._log.debug("Backend status: %s", "healthy" if healthy else "unhealthy")
        return healthy

    def close(self) -> None:
        close = getattr(self.session, "close", None)
        if callable(close):
            close()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _read_token(self, scope: CredentialScope) -> Optional[str]:
        try:
            return self.store.get(scope.token_key)
        except (OSError, ValueError) as exc:
            self._log.error("Token lookup failed for %s: %s", scope.value, exc)
            return None

    def _headers(self, descriptor: RequestDescriptor, token: Optional[str]) -> Dict[str, str]:
        headers = {"Accept": _JSON_CONTENT_TYPE}
        if not descriptor.is_multipart:
            headers["Content-Type"] = _JSON_CONTENT_TYPE
        if descriptor.headers:
            headers.update(descriptor.headers)
        if descriptor.is_multipart:
            # requests writes the multipart boundary itself.
            for key in [k for k in headers if k.lower() == "content-type"]:
                del headers[key]
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    @staticmethod
    def _body_kwargs(descriptor: RequestDescriptor) -> Dict[str, Any]:
        body = descriptor.body
        if isinstance(body, MultipartBody):
            kwargs: Dict[str, Any] = {"files": dict(body.files)}
            if body.fields:
                kwargs["data"] = dict(body.fields)
            return kwargs
        if body is None:
            return {}
        return {"data": json.dumps(body)}

    def _race(
        self,
        descriptor: RequestDescriptor,
        *,
        headers: Dict[str, str],
        body: Dict[str, Any],
        timeout: float,
        cancel_scope: CancellationScope,
    ) -> Any:
        """Run the send on its own thread and wait for send, timeout or cancellation.

        Each send gets a dedicated daemon thread, so sends abandoned by a timeout
        or ``cancel_all`` never hold up requests issued afterwards.
        """
        ctx = descriptor.context
        url = f"{self.base_url}{descriptor.path}"
        future: Future = Future()

        def _send() -> None:
            try:
                resp = self.session.request(
                    descriptor.method.upper(),
                    url,
                    headers=headers,
                    timeout=timeout,
                    **body,
                )
            except BaseException as exc:
                future.set_exception(exc)
            else:
                future.set_result(resp)

        threading.Thread(target=_send, name="resident-http-send", daemon=True).start()
        done, _ = wait([future, cancel_scope.signal], timeout=timeout, return_when=FIRST_COMPLETED)
        if future not in done:
            # Abandoned; the send thread finishes on its own and its result is dropped.
            if cancel_scope.signal in done:
                self._log.debug("%s aborted", ctx)
                raise ApiCancelledError(CANCELLED_MESSAGE, context=ctx)
            self._log.error("%s timed out after %ss", ctx, timeout)
            raise ApiTimeoutError(TIMEOUT_MESSAGE, context=ctx)

        try:
            return future.result()
        except req_exc.Timeout as exc:
            self._log.error("%s timed out in transport: %s", ctx, exc)
            raise ApiTimeoutError(TIMEOUT_MESSAGE, context=ctx) from exc
        except req_exc.RequestException as exc:
            self._log.error("%s failed: %s", ctx, exc)
            raise ApiNetworkError(NETWORK_MESSAGE, context=ctx) from exc

    def _normalize(
        self, descriptor: RequestDescriptor, scope: CredentialScope, resp: Any
    ) -> ResponseEnvelope:
        ctx = descriptor.context
        status = int(resp.status_code)
        content_type = str(resp.headers.get("Content-Type") or "")
        payload: Any = None
        parsed = False
        if _JSON_CONTENT_TYPE in content_type.lower():
            try:
                payload = resp.json()
                parsed = True
            except ValueError:
                parsed = False

        if not 200 <= status < 300:
            raise self._classify_failure(descriptor, scope, status, payload if parsed else None, resp)

        if not parsed:
            self._log.error("%s: non-JSON response (%s)", ctx, content_type or "no content type")
            raise ApiMalformedResponseError(
                MALFORMED_MESSAGE,
                status=status,
                payload=parse_error_payload(resp),
                context=ctx,
            )
        try:
            return ResponseEnvelope.from_payload(payload)
        except ValueError as exc:
            raise ApiMalformedResponseError(
                MALFORMED_MESSAGE, status=status, payload=payload, context=ctx
            ) from exc

    def _classify_failure(
        self,
        descriptor: RequestDescriptor,
        scope: CredentialScope,
        status: int,
        payload: Any,
        resp: Any,
    ) -> ApiError:
        ctx = descriptor.context
        server_message = first_string(payload) if isinstance(payload, dict) else None
        raw = payload if payload is not None else parse_error_payload(resp)

        if status == 401:
            if self.routes.is_login(descriptor.path):
                return ApiUnauthorizedError(
                    server_message or f"HTTP {status}", status=status, payload=raw, context=ctx
                )
            self._purge(scope)
            return ApiUnauthorizedError(
                SESSION_EXPIRED_MESSAGE, status=status, payload=raw, context=ctx
            )

        field_errors = extract_field_errors(payload)
        if field_errors:
            message = build_validation_message(field_errors) or server_message or f"HTTP {status}"
            self._log.warning("%s: validation failed (HTTP %s): %s", ctx, status, message)
            return ApiValidationError(
                message, status=status, payload=raw, context=ctx, field_errors=field_errors
            )
        if status >= 500:
            self._log.error("%s: server fault (HTTP %s)", ctx, status)
            return ApiServerError(SERVER_FAULT_MESSAGE, status=status, payload=raw, context=ctx)

        self._log.warning("%s: rejected (HTTP %s): %s", ctx, status, server_message)
        return ApiValidationError(
            server_message or f"HTTP {status}", status=status, payload=raw, context=ctx
        )

    def _purge(self, scope: CredentialScope) -> None:
        self._log.warning("Session rejected, clearing %s credential", scope.value)
        try:
            self.store.remove_many(scope.session_keys)
        except (OSError, ValueError):
            self._log.exception("Failed to clear %s credential", scope.value)


__all__ = ["CancellationScope", "HttpConfig", "RequestExecutor"]
