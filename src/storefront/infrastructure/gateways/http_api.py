"""Small JSON-over-HTTP helper shared by the collaborator clients."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from storefront.domain.exceptions import TransientError

log = structlog.get_logger(__name__)


class RequestRejected(Exception):
    """The remote service answered with a 4xx (other than 429)."""

    def __init__(self, status_code: int, detail: str) -> None:
        super().__init__(f"HTTP {status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail


class HttpApi:
    """Thin wrapper over ``httpx.Client``.

    Connection problems, timeouts, 5xx and 429 responses, and success
    responses whose body is not JSON, become ``TransientError`` carrying a
    retry hint; other 4xx responses become ``RequestRejected`` for the
    caller to translate.
    """

    def __init__(
        self,
        base_url: str,
        *,
        api_key: str | None = None,
        timeout: float = 15.0,
        retry_after: float = 5.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = max(1.0, timeout)
        self.retry_after = retry_after
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def request(
        self,
        method: str,
        path: str,
        *,
        json_body: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.request(
                    method, url, headers=self._headers(), json=json_body, params=params
                )
        except httpx.TransportError as exc:
            log.warning("http_unreachable", method=method, url=url, error=str(exc))
            raise TransientError(
                f"{method} {url} failed: {exc}", retry_after=self.retry_after
            ) from exc

        if response.status_code == 429 or response.status_code >= 500:
            log.warning("http_unavailable", method=method, url=url, status=response.status_code)
            raise TransientError(
                f"{method} {url} returned HTTP {response.status_code}",
                retry_after=self._retry_hint(response),
            )
        if response.status_code >= 400:
            raise RequestRejected(response.status_code, _error_detail(response))

        if not response.content:
            return {}
        try:
            payload = response.json()
        except ValueError as exc:
            log.warning("http_unreadable_body", method=method, url=url, status=response.status_code)
            raise TransientError(
                f"{method} {url} returned a non-JSON body", retry_after=self.retry_after
            ) from exc
        if isinstance(payload, dict):
            return payload
        return {"result": payload}

    def _retry_hint(self, response: httpx.Response) -> float:
        raw = response.headers.get("Retry-After")
        try:
            return float(raw) if raw is not None else self.retry_after
        except ValueError:
            return self.retry_after


def _error_detail(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(payload, dict):
        return str(payload.get("error") or payload.get("message") or payload)
    return str(payload)
