"""Shared plumbing for talking to the external score and ledger services."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx
from loguru import logger


@dataclass(frozen=True)
class RemoteResponse:
    """Status code and decoded body of one remote call."""

    status_code: int
    body: Any

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class RemoteServiceError(Exception):
    """Raised when a remote service cannot be reached or answers garbage."""

    def __init__(self, service: str, message: str) -> None:
        super().__init__(f"{service}: {message}")
        self.service = service


class RemoteServiceClient:
    """Base class for one external service reached through a shared client.

    Parameters
    ----------
    http:
        Shared ``httpx.AsyncClient`` owned by the application.
    base_url:
        Root URL of the remote service.
    timeout:
        Per-request timeout in seconds.
    """

    service_name = "remote"

    def __init__(self, http: httpx.AsyncClient, base_url: str, timeout: float = 30.0) -> None:
        self._http = http
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    async def _send(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
    ) -> RemoteResponse:
        url = self._url(path)
        try:
            resp = await self._http.request(method, url, json=json, timeout=self.timeout)
        except httpx.HTTPError as exc:
            logger.warning(
                "{service} unreachable at {method} {url}: {err}",
                service=self.service_name,
                method=method,
                url=url,
                err=exc,
            )
            raise RemoteServiceError(self.service_name, f"transport error: {exc}") from exc

        logger.debug(
            "{service} {method} {url} → {status}",
            service=self.service_name,
            method=method,
            url=url,
            status=resp.status_code,
        )
        body = _decode_body(resp)
        if resp.is_success and isinstance(body, _RawText):
            raise RemoteServiceError(self.service_name, f"undecodable response body from {url}")
        return RemoteResponse(status_code=resp.status_code, body=body)


class _RawText(str):
    """Marker for a response body that was not valid JSON."""


def _decode_body(resp: httpx.Response) -> Any:
    """Return the JSON body, the raw text when it is not JSON, or ``None``."""
    if not resp.content:
        return None
    try:
        return resp.json()
    except ValueError:
        return _RawText(resp.text)
