# =============================================================================
# Bunny Client -- HTTP Transport
# =============================================================================
#
# The client only needs "POST a JSON body, get status + body back". The
# default implementation uses a pooled httpx.Client.
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import httpx

from ._logging import logger
from .constants import CONTENT_TYPE, REQUEST_TIMEOUT, USER_AGENT
from .errors import BunnyConnectionError, BunnyTimeoutError


@dataclass(frozen=True, slots=True)
class TransportResponse:
    """Raw HTTP reply from the gateway."""

    status: int
    body: bytes

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


@runtime_checkable
class Transport(Protocol):
    """Blocking request/response channel to the gateway.

    ``post`` raises :class:`BunnyConnectionError` (or
    :class:`BunnyTimeoutError`) when no response arrives. ``reset``
    drops any pooled connection so the next call starts fresh.
    """

    def post(self, url: str, body: bytes) -> TransportResponse: ...

    def reset(self) -> None: ...

    def close(self) -> None: ...


class HTTPXTransport:
    """:class:`Transport` backed by ``httpx.Client``.

    Args:
        timeout: Seconds allowed per call (connect + read).
        headers: Extra HTTP headers added to every request.
        client_factory: Builds the ``httpx.Client``; override in tests to
            mount an ``httpx.MockTransport``.
    """

    def __init__(
        self,
        timeout: float = REQUEST_TIMEOUT,
        *,
        headers: dict[str, str] | None = None,
        client_factory=None,
    ) -> None:
        self._timeout = timeout
        self._headers = {"Content-Type": CONTENT_TYPE, "User-Agent": USER_AGENT}
        if headers:
            self._headers.update(headers)
        self._client_factory = client_factory or self._default_client
        self._client: httpx.Client | None = None

    def _default_client(self) -> httpx.Client:
        return httpx.Client(timeout=self._timeout, headers=self._headers)

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = self._client_factory()
        return self._client

    def post(self, url: str, body: bytes) -> TransportResponse:
        try:
            response = self.client.post(url, content=body, headers=self._headers)
        except httpx.TimeoutException as exc:
            raise BunnyTimeoutError(
                f"Gateway call timed out after {self._timeout}s"
            ) from exc
        except httpx.TransportError as exc:
            raise BunnyConnectionError(
                f"Could not connect to the gateway: {exc}"
            ) from exc
        return TransportResponse(status=response.status_code, body=response.content)

    def reset(self) -> None:
        logger.debug("Resetting HTTP transport")
        self.close()

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
