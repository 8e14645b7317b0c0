from __future__ import annotations

import logging
from typing import Protocol

import httpx

from .errors import TransportError
from .request import FORM_CONTENT_TYPE, EtcdRequest

logger = logging.getLogger(__name__)


class Transport(Protocol):
    def send(self, request: EtcdRequest) -> bytes: ...

    def close(self) -> None: ...


class AsyncTransport(Protocol):
    async def send(self, request: EtcdRequest) -> bytes: ...

    async def aclose(self) -> None: ...


def _headers(request: EtcdRequest) -> dict[str, str] | None:
    if request.body is None:
        return None
    return {"Content-Type": FORM_CONTENT_TYPE}


def _timeout(timeout_ms: int | None) -> float | None:
    # Long-polls must not be cut by the client unless asked to.
    if not timeout_ms:
        return None
    return timeout_ms / 1000


class HttpxTransport:
    """Blocking transport on top of ``httpx.Client``.

    The body is returned whatever the status code: the store reports its
    errors in the JSON payload.
    """

    def __init__(self, client: httpx.Client | None = None, timeout_ms: int | None = None) -> None:
        self._owns_client = client is None
        self._client = client if client is not None else httpx.Client(timeout=_timeout(timeout_ms))

    def send(self, request: EtcdRequest) -> bytes:
        logger.debug("%s %s", request.method, request.url)
        try:
            r = self._client.request(
                request.method,
                request.url,
                content=request.body,
                headers=_headers(request),
            )
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", request.method, request.url, exc)
            raise TransportError(request.method, request.url, str(exc) or type(exc).__name__) from exc
        return r.content

    def close(self) -> None:
        if self._owns_client:
            self._client.close()


class AsyncHttpxTransport:
    def __init__(self, client: httpx.AsyncClient | None = None, timeout_ms: int | None = None) -> None:
        self._owns_client = client is None
        self._client = client if client is not None else httpx.AsyncClient(timeout=_timeout(timeout_ms))

    async def send(self, request: EtcdRequest) -> bytes:
        logger.debug("%s %s", request.method, request.url)
        try:
            r = await self._client.request(
                request.method,
                request.url,
                content=request.body,
                headers=_headers(request),
            )
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", request.method, request.url, exc)
            raise TransportError(request.method, request.url, str(exc) or type(exc).__name__) from exc
        return r.content

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
