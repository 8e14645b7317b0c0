from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Awaitable, Iterable

from .config import Settings
from .decoder import decode_delete, decode_get, decode_put
from .hosts import Host
from .models import DeleteResponse, GetResponse, PutResponse
from .queue import queue_values
from .session import SessionBase, next_wait_index
from .transport import AsyncHttpxTransport, AsyncTransport

logger = logging.getLogger(__name__)


class AsyncSession(SessionBase):
    """asyncio counterpart of ``Session``, for use from a single event loop."""

    def __init__(
        self,
        hosts: Iterable[Host | tuple[str, int] | str],
        transport: AsyncTransport | None = None,
        *,
        scheme: str = "http",
        api_prefix: str = "v2",
        timeout_ms: int | None = None,
    ) -> None:
        super().__init__(hosts, scheme=scheme, api_prefix=api_prefix)
        self._transport = transport if transport is not None else AsyncHttpxTransport(timeout_ms=timeout_ms)

    @classmethod
    def from_settings(cls, settings: Settings, transport: AsyncTransport | None = None) -> "AsyncSession":
        return cls(
            settings.host_list(),
            transport,
            scheme=settings.scheme,
            api_prefix=settings.api_prefix,
            timeout_ms=settings.timeout_ms,
        )

    async def aclose(self) -> None:
        await self._transport.aclose()

    async def __aenter__(self) -> "AsyncSession":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def get(self, key: str, recursive: bool = False) -> GetResponse:
        request = self._builder.get(self.next_host(), key, recursive=recursive)
        return decode_get(await self._transport.send(request))

    async def put(self, key: str, value: str, ttl: int | None = None) -> PutResponse:
        request = self._builder.put(self.next_host(), key, value, ttl=ttl)
        return decode_put(await self._transport.send(request))

    async def put_directory(self, key: str, ttl: int | None = None) -> PutResponse:
        request = self._builder.put_directory(self.next_host(), key, ttl=ttl)
        return decode_put(await self._transport.send(request))

    async def delete_key(self, key: str) -> DeleteResponse:
        request = self._builder.delete(self.next_host(), key)
        return decode_delete(await self._transport.send(request))

    async def delete_directory(self, key: str) -> DeleteResponse:
        request = self._builder.delete(self.next_host(), key, directory=True)
        return decode_delete(await self._transport.send(request))

    async def delete_queue(self, key: str) -> DeleteResponse:
        return await self.delete_directory(key)

    async def wait(self, key: str, recursive: bool = False, wait_index: int | None = None) -> GetResponse:
        request = self._builder.wait(self.next_host(), key, recursive=recursive, wait_index=wait_index)
        return decode_get(await self._transport.send(request))

    async def poll(
        self,
        key: str,
        recursive: bool = False,
        wait_index: int | None = None,
        stop: asyncio.Event | None = None,
    ) -> AsyncIterator[GetResponse]:
        """Endless stream of changes to ``key``.

        Setting ``stop`` abandons the wait in flight and ends the stream.
        Cancelling the consuming task works as well.
        """
        while stop is None or not stop.is_set():
            response = await _unless_stopped(self.wait(key, recursive=recursive, wait_index=wait_index), stop)
            if response is None:
                return
            wait_index = next_wait_index(response, wait_index)
            logger.debug("poll %s resumes at waitIndex=%s", key, wait_index)
            yield response

    async def add_to_queue(self, key: str, value: str, ttl: int | None = None) -> PutResponse:
        request = self._builder.post(self.next_host(), key, value, ttl=ttl)
        return decode_put(await self._transport.send(request))

    async def list_queue(self, key: str) -> GetResponse:
        request = self._builder.list_sorted(self.next_host(), key)
        return decode_get(await self._transport.send(request))

    async def queue_values(self, key: str) -> list[str]:
        return queue_values(await self.list_queue(key))


async def _unless_stopped(
    waiting: Awaitable[GetResponse], stop: asyncio.Event | None
) -> GetResponse | None:
    if stop is None:
        return await waiting

    wait_task = asyncio.ensure_future(waiting)
    stop_task = asyncio.create_task(stop.wait())
    try:
        done, _ = await asyncio.wait({wait_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for t in (wait_task, stop_task):
            if not t.done():
                t.cancel()

    if wait_task in done:
        return wait_task.result()
    return None
