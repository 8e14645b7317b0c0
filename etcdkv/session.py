from __future__ import annotations

import logging
from typing import Iterable, Iterator, Protocol

from .config import Settings
from .decoder import decode_delete, decode_get, decode_put
from .errors import ErrorCode
from .hosts import Host, HostPool
from .models import DeleteResponse, GetResponse, PutResponse
from .queue import queue_values
from .request import RequestBuilder
from .transport import HttpxTransport, Transport

logger = logging.getLogger(__name__)


class StopToken(Protocol):
    """Anything with ``is_set()``, e.g. ``threading.Event``."""

    def is_set(self) -> bool: ...


def next_wait_index(response: GetResponse, current: int | None) -> int | None:
    """Index the next wait of a poll should start from.

    After an event the watch resumes right after it so nothing is missed
    between two waits. When the store has already discarded the requested
    index the watch restarts from the current state.
    """
    if response.node is not None:
        return response.node.modified_index + 1
    if response.error is not None and response.error.error_code == ErrorCode.EVENT_INDEX_CLEARED:
        return None
    return current


class SessionBase:
    def __init__(
        self,
        hosts: Iterable[Host | tuple[str, int] | str],
        scheme: str = "http",
        api_prefix: str = "v2",
    ) -> None:
        self._pool = HostPool(hosts)
        self._builder = RequestBuilder(scheme=scheme, api_prefix=api_prefix)

    @property
    def hosts(self) -> tuple[Host, ...]:
        return self._pool.hosts

    def next_host(self) -> Host:
        return self._pool.next_host()


class Session(SessionBase):
    """Blocking client session.

    Every call goes to the next host of the pool. Transport failures raise
    ``TransportError`` and are not retried; errors reported by the store come
    back in the response's ``error``.
    """

    def __init__(
        self,
        hosts: Iterable[Host | tuple[str, int] | str],
        transport: Transport | None = None,
        *,
        scheme: str = "http",
        api_prefix: str = "v2",
        timeout_ms: int | None = None,
    ) -> None:
        super().__init__(hosts, scheme=scheme, api_prefix=api_prefix)
        self._transport = transport if transport is not None else HttpxTransport(timeout_ms=timeout_ms)

    @classmethod
    def from_settings(cls, settings: Settings, transport: Transport | None = None) -> "Session":
        return cls(
            settings.host_list(),
            transport,
            scheme=settings.scheme,
            api_prefix=settings.api_prefix,
            timeout_ms=settings.timeout_ms,
        )

    @classmethod
    def from_env(cls) -> "Session":
        return cls.from_settings(Settings.from_env())

    def close(self) -> None:
        self._transport.close()

    def __enter__(self) -> "Session":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def get(self, key: str, recursive: bool = False) -> GetResponse:
        request = self._builder.get(self.next_host(), key, recursive=recursive)
        return decode_get(self._transport.send(request))

    def put(self, key: str, value: str, ttl: int | None = None) -> PutResponse:
        request = self._builder.put(self.next_host(), key, value, ttl=ttl)
        return decode_put(self._transport.send(request))

    def put_directory(self, key: str, ttl: int | None = None) -> PutResponse:
        request = self._builder.put_directory(self.next_host(), key, ttl=ttl)
        return decode_put(self._transport.send(request))

    def delete_key(self, key: str) -> DeleteResponse:
        request = self._builder.delete(self.next_host(), key)
        return decode_delete(self._transport.send(request))

    def delete_directory(self, key: str) -> DeleteResponse:
        request = self._builder.delete(self.next_host(), key, directory=True)
        return decode_delete(self._transport.send(request))

    def delete_queue(self, key: str) -> DeleteResponse:
        return self.delete_directory(key)

    def wait(self, key: str, recursive: bool = False, wait_index: int | None = None) -> GetResponse:
        """Block until ``key`` (or its subtree) changes.

        Returns immediately when ``wait_index`` names a change that already
        happened.
        """
        request = self._builder.wait(self.next_host(), key, recursive=recursive, wait_index=wait_index)
        return decode_get(self._transport.send(request))

    def poll(
        self,
        key: str,
        recursive: bool = False,
        wait_index: int | None = None,
        stop: StopToken | None = None,
    ) -> Iterator[GetResponse]:
        """Endless stream of changes to ``key``.

        Store errors are yielded and polling goes on; transport and decode
        failures end the stream by raising. ``stop`` is checked before each
        wait, so it takes effect once the wait in flight has returned.
        """
        while stop is None or not stop.is_set():
            response = self.wait(key, recursive=recursive, wait_index=wait_index)
            wait_index = next_wait_index(response, wait_index)
            logger.debug("poll %s resumes at waitIndex=%s", key, wait_index)
            yield response

    def add_to_queue(self, key: str, value: str, ttl: int | None = None) -> PutResponse:
        request = self._builder.post(self.next_host(), key, value, ttl=ttl)
        return decode_put(self._transport.send(request))

    def list_queue(self, key: str) -> GetResponse:
        request = self._builder.list_sorted(self.next_host(), key)
        return decode_get(self._transport.send(request))

    def queue_values(self, key: str) -> list[str]:
        return queue_values(self.list_queue(key))
