from __future__ import annotations

import asyncio
import math
import time
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable

# Error codes and messages as the v2 store reports them.
KEY_NOT_FOUND = (100, "Key not found")
NOT_FILE = (102, "Not a file")
NOT_DIR = (104, "Not a directory")
ROOT_READ_ONLY = (107, "Root is read only")
DIR_NOT_EMPTY = (108, "Directory not empty")
VALUE_REQUIRED = (200, "Value is Required in POST form")
TTL_NAN = (202, "The given TTL in POST form is not a number")
INDEX_NAN = (203, "The given index in POST form is not a number")
EVENT_INDEX_CLEARED = (401, "The event in requested index is outdated and cleared")


class StoreError(Exception):
    def __init__(self, code: tuple[int, str], cause: str, index: int) -> None:
        super().__init__(code[1])
        self.error_code, self.message = code
        self.cause = cause
        self.index = index


@dataclass
class Entry:
    key: str
    created_index: int
    modified_index: int
    value: str | None = None
    # None for leaves; name -> child for directories, in creation order.
    children: dict[str, Entry] | None = None
    expires_at: float | None = None

    @property
    def is_dir(self) -> bool:
        return self.children is not None

    def payload(self, now: float, depth: int = 0, sort: bool = False) -> dict[str, Any]:
        """Wire form of the entry; ``depth`` levels of children are listed."""
        out: dict[str, Any] = {}
        if self.key != "/":
            out["key"] = self.key
        if self.is_dir:
            out["dir"] = True
            if depth > 0 and self.children:
                kids = self.children.values()
                if sort:
                    kids = sorted(kids, key=lambda e: e.key)
                out["nodes"] = [c.payload(now, depth - 1, sort) for c in kids]
        else:
            out["value"] = self.value
        if self.expires_at is not None:
            out["expiration"] = datetime.fromtimestamp(self.expires_at, timezone.utc).isoformat()
            out["ttl"] = max(0, math.ceil(self.expires_at - now))
        if self.key != "/":
            out["modifiedIndex"] = self.modified_index
            out["createdIndex"] = self.created_index
        return out

    def bare(self, index: int | None = None) -> dict[str, Any]:
        """Node as reported by delete and expire events."""
        out: dict[str, Any] = {"key": self.key}
        if self.is_dir:
            out["dir"] = True
        out["modifiedIndex"] = self.modified_index if index is None else index
        out["createdIndex"] = self.created_index
        return out


@dataclass(frozen=True)
class Event:
    index: int
    action: str
    key: str
    node: dict[str, Any]
    prev_node: dict[str, Any] | None = None

    def concerns(self, key: str, recursive: bool) -> bool:
        if self.key == key:
            return True
        if key.startswith(self.key.rstrip("/") + "/"):
            # an ancestor went away
            return self.action in ("delete", "expire")
        return recursive and self.key.startswith(key.rstrip("/") + "/")


@dataclass
class Result:
    action: str
    node: dict[str, Any]
    prev_node: dict[str, Any] | None = None
    created: bool = False


def _parts(key: str) -> list[str]:
    return [p for p in key.split("/") if p]


def _join(parts: list[str]) -> str:
    return "/" + "/".join(parts)


class KeyStore:
    """In-memory hierarchical store with a global modification index."""

    def __init__(self, history_size: int = 1000, clock: Callable[[], float] = time.time) -> None:
        self._lock = asyncio.Lock()
        self._changed = asyncio.Condition(self._lock)
        self._clock = clock
        self._index = 0
        self._root = Entry(key="/", created_index=0, modified_index=0, children={})
        self._history: deque[Event] = deque(maxlen=history_size)

    @property
    def index(self) -> int:
        return self._index

    def _error(self, code: tuple[int, str], cause: str) -> StoreError:
        return StoreError(code, cause, self._index)

    def _record(self, event: Event) -> None:
        self._history.append(event)
        self._changed.notify_all()

    def _expire(self, now: float) -> None:
        def walk(entry: Entry) -> None:
            assert entry.children is not None
            for name, child in list(entry.children.items()):
                if child.expires_at is not None and child.expires_at <= now:
                    del entry.children[name]
                    self._index += 1
                    event = Event(self._index, "expire", child.key, child.bare(self._index), child.payload(now))
                    self._record(event)
                elif child.is_dir:
                    walk(child)

        walk(self._root)

    def _until_next_expiry(self, now: float) -> float | None:
        """Seconds until the earliest TTL runs out, None when nothing expires."""
        pending = [e.expires_at for e in self._walk(self._root) if e.expires_at is not None]
        if not pending:
            return None
        return max(0.0, min(pending) - now)

    def _walk(self, entry: Entry):
        for child in (entry.children or {}).values():
            yield child
            if child.is_dir:
                yield from self._walk(child)

    def _lookup(self, key: str) -> Entry | None:
        entry = self._root
        for part in _parts(key):
            if entry.children is None or part not in entry.children:
                return None
            entry = entry.children[part]
        return entry

    def _parent_for(self, parts: list[str], index: int) -> Entry:
        """Directory that holds ``parts``, creating missing ancestors."""
        entry = self._root
        for i, part in enumerate(parts[:-1]):
            assert entry.children is not None
            child = entry.children.get(part)
            if child is None:
                child = Entry(key=_join(parts[: i + 1]), created_index=index, modified_index=index, children={})
                entry.children[part] = child
            elif not child.is_dir:
                raise self._error(NOT_DIR, child.key)
            entry = child
        return entry

    def _expires_at(self, ttl: int | None, now: float) -> float | None:
        if ttl is None or ttl <= 0:
            return None
        return now + ttl

    async def get(self, key: str, recursive: bool = False, sort: bool = False) -> Result:
        async with self._lock:
            now = self._clock()
            self._expire(now)
            entry = self._lookup(key)
            if entry is None:
                raise self._error(KEY_NOT_FOUND, key)
            depth = 1_000_000 if recursive else 1
            return Result("get", entry.payload(now, depth, sort))

    async def set(self, key: str, value: str | None, ttl: int | None = None, as_dir: bool = False) -> Result:
        async with self._lock:
            now = self._clock()
            self._expire(now)
            parts = _parts(key)
            if not parts:
                raise self._error(ROOT_READ_ONLY, "/")

            existing = self._lookup(key)
            if existing is not None and existing.is_dir:
                raise self._error(NOT_FILE, existing.key)

            index = self._index + 1
            parent = self._parent_for(parts, index)
            self._index = index

            entry = Entry(
                key=_join(parts),
                created_index=index,
                modified_index=index,
                value=None if as_dir else value,
                children={} if as_dir else None,
                expires_at=self._expires_at(ttl, now),
            )
            assert parent.children is not None
            parent.children[parts[-1]] = entry

            prev = existing.payload(now) if existing is not None else None
            result = Result("set", entry.payload(now), prev, created=existing is None)
            self._record(Event(index, result.action, entry.key, result.node, prev))
            return result

    async def create_in_order(self, key: str, value: str, ttl: int | None = None) -> Result:
        async with self._lock:
            now = self._clock()
            self._expire(now)
            index = self._index + 1
            parts = _parts(key) + [f"{index:020d}"]
            parent = self._parent_for(parts, index)
            self._index = index

            entry = Entry(
                key=_join(parts),
                created_index=index,
                modified_index=index,
                value=value,
                expires_at=self._expires_at(ttl, now),
            )
            assert parent.children is not None
            parent.children[parts[-1]] = entry

            result = Result("create", entry.payload(now), created=True)
            self._record(Event(index, result.action, entry.key, result.node))
            return result

    async def delete(self, key: str, as_dir: bool = False, recursive: bool = False) -> Result:
        async with self._lock:
            now = self._clock()
            self._expire(now)
            parts = _parts(key)
            if not parts:
                raise self._error(ROOT_READ_ONLY, "/")

            entry = self._lookup(key)
            if entry is None:
                raise self._error(KEY_NOT_FOUND, _join(parts))
            if entry.is_dir:
                if not (as_dir or recursive):
                    raise self._error(NOT_FILE, entry.key)
                if entry.children and not recursive:
                    raise self._error(DIR_NOT_EMPTY, entry.key)

            parent = self._lookup(_join(parts[:-1]))
            assert parent is not None and parent.children is not None
            del parent.children[parts[-1]]

            self._index += 1
            result = Result("delete", entry.bare(self._index), entry.payload(now))
            self._record(Event(self._index, result.action, entry.key, result.node, result.prev_node))
            return result

    async def watch(self, key: str, recursive: bool = False, wait_index: int | None = None) -> Event:
        """First event at or after ``wait_index`` concerning ``key``.

        Without ``wait_index`` only changes after the call are reported.
        """
        async with self._changed:
            self._expire(self._clock())
            # Every index bump is recorded, so history starting above 1 means
            # older events were dropped.
            oldest = self._history[0].index if self._history else 1
            if wait_index is not None and oldest > 1 and wait_index < oldest:
                cause = f"the requested history has been cleared [{oldest}/{wait_index}]"
                raise self._error(EVENT_INDEX_CLEARED, cause)

            start = self._index + 1 if wait_index is None else wait_index
            while True:
                for event in self._history:
                    if event.index >= start and event.concerns(key, recursive):
                        return event
                # Wake up for the next expiry even when nothing else changes.
                timeout = self._until_next_expiry(self._clock())
                try:
                    await asyncio.wait_for(self._changed.wait(), timeout)
                except asyncio.TimeoutError:
                    pass
                self._expire(self._clock())
