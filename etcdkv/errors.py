from __future__ import annotations

from enum import IntEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import ResponseError


class ErrorCode(IntEnum):
    """Error codes reported by the store in the ``errorCode`` field."""

    KEY_NOT_FOUND = 100
    TEST_FAILED = 101
    NOT_FILE = 102
    NOT_DIR = 104
    NODE_EXIST = 105
    ROOT_READ_ONLY = 107
    DIR_NOT_EMPTY = 108
    UNAUTHORIZED = 110

    VALUE_REQUIRED = 200
    PREV_VALUE_REQUIRED = 201
    TTL_NAN = 202
    INDEX_NAN = 203
    INVALID_FIELD = 209
    INVALID_FORM = 210

    RAFT_INTERNAL = 300
    LEADER_ELECT = 301

    WATCHER_CLEARED = 400
    EVENT_INDEX_CLEARED = 401


class EtcdError(Exception):
    """Base exception for client errors."""


class ConfigurationError(EtcdError):
    pass


class TransportError(EtcdError):
    """The HTTP request could not be completed."""

    def __init__(self, method: str, url: str, reason: str) -> None:
        super().__init__(f"{method} {url} failed: {reason}")
        self.method = method
        self.url = url
        self.reason = reason


class DecodeError(EtcdError):
    """The response body did not match the node/error schema."""


class StoreError(EtcdError):
    """The store answered with an error payload."""

    def __init__(self, error: ResponseError) -> None:
        super().__init__(f"[{error.error_code}] {error.message} ({error.cause})")
        self.error = error

    @property
    def error_code(self) -> int:
        return self.error.error_code


class QueueError(EtcdError):
    pass
