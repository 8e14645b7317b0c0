from __future__ import annotations

import json
from typing import Any, Callable

import httpx
import pytest
from fastapi.testclient import TestClient

from etcdkv import Session
from etcdkv.transport import HttpxTransport
from fakeetcd import create_app

HOSTS = [("node1", 4001), ("node2", 4002), ("node3", 4003)]


@pytest.fixture
def app():
    return create_app()


@pytest.fixture
def session(app):
    with TestClient(app) as client:
        s = Session(HOSTS, HttpxTransport(client=client))
        yield s
        s.close()


class Recorder:
    """httpx handler answering every request with the same canned JSON."""

    def __init__(self, payload: dict[str, Any], status_code: int = 200) -> None:
        self.payload = payload
        self.status_code = status_code
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, content=json.dumps(self.payload).encode())

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


LEAF_PAYLOAD = {
    "action": "get",
    "node": {"key": "/a", "value": "x", "modifiedIndex": 5, "createdIndex": 5},
}


@pytest.fixture
def recorder() -> Recorder:
    return Recorder(LEAF_PAYLOAD)


@pytest.fixture
def mock_session(recorder) -> Callable[..., Session]:
    def make(hosts=HOSTS, handler=None) -> Session:
        client = httpx.Client(transport=httpx.MockTransport(handler or recorder))
        return Session(hosts, HttpxTransport(client=client))

    return make
