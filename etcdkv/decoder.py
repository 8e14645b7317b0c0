"""Decoding of store responses into typed nodes and errors.

The decoder works on the parsed JSON tree through the ``Mapping`` and
``Sequence`` protocols only, so any JSON engine producing those can be used.

Error payloads::

    {"errorCode": 100, "message": "Key not found", "cause": "/a", "index": 7}

Node payloads::

    {"action": "get",
     "node": {"key": "/d", "dir": true, "nodes": [...],
              "modifiedIndex": 3, "createdIndex": 3},
     "prevNode": {...}}
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from typing import Any, TypeVar

from pydantic import ValidationError

from .errors import DecodeError
from .models import (
    DeleteResponse,
    Directory,
    GetResponse,
    Leaf,
    Node,
    PutResponse,
    ResponseError,
)

W = TypeVar("W", bound=PutResponse)


def parse_document(raw: bytes | str) -> Mapping[str, Any]:
    try:
        doc = json.loads(raw)
    except ValueError as exc:
        # UnicodeDecodeError is a ValueError too
        raise DecodeError(f"response is not valid JSON: {exc}") from exc
    if not isinstance(doc, Mapping):
        raise DecodeError(f"expected a JSON object, got {type(doc).__name__}")
    return doc


def read_error(doc: Mapping[str, Any]) -> ResponseError | None:
    """Return the error carried by ``doc``, or None for a node payload."""
    if "errorCode" not in doc:
        return None
    if "message" not in doc:
        raise DecodeError("error payload without 'message'")

    fields: dict[str, Any] = {"error_code": doc["errorCode"], "message": doc["message"]}
    if doc.get("cause") is not None:
        fields["cause"] = doc["cause"]
    if doc.get("index") is not None:
        fields["raft_index"] = doc["index"]
    try:
        return ResponseError(**fields)
    except ValidationError as exc:
        raise DecodeError(f"malformed error payload: {exc}") from exc


def _require(obj: Mapping[str, Any], field: str, where: str) -> Any:
    if field not in obj:
        raise DecodeError(f"{where}: missing required field '{field}'")
    return obj[field]


def _read_children(obj: Mapping[str, Any], where: str) -> list[Node]:
    nodes = obj.get("nodes")
    if nodes is None:
        return []
    if isinstance(nodes, (str, bytes)) or not isinstance(nodes, Sequence):
        raise DecodeError(f"{where}.nodes: expected an array")
    return [read_node(child, f"{where}.nodes[{i}]") for i, child in enumerate(nodes)]


def read_node(obj: Any, where: str = "node") -> Node:
    """Recursively decode one node object.

    ``dir`` must be the boolean true for a directory; anything else is a leaf.
    Children keep the order of the ``nodes`` array.
    """
    if not isinstance(obj, Mapping):
        raise DecodeError(f"{where}: expected an object, got {type(obj).__name__}")

    is_dir = obj.get("dir") is True

    if is_dir and "key" not in obj:
        # The store root carries neither a key nor indices.
        key, modified_index, created_index = "/", 0, 0
    else:
        key = _require(obj, "key", where)
        modified_index = _require(obj, "modifiedIndex", where)
        created_index = _require(obj, "createdIndex", where)

    common: dict[str, Any] = {
        "key": key,
        "modified_index": modified_index,
        "created_index": created_index,
        "expiration": obj.get("expiration"),
        "ttl": obj.get("ttl"),
    }
    try:
        if is_dir:
            return Directory(children=tuple(_read_children(obj, where)), **common)
        # delete and expire events report the leaf without its value
        return Leaf(value=obj.get("value", ""), **common)
    except ValidationError as exc:
        raise DecodeError(f"{where}: {exc}") from exc


def _read_action(doc: Mapping[str, Any]) -> str | None:
    action = doc.get("action")
    if action is not None and not isinstance(action, str):
        raise DecodeError("'action' must be a string")
    return action


def decode_get(raw: bytes | str) -> GetResponse:
    doc = parse_document(raw)
    error = read_error(doc)
    if error is not None:
        return GetResponse.failure(error)
    node = read_node(_require(doc, "node", "response"))
    return GetResponse.success(node, action=_read_action(doc))


def decode_write(raw: bytes | str, response_type: type[W] = PutResponse) -> W:
    doc = parse_document(raw)
    error = read_error(doc)
    if error is not None:
        return response_type.failure(error)
    node = read_node(_require(doc, "node", "response"))
    prev_node = None
    if doc.get("prevNode") is not None:
        prev_node = read_node(doc["prevNode"], "prevNode")
    return response_type.success(node, action=_read_action(doc), prev_node=prev_node)


def decode_put(raw: bytes | str) -> PutResponse:
    return decode_write(raw, PutResponse)


def decode_delete(raw: bytes | str) -> DeleteResponse:
    return decode_write(raw, DeleteResponse)
