import json

import pytest

from etcdkv import DecodeError, DeleteResponse, Directory, ErrorCode, Leaf
from etcdkv.decoder import decode_delete, decode_get, decode_put, read_node


def _raw(doc) -> bytes:
    return json.dumps(doc).encode()


def _leaf(key, value, index=1, **extra):
    return {"key": key, "value": value, "modifiedIndex": index, "createdIndex": index, **extra}


def test_leaf():
    r = decode_get(_raw({"action": "get", "node": _leaf("/a", "x", 4)}))
    assert r.ok
    assert r.action == "get"
    assert isinstance(r.node, Leaf)
    assert r.node.key == "/a"
    assert r.node.value == "x"
    assert r.node.modified_index == 4
    assert r.node.created_index == 4
    assert r.node.ttl is None
    assert r.node.expiration is None
    assert not r.node.is_dir


def test_ttl_and_expiration():
    node = read_node(_leaf("/a", "x", expiration="2026-10-18T10:00:00Z", ttl=30))
    assert node.ttl == 30
    assert node.expiration == "2026-10-18T10:00:00Z"


def test_negative_ttl_means_no_expiration():
    assert read_node(_leaf("/a", "x", ttl=-1)).ttl is None


def test_directory_children_keep_order():
    doc = {
        "action": "get",
        "node": {
            "key": "/dir",
            "dir": True,
            "nodes": [
                _leaf("/dir/c", "3", 9),
                {"key": "/dir/a", "dir": True, "modifiedIndex": 2, "createdIndex": 2},
                _leaf("/dir/b", "2", 5),
            ],
            "modifiedIndex": 1,
            "createdIndex": 1,
        },
    }
    node = decode_get(_raw(doc)).node
    assert isinstance(node, Directory)
    assert node.is_dir
    assert [c.key for c in node.children] == ["/dir/c", "/dir/a", "/dir/b"]
    assert isinstance(node.children[1], Directory)
    assert node.children[1].children == ()
    assert node.child("b").value == "2"
    assert node.child("missing") is None


def test_nested_directories():
    doc = {
        "key": "/a",
        "dir": True,
        "nodes": [
            {"key": "/a/b", "dir": True, "nodes": [_leaf("/a/b/c", "deep")], "modifiedIndex": 1, "createdIndex": 1}
        ],
        "modifiedIndex": 1,
        "createdIndex": 1,
    }
    node = read_node(doc)
    assert node.children[0].children[0].value == "deep"


def test_dir_must_be_boolean_true():
    node = read_node(_leaf("/a", "x", dir="true"))
    assert isinstance(node, Leaf)


def test_leaf_ignores_children_and_directory_ignores_value():
    leaf = read_node(_leaf("/a", "x", nodes=[_leaf("/a/b", "y")]))
    assert isinstance(leaf, Leaf)
    assert not hasattr(leaf, "children")

    directory = read_node({"key": "/d", "dir": True, "value": "ignored", "modifiedIndex": 1, "createdIndex": 1})
    assert isinstance(directory, Directory)
    assert not hasattr(directory, "value")


def test_leaf_without_value_decodes_empty():
    r = decode_delete(_raw({"action": "delete", "node": {"key": "/a", "modifiedIndex": 8, "createdIndex": 3}}))
    assert isinstance(r, DeleteResponse)
    assert r.node.value == ""


def test_store_root_has_no_key():
    r = decode_get(_raw({"action": "get", "node": {"dir": True, "nodes": [_leaf("/a", "x")]}}))
    assert r.node.key == "/"
    assert r.node.modified_index == 0
    assert [c.key for c in r.node.children] == ["/a"]


def test_error_payload():
    doc = {"errorCode": 100, "message": "Key not found", "cause": "/missing", "index": 12}
    r = decode_get(_raw(doc))
    assert not r.ok
    assert r.node is None
    assert r.error.error_code == ErrorCode.KEY_NOT_FOUND
    assert r.error.is_key_not_found
    assert r.error.message == "Key not found"
    assert r.error.cause == "/missing"
    assert r.error.raft_index == 12


def test_error_wins_over_node():
    doc = {"errorCode": 101, "message": "Compare failed", "cause": "[a != b]", "index": 3, "node": _leaf("/a", "x")}
    r = decode_put(_raw({**doc, "prevNode": _leaf("/a", "y")}))
    assert r.error.error_code == ErrorCode.TEST_FAILED
    assert r.node is None
    assert r.prev_node is None


def test_error_without_cause_or_index():
    r = decode_get(_raw({"errorCode": 300, "message": "Raft Internal Error"}))
    assert r.error.cause == ""
    assert r.error.raft_index == 0


def test_put_with_prev_node():
    doc = {"action": "set", "node": _leaf("/a", "new", 7), "prevNode": _leaf("/a", "old", 6)}
    r = decode_put(_raw(doc))
    assert r.node.value == "new"
    assert r.prev_node.value == "old"


def test_put_without_prev_node():
    r = decode_put(_raw({"action": "set", "node": _leaf("/a", "new", 7)}))
    assert r.prev_node is None


@pytest.mark.parametrize(
    "raw",
    [
        b"not json",
        b"\xff\xfe",
        b"[]",
        b'{"action": "get"}',
        b'{"node": "nope"}',
        b'{"node": {"key": "/a", "value": "x", "createdIndex": 1}}',
        b'{"node": {"key": "/a", "value": "x", "modifiedIndex": "many", "createdIndex": 1}}',
        b'{"node": {"key": "/a", "dir": true, "nodes": {}, "modifiedIndex": 1, "createdIndex": 1}}',
        b'{"node": {"key": "/a", "dir": true, "nodes": [1], "modifiedIndex": 1, "createdIndex": 1}}',
        b'{"errorCode": 100}',
        b'{"errorCode": "bad", "message": "m"}',
        b'{"errorCode": "100", "message": "Key not found"}',
        b'{"errorCode": 100, "message": "Key not found", "index": "7"}',
        b'{"node": {"key": "/a", "value": "x", "modifiedIndex": "7", "createdIndex": 7}}',
        b'{"node": {"key": "/a", "value": "x", "modifiedIndex": true, "createdIndex": 1}}',
        b'{"node": {"key": "/a", "value": "x", "ttl": "30", "modifiedIndex": 1, "createdIndex": 1}}',
        b'{"node": {"key": "/a", "value": 5, "modifiedIndex": 1, "createdIndex": 1}}',
        b'{"node": {"key": "a", "value": "x", "modifiedIndex": 1, "createdIndex": 1}}',
    ],
)
def test_malformed_payloads_raise_decode_error(raw):
    with pytest.raises(DecodeError):
        decode_get(raw)
