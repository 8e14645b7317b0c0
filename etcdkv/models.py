from __future__ import annotations

from typing import Union

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from .errors import ErrorCode, StoreError


class _NodeBase(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", strict=True)

    key: str
    modified_index: int
    created_index: int
    expiration: str | None = None
    # None means the key never expires; the wire uses -1 or omits the field.
    ttl: int | None = None

    @field_validator("key")
    @classmethod
    def _absolute_key(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError(f"key must start with '/', got {v!r}")
        return v

    @field_validator("ttl")
    @classmethod
    def _ttl_sentinel(cls, v: int | None) -> int | None:
        if v is None or v < 0:
            return None
        return v

    @property
    def name(self) -> str:
        return self.key.rstrip("/").rsplit("/", 1)[-1]


class Leaf(_NodeBase):
    value: str

    @property
    def is_dir(self) -> bool:
        return False


class Directory(_NodeBase):
    children: tuple[Node, ...] = ()

    @property
    def is_dir(self) -> bool:
        return True

    def child(self, name: str) -> Node | None:
        for node in self.children:
            if node.name == name:
                return node
        return None


Node = Union[Leaf, Directory]

Directory.model_rebuild()


class ResponseError(BaseModel):
    model_config = ConfigDict(frozen=True, strict=True)

    error_code: int
    message: str
    cause: str = ""
    raft_index: int = 0

    @property
    def is_key_not_found(self) -> bool:
        return self.error_code == ErrorCode.KEY_NOT_FOUND


class GetResponse(BaseModel):
    """Either the node that was read or the error reported by the store."""

    model_config = ConfigDict(frozen=True)

    action: str | None = None
    node: Node | None = None
    error: ResponseError | None = None

    @model_validator(mode="after")
    def _exactly_one(self):
        if (self.node is None) == (self.error is None):
            raise ValueError("a response carries either a node or an error")
        return self

    @classmethod
    def success(cls, node: Node, action: str | None = None):
        return cls(action=action, node=node)

    @classmethod
    def failure(cls, error: ResponseError):
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> Node:
        if self.error is not None:
            raise StoreError(self.error)
        return self.node  # type: ignore[return-value]


class PutResponse(GetResponse):
    """Result of a write. ``prev_node`` is set when an existing node was replaced."""

    prev_node: Node | None = None

    @model_validator(mode="after")
    def _no_prev_on_error(self):
        if self.error is not None and self.prev_node is not None:
            raise ValueError("an error response has no previous node")
        return self

    @classmethod
    def success(cls, node: Node, action: str | None = None, prev_node: Node | None = None):
        return cls(action=action, node=node, prev_node=prev_node)


class DeleteResponse(PutResponse):
    pass
