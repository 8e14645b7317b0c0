from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ActionResponse(BaseModel):
    action: str
    node: dict[str, Any]
    prev_node: dict[str, Any] | None = Field(default=None, serialization_alias="prevNode")


class ErrorResponse(BaseModel):
    errorCode: int
    message: str
    cause: str
    index: int
