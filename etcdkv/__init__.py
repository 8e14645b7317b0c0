"""Client for the etcd v2 keys API."""

from .aio import AsyncSession
from .config import Settings
from .errors import (
    ConfigurationError,
    DecodeError,
    ErrorCode,
    EtcdError,
    QueueError,
    StoreError,
    TransportError,
)
from .hosts import Host, HostPool
from .models import DeleteResponse, Directory, GetResponse, Leaf, Node, PutResponse, ResponseError
from .queue import queue_values
from .session import Session

__version__ = "0.1.0"
__all__ = [
    "AsyncSession",
    "ConfigurationError",
    "DecodeError",
    "DeleteResponse",
    "Directory",
    "ErrorCode",
    "EtcdError",
    "GetResponse",
    "Host",
    "HostPool",
    "Leaf",
    "Node",
    "PutResponse",
    "QueueError",
    "ResponseError",
    "Session",
    "Settings",
    "StoreError",
    "TransportError",
    "queue_values",
]
