from __future__ import annotations

from .errors import ErrorCode, QueueError, StoreError
from .models import Directory, GetResponse, Leaf


def queue_values(response: GetResponse) -> list[str]:
    """Values of a queue listing, oldest first.

    A queue that does not exist yet is empty.
    """
    if response.error is not None:
        if response.error.error_code == ErrorCode.KEY_NOT_FOUND:
            return []
        raise StoreError(response.error)

    node = response.node
    if not isinstance(node, Directory):
        raise QueueError(f"{node.key} is not a directory")
    return [child.value for child in node.children if isinstance(child, Leaf)]
