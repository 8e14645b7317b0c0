from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from .errors import ConfigurationError


@dataclass(frozen=True)
class Host:
    address: str
    port: int

    @staticmethod
    def parse(raw: str) -> "Host":
        """Parse ``host:port``."""
        address, sep, port = raw.strip().rpartition(":")
        if not sep or not address:
            raise ConfigurationError(f"Host must be given as host:port, got {raw!r}")
        try:
            return Host(address=address, port=int(port))
        except ValueError as exc:
            raise ConfigurationError(f"Invalid port in {raw!r}") from exc

    def __str__(self) -> str:
        return f"{self.address}:{self.port}"


class HostPool:
    """Hands out the configured hosts in round-robin order.

    A failing host is not removed, it simply comes up again on its next turn.
    Not safe for concurrent use from several threads.
    """

    def __init__(self, hosts: Iterable[Host | tuple[str, int] | str]) -> None:
        self._hosts: tuple[Host, ...] = tuple(_coerce(h) for h in hosts)
        if not self._hosts:
            raise ConfigurationError("At least one host is required")
        self._counter = 0

    @property
    def hosts(self) -> tuple[Host, ...]:
        return self._hosts

    def next_host(self) -> Host:
        host = self._hosts[self._counter % len(self._hosts)]
        self._counter += 1
        return host

    def __len__(self) -> int:
        return len(self._hosts)


def _coerce(value: Host | tuple[str, int] | str) -> Host:
    if isinstance(value, Host):
        return value
    if isinstance(value, str):
        return Host.parse(value)
    address, port = value
    return Host(address=address, port=int(port))
