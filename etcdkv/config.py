from __future__ import annotations

from pydantic import BaseModel, Field

from .hosts import Host


class Settings(BaseModel):
    hosts: list[str] = Field(default_factory=lambda: ["127.0.0.1:2379"])  # host:port

    scheme: str = "http"
    api_prefix: str = "v2"

    # 0 disables the client-side timeout, which long-polls need.
    timeout_ms: int = 0

    def host_list(self) -> list[Host]:
        return [Host.parse(h) for h in self.hosts]

    @staticmethod
    def from_env() -> "Settings":
        import os

        hosts_raw = os.environ.get("ETCD_HOSTS", "127.0.0.1:2379").strip()
        hosts = [h.strip() for h in hosts_raw.split(",") if h.strip()]

        scheme = os.environ.get("ETCD_SCHEME", "http").strip().lower()
        api_prefix = os.environ.get("ETCD_API_PREFIX", "v2").strip()
        timeout_ms = int(os.environ.get("ETCD_TIMEOUT_MS", "0"))

        return Settings(
            hosts=hosts,
            scheme=scheme,
            api_prefix=api_prefix,
            timeout_ms=timeout_ms,
        )
