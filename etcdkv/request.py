from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import quote, urlencode

from .hosts import Host

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


@dataclass(frozen=True)
class EtcdRequest:
    method: str
    url: str
    # Form-encoded body for PUT/POST, None otherwise.
    body: str | None = None


def normalize_key(key: str) -> str:
    if not key.startswith("/"):
        key = "/" + key
    return key


class RequestBuilder:
    """Turns operation parameters into method, URL and form body."""

    def __init__(self, scheme: str = "http", api_prefix: str = "v2") -> None:
        self._scheme = scheme
        self._prefix = api_prefix.strip("/")

    def keys_url(self, host: Host, key: str) -> str:
        path = quote(normalize_key(key), safe="/")
        return f"{self._scheme}://{host.address}:{host.port}/{self._prefix}/keys{path}"

    def build(
        self,
        method: str,
        host: Host,
        key: str,
        *,
        recursive: bool = False,
        wait: bool = False,
        wait_index: int | None = None,
        value: str | None = None,
        ttl: int | None = None,
        as_directory: bool = False,
        sort: bool = False,
    ) -> EtcdRequest:
        query: list[tuple[str, str]] = []
        if recursive:
            query.append(("recursive", "true"))
        if wait:
            query.append(("wait", "true"))
            if wait_index is not None:
                query.append(("waitIndex", str(wait_index)))

        body = None
        if method in ("PUT", "POST"):
            form: list[tuple[str, str]] = []
            if as_directory:
                form.append(("dir", "true"))
            else:
                form.append(("value", "" if value is None else value))
            if ttl is not None and ttl > 0:
                form.append(("ttl", str(ttl)))
            body = urlencode(form)
        elif as_directory:
            query.append(("dir", "true"))

        if sort:
            query.append(("sorted", "true"))

        url = self.keys_url(host, key)
        if query:
            url = f"{url}?{urlencode(query)}"
        return EtcdRequest(method=method, url=url, body=body)

    def get(self, host: Host, key: str, recursive: bool = False) -> EtcdRequest:
        return self.build("GET", host, key, recursive=recursive)

    def wait(
        self,
        host: Host,
        key: str,
        recursive: bool = False,
        wait_index: int | None = None,
    ) -> EtcdRequest:
        return self.build("GET", host, key, recursive=recursive, wait=True, wait_index=wait_index)

    def put(self, host: Host, key: str, value: str, ttl: int | None = None) -> EtcdRequest:
        return self.build("PUT", host, key, value=value, ttl=ttl)

    def put_directory(self, host: Host, key: str, ttl: int | None = None) -> EtcdRequest:
        return self.build("PUT", host, key, ttl=ttl, as_directory=True)

    def post(self, host: Host, key: str, value: str, ttl: int | None = None) -> EtcdRequest:
        return self.build("POST", host, key, value=value, ttl=ttl)

    def delete(self, host: Host, key: str, directory: bool = False) -> EtcdRequest:
        return self.build("DELETE", host, key, recursive=directory, as_directory=directory)

    def list_sorted(self, host: Host, key: str) -> EtcdRequest:
        return self.build("GET", host, key, recursive=True, sort=True)
