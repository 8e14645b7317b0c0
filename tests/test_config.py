import httpx

from etcdkv import Host, Session, Settings
from etcdkv.transport import HttpxTransport


def test_defaults(monkeypatch):
    for name in ("ETCD_HOSTS", "ETCD_SCHEME", "ETCD_API_PREFIX", "ETCD_TIMEOUT_MS"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings.from_env()
    assert settings.host_list() == [Host("127.0.0.1", 2379)]
    assert settings.scheme == "http"
    assert settings.api_prefix == "v2"
    assert settings.timeout_ms == 0


def test_from_env(monkeypatch):
    monkeypatch.setenv("ETCD_HOSTS", "a:4001, b:4002,,")
    monkeypatch.setenv("ETCD_SCHEME", "HTTPS")
    monkeypatch.setenv("ETCD_TIMEOUT_MS", "1500")

    settings = Settings.from_env()
    assert settings.host_list() == [Host("a", 4001), Host("b", 4002)]
    assert settings.scheme == "https"
    assert settings.timeout_ms == 1500


def test_session_from_settings(recorder):
    transport = HttpxTransport(client=httpx.Client(transport=httpx.MockTransport(recorder)))
    session = Session.from_settings(Settings(hosts=["x:1", "y:2"], scheme="https"), transport)

    assert session.hosts == (Host("x", 1), Host("y", 2))
    session.get("/a")
    assert str(recorder.last.url) == "https://x:1/v2/keys/a"
