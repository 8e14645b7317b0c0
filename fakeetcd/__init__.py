"""In-memory stand-in for the etcd v2 keys API, served with FastAPI."""

from .main import create_app
from .store import KeyStore

__all__ = ["KeyStore", "create_app"]
