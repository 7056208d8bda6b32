"""Small in-memory message store backed by a snapshotting key/value store.

Typical usage
-------------
from message_store import KVStore, MessageTable

store = KVStore("data/sdb.yaml").init()
table = MessageTable(store)
table.ensure()
table.add_message("hello")

or, over HTTP, from the provided launcher:

python scripts/run_server.py --host 127.0.0.1 --port 8000
"""

from __future__ import annotations

from .kvstore import KVStore, StoreError
from .messages import Message, MessageTable

__all__ = ["KVStore", "StoreError", "Message", "MessageTable", "__version__", "get_version"]

__version__ = "0.1.0"


def get_version() -> str:
    """Return the package version."""
    return __version__
