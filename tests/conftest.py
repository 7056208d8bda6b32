"""Pytest configuration and shared fixtures."""
from __future__ import annotations

import os
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Ensure src/ is on the import path (for local imports without installing as package)
SRC_PATH = Path(__file__).resolve().parent.parent / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from message_store.kvstore import KVStore  # noqa: E402
from message_store.messages import MessageTable  # noqa: E402


# 2024-03-05 14:07:09.250 UTC
FIXED_NOW = datetime(2024, 3, 5, 14, 7, 9, 250000, tzinfo=timezone.utc)


@pytest.fixture(scope="function")
def store() -> KVStore:
    """Memory-only store (no snapshot file, no timer)."""
    return KVStore(None).init()


@pytest.fixture(scope="function")
def table(store: KVStore) -> MessageTable:
    """Freshly initialized table with a fixed clock."""
    t = MessageTable(store, clock=lambda: FIXED_NOW)
    t.init()
    return t


@pytest.fixture(scope="function")
def clean_env(monkeypatch: pytest.MonkeyPatch):
    """Ensure tests run with a clean environment (no leftover vars)."""
    for var in list(os.environ):
        if var == "MESSAGE_STORE_CONFIG" or var.startswith("MESSAGE_STORE__"):
            monkeypatch.delenv(var, raising=False)
    yield
