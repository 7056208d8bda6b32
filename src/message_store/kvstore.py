"""In-memory key/value store with periodic YAML snapshots (thread-safe, atomic)."""
from __future__ import annotations

import logging
import os
import tempfile
import threading
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

import yaml

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

DEFAULT_SNAPSHOT_INTERVAL = 300.0  # five minutes

_MISSING = object()


class StoreError(OSError):
    """Raised when a snapshot cannot be read from or written to disk."""


# -----------------------------
# Helpers
# -----------------------------
def _atomic_write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile("w", encoding="utf-8", delete=False, dir=str(path.parent)) as tmp:
        tmp.write(text)
        tmp.flush()
        os.fsync(tmp.fileno())
        tmp_name = tmp.name
    os.replace(tmp_name, path)


def _step(value: Any, part: Any) -> Any:
    if isinstance(value, Mapping):
        return value.get(part, _MISSING)
    if isinstance(value, Sequence) and not isinstance(value, str) and isinstance(part, int):
        try:
            return value[part]
        except IndexError:
            return _MISSING
    return _MISSING


# -----------------------------
# KVStore
# -----------------------------
class KVStore:
    """Process-local store of named values, flushed to a YAML file on a timer.

    Every key is updated under one lock, so ``update`` is an atomic
    read-modify-write. Stored values are treated as immutable: update
    functions must return a new value rather than mutate the current one.

    Lifecycle:
        store = KVStore("data/sdb.yaml").init()   # load + start snapshot timer
        store.put("counter", 0)
        store.update("counter", lambda n: n + 1)
        store.close()                             # stop timer + final snapshot

    With ``path=None`` the store is memory-only and ``persist`` does nothing.
    """

    def __init__(
        self,
        path: Optional[PathLike] = None,
        *,
        snapshot_interval: float = DEFAULT_SNAPSHOT_INTERVAL,
    ) -> None:
        self.path = Path(path) if path else None
        self.snapshot_interval = float(snapshot_interval)
        self._data: Dict[str, Any] = {}
        self._lock = threading.RLock()
        self._dirty = False
        self._started = False
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    # --------- lifecycle ----------
    def init(self) -> "KVStore":
        """Load the snapshot file (if any) and start the background snapshot timer."""
        with self._lock:
            if self._started:
                return self
            self._load()
            self._started = True
            self._stop.clear()

        if self.path is not None and self.snapshot_interval > 0:
            self._thread = threading.Thread(
                target=self._snapshot_loop, name="kvstore-snapshot", daemon=True
            )
            self._thread.start()
        return self

    def close(self) -> None:
        """Stop the snapshot timer and write a final snapshot."""
        self._stop.set()
        thread, self._thread = self._thread, None
        if thread is not None:
            thread.join(timeout=5.0)
        with self._lock:
            self._started = False
        self.persist()

    def __enter__(self) -> "KVStore":
        return self.init()

    def __exit__(self, *exc: Any) -> None:
        self.close()

    # --------- core API ----------
    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._data.get(key, default)

    def put(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = value
            self._dirty = True

    def update(self, key: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Atomically replace ``key`` with ``fn(current, *args, **kwargs)`` and return it.

        If ``fn`` raises, the key keeps its previous value.
        """
        with self._lock:
            new_value = fn(self._data.get(key), *args, **kwargs)
            self._data[key] = new_value
            self._dirty = True
            return new_value

    def get_in(self, key: str, path: Iterable[Any], default: Any = None) -> Any:
        """Walk nested mappings/sequences under ``key``; ``default`` if any step is missing."""
        with self._lock:
            value = self._data.get(key, _MISSING)
            for part in path:
                if value is _MISSING:
                    break
                value = _step(value, part)
        return default if value is _MISSING else value

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._data)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._data

    def clear(self) -> None:
        """Drop every key and persist the now-empty store."""
        with self._lock:
            self._data = {}
            self._dirty = True
        self.persist()

    # --------- persistence ----------
    def persist(self) -> None:
        """Write the current contents to the snapshot file atomically."""
        if self.path is None:
            return
        with self._lock:
            text = yaml.safe_dump(self._data, allow_unicode=True, sort_keys=False)
            try:
                _atomic_write_text(self.path, text)
            except OSError as e:
                raise StoreError(f"Failed to write snapshot {self.path}: {e}") from e
            self._dirty = False
        logger.info("Persisted %d keys to %s", len(self._data), self.path)

    # --------- internals ----------
    def _load(self) -> None:
        if self.path is None or not self.path.exists():
            return
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise StoreError(f"Failed to read snapshot {self.path}: {e}") from e

        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            self._quarantine(f"unparseable YAML ({e})")
            return

        if data is None:
            data = {}
        if not isinstance(data, dict):
            self._quarantine(f"expected a mapping, got {type(data).__name__}")
            return

        self._data = data
        self._dirty = False
        logger.info("Loaded %d keys from %s", len(data), self.path)

    def _quarantine(self, reason: str) -> None:
        # Keep the bad file for inspection and start empty.
        assert self.path is not None
        bad = self.path.with_suffix(self.path.suffix + ".corrupt")
        logger.warning("Snapshot %s is corrupt (%s); moving it to %s", self.path, reason, bad)
        try:
            os.replace(self.path, bad)
        except OSError as e:
            raise StoreError(f"Failed to move corrupt snapshot {self.path}: {e}") from e
        self._data = {}

    def _snapshot_loop(self) -> None:
        while not self._stop.wait(self.snapshot_interval):
            if not self._dirty:
                continue
            try:
                self.persist()
            except Exception:
                logger.exception("Background snapshot to %s failed", self.path)
