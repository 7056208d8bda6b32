"""Message table built on top of a :class:`~message_store.kvstore.KVStore`.

Each message is stored with a generated id, a timestamp, and a date and
time derived from that timestamp:

    |--------+---------+-----------------------------------|
    | Column | Type    | Description                       |
    |--------+---------+-----------------------------------|
    | id     | int     | Primary key                       |
    | text   | str     | Message text                      |
    | ts     | int     | Epoch milliseconds                |
    | date   | str     | MM/dd/yyyy                        |
    | time   | str     | hh:mma (hour:minute AM/PM)        |
    |--------+---------+-----------------------------------|

Store layout, under ``<namespace>:``:
    current-message-id   int, -1 until the first message is added
    message-ids          list[int] of live ids
    messages             dict[int, Message]
"""
from __future__ import annotations

import logging
import threading
from datetime import datetime, tzinfo
from typing import Any, Callable, Dict, List, Optional, TypedDict

from .kvstore import KVStore
from .timefmt import format_date, format_time, now_in, to_epoch_millis

logger = logging.getLogger(__name__)

NO_ID = -1


class Message(TypedDict):
    """A single stored message."""

    id: int
    text: str
    ts: int      # epoch milliseconds
    date: str    # MM/dd/yyyy
    time: str    # hh:mma


# -----------------------------
# Pure value transforms (passed to KVStore.update)
# -----------------------------
def _inc(current: Optional[int]) -> int:
    if current is None:
        raise RuntimeError("message table is not initialized; call init() or ensure() first")
    return current + 1


def _assoc(records: Optional[Dict[int, Message]], key: int, value: Message) -> Dict[int, Message]:
    out = dict(records or {})
    out[key] = value
    return out


def _dissoc(records: Optional[Dict[int, Message]], key: int) -> Dict[int, Message]:
    out = dict(records or {})
    out.pop(key, None)
    return out


def _conj(ids: Optional[List[int]], value: int) -> List[int]:
    return list(ids or []) + [value]


def _remove_all(ids: Optional[List[int]], value: int) -> List[int]:
    return [i for i in (ids or []) if i != value]


# -----------------------------
# MessageTable
# -----------------------------
class MessageTable:
    """Allocates ids, stamps time fields, and keeps the id index and record map in agreement.

    Add and delete hold a table-wide lock around their individual (atomic)
    store updates, so readers going through this handle never observe the
    index and the record map out of step.
    """

    def __init__(
        self,
        store: KVStore,
        *,
        namespace: str = "messages",
        tz: Optional[tzinfo] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.store = store
        self.namespace = namespace
        self.tz = tz
        self._clock = clock or (lambda: now_in(self.tz))
        self._lock = threading.RLock()

        self.counter_key = f"{namespace}:current-message-id"
        self.index_key = f"{namespace}:message-ids"
        self.records_key = f"{namespace}:messages"

    # --------- setup ----------
    def init(self) -> None:
        """Reset the table to empty, discarding any existing messages."""
        with self._lock:
            self.store.put(self.counter_key, NO_ID)
            self.store.put(self.index_key, [])
            self.store.put(self.records_key, {})
        logger.debug("Initialized message table %r", self.namespace)

    def ensure(self) -> bool:
        """Initialize only if the table does not exist yet. Returns True if it did."""
        keys = (self.counter_key, self.index_key, self.records_key)
        with self._lock:
            present = [k in self.store for k in keys]
            if all(present):
                return False
            if any(present):
                logger.warning("Message table %r is incomplete; reinitializing", self.namespace)
            self.init()
            return True

    # --------- core API ----------
    def add_message(self, text: str) -> Message:
        """Store ``text`` as a new message and return the created record."""
        if not isinstance(text, str):
            raise TypeError(f"text must be a str, not {type(text).__name__}")

        with self._lock:
            final = self._prepare_new({"text": text})
            msg_id = final["id"]
            self.store.update(self.records_key, _assoc, msg_id, final)
            self.store.update(self.index_key, _conj, msg_id)
        logger.debug("Added message %d", msg_id)
        return Message(**final)

    def list_messages(self) -> Dict[int, Message]:
        """Return a detached copy of all messages keyed by id."""
        records = self.store.get(self.records_key) or {}
        return {k: Message(**v) for k, v in records.items()}

    def delete_message(self, msg_id: int) -> bool:
        """Remove a message. Unknown ids are a no-op; returns whether anything was removed."""
        with self._lock:
            record = self._id_to_message(msg_id)
            target = record.get("id") if record else None
            if target is None:
                logger.debug("Delete of unknown message %r ignored", msg_id)
                return False
            self.store.update(self.index_key, _remove_all, target)
            self.store.update(self.records_key, _dissoc, target)
        logger.debug("Deleted message %d", target)
        return True

    # --------- inspection ----------
    @property
    def current_id(self) -> int:
        """Last allocated id (``-1`` before the first add)."""
        value = self.store.get(self.counter_key)
        return NO_ID if value is None else value

    def ids(self) -> List[int]:
        """Live ids in insertion order."""
        with self._lock:
            return list(self.store.get(self.index_key) or [])

    # --------- internals ----------
    def _id_to_message(self, msg_id: int) -> Optional[Message]:
        return self.store.get_in(self.records_key, [msg_id])

    def _next_id(self) -> int:
        return self.store.update(self.counter_key, _inc)

    def _prepare_new(self, msg: Dict[str, Any]) -> Message:
        """Attach a fresh id plus ts/date/time taken from a single clock reading."""
        msg_id = self._next_id()
        now = self._clock()
        return Message(
            id=msg_id,
            text=msg["text"],
            ts=to_epoch_millis(now),
            date=format_date(now),
            time=format_time(now),
        )
