"""FastAPI application exposing the message table over HTTP."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from .config import load_config
from .kvstore import KVStore, StoreError
from .messages import MessageTable
from .timefmt import resolve_timezone

logger = logging.getLogger(__name__)


# -----------------------------
# Pydantic request/response
# -----------------------------
class MessageIn(BaseModel):
    text: str = Field(..., description="Message text, stored as-is.")


class MessageOut(BaseModel):
    id: int
    text: str
    ts: int = Field(..., description="Creation time in epoch milliseconds.")
    date: str = Field(..., description="MM/dd/yyyy")
    time: str = Field(..., description="hh:mma")


class DeleteResponse(BaseModel):
    deleted: bool


# -----------------------------
# Factories
# -----------------------------
def _make_store(cfg: Dict[str, Any]) -> KVStore:
    store_cfg = cfg.get("store", {})
    return KVStore(
        store_cfg.get("path") or None,
        snapshot_interval=float(store_cfg.get("snapshot_interval", 300)),
    ).init()


def _make_table(cfg: Dict[str, Any], store: KVStore) -> MessageTable:
    table_cfg = cfg.get("table", {})
    return MessageTable(
        store,
        namespace=str(table_cfg.get("namespace") or "messages"),
        tz=resolve_timezone(table_cfg.get("timezone")),
    )


# -----------------------------
# App factory
# -----------------------------
def create_app(
    config_path: Optional[str] = None,
    store: Optional[KVStore] = None,
    table: Optional[MessageTable] = None,
) -> FastAPI:
    cfg = load_config(config_path)
    cors_origins = cfg.get("server", {}).get("cors_origins", ["*"])

    owns_store = store is None and table is None
    if table is None:
        store = store or _make_store(cfg)
        table = _make_table(cfg, store)
    else:
        store = table.store
    table.ensure()

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        if owns_store:
            store.close()

    app = FastAPI(title="Message Store", version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health() -> Dict[str, Any]:
        return {
            "ok": True,
            "namespace": table.namespace,
            "snapshot_path": store.path and str(store.path),
            "count": len(table.ids()),
        }

    @app.get("/messages")
    def list_messages() -> Dict[int, MessageOut]:
        return {k: MessageOut(**v) for k, v in table.list_messages().items()}

    @app.post("/messages", response_model=MessageOut, status_code=201)
    def add_message(req: MessageIn) -> MessageOut:
        return MessageOut(**table.add_message(req.text))

    @app.delete("/messages/{msg_id}", response_model=DeleteResponse)
    def delete_message(msg_id: int) -> DeleteResponse:
        return DeleteResponse(deleted=table.delete_message(msg_id))

    @app.post("/messages/reset")
    def reset() -> Dict[str, Any]:
        table.init()
        return {"ok": True}

    @app.post("/admin/persist")
    def persist() -> Dict[str, Any]:
        try:
            store.persist()
        except StoreError as e:
            logger.exception("Manual persist failed")
            raise HTTPException(status_code=500, detail=str(e))
        return {"ok": True, "snapshot_path": store.path and str(store.path)}

    return app
