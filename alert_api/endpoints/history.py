"""Endpoints de lectura del historial (recientes y último evento)."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse

from ..dependencies import provide_history_store
from ..errors import StoreError
from ..history.store import HistoryStore
from ..schemas import LastEventResponse, RecentEventsResponse

router = APIRouter(tags=["history"])
logger = logging.getLogger(__name__)

RECENT_CACHE_CONTROL = "no-store, no-cache, must-revalidate, max-age=0"
LAST_CACHE_CONTROL = "no-store"


def _store_error(error: str, cache_control: str) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={"ok": False, "error": error},
        headers={"Cache-Control": cache_control},
    )


@router.get("/api/recent", response_model=RecentEventsResponse)
def recent_events(
    response: Response,
    store: Optional[HistoryStore] = Depends(provide_history_store),
):
    """Últimos eventos, el más nuevo primero, acotado a la capacidad."""
    response.headers["Cache-Control"] = RECENT_CACHE_CONTROL
    if store is None:
        return _store_error("store unavailable", RECENT_CACHE_CONTROL)
    try:
        items = store.recent()
    except StoreError as e:
        logger.error("[HISTORY] Read error: %s", e)
        return _store_error(str(e), RECENT_CACHE_CONTROL)

    return {"ok": True, "count": len(items), "items": [r.to_dict() for r in items]}


@router.get("/api/last", response_model=LastEventResponse)
def last_event(
    response: Response,
    store: Optional[HistoryStore] = Depends(provide_history_store),
):
    """Evento más reciente (cabeza del historial) o null."""
    response.headers["Cache-Control"] = LAST_CACHE_CONTROL
    if store is None:
        return _store_error("store unavailable", LAST_CACHE_CONTROL)
    try:
        last = store.last()
    except StoreError as e:
        logger.error("[HISTORY] Read error: %s", e)
        return _store_error(str(e), LAST_CACHE_CONTROL)

    return {"ok": True, "last": last.to_dict() if last is not None else None}
