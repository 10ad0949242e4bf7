"""Endpoint de ingesta de alertas del dispositivo."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse
from fastapi.concurrency import run_in_threadpool

from common.config import Settings

from ..auth.shared_secret import SECRET_HEADER
from ..dependencies import provide_dispatcher, provide_history_store, provide_settings
from ..errors import AuthorizationError, MalformedInputError
from ..history.store import HistoryStore
from ..notifications.dispatcher import ChannelDispatcher
from ..pipeline import IngestionPipeline
from ..schemas import IngestResponse

router = APIRouter(tags=["alert"])
logger = logging.getLogger(__name__)


@router.post("/api/alert", response_model=IngestResponse, response_model_exclude_none=True)
async def ingest_alert(
    request: Request,
    x_webhook_secret: Optional[str] = Header(default=None, alias=SECRET_HEADER),
    settings: Settings = Depends(provide_settings),
    store: Optional[HistoryStore] = Depends(provide_history_store),
    dispatcher: ChannelDispatcher = Depends(provide_dispatcher),
):
    """Ingesta de un evento.

    403 si el secreto no coincide, 400 si el body no es un objeto JSON,
    200 en cualquier otro caso (incluidos fallos de Redis o de canales).
    """
    pipeline = IngestionPipeline(
        secret=settings.webhook_secret,
        store=store,
        dispatcher=dispatcher,
    )
    body = await request.body()

    try:
        # Red y SMTP bloquean: fuera del event loop.
        outcome = await run_in_threadpool(pipeline.process, x_webhook_secret, body)
    except (AuthorizationError, MalformedInputError) as e:
        if isinstance(e, MalformedInputError):
            logger.warning("[ALERT] Rejected malformed body: %s", e.reason)
        return JSONResponse(status_code=e.status_code, content={"ok": False, "error": e.reason})

    return outcome.to_response()
