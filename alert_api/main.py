from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from common.config import get_settings

from . import __version__
from .endpoints import alert_router, health_router, history_router


def _configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, get_settings().log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )


_configure_logging()

app = FastAPI(title="Device Alert Relay", version=__version__)


@app.exception_handler(405)
async def method_not_allowed(request: Request, exc) -> JSONResponse:
    """Mismo cuerpo ``{ok, error}`` que el resto de errores de la API."""
    return JSONResponse(
        status_code=405,
        content={"ok": False, "error": "Method Not Allowed"},
        headers=getattr(exc, "headers", None),
    )


app.include_router(health_router)
app.include_router(alert_router)
app.include_router(history_router)
