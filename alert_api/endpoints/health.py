"""Health endpoints."""

from __future__ import annotations

import logging
import time

from fastapi import APIRouter

from ..history.factory import get_redis_connection

router = APIRouter(tags=["health"])
logger = logging.getLogger(__name__)


@router.get("/health")
def health():
    """Liveness probe: ok mientras el proceso responda."""
    return {"status": "ok"}


@router.get("/health/redis")
def redis_health():
    """Conectividad con el almacén del historial.

    No expone detalles del error al cliente; solo se loguean.

    Returns:
        {"status": "ok|error", "latency_ms": float}
    """
    try:
        conn = get_redis_connection()
        start_time = time.time()
        reachable = conn.ping()
        latency_ms = (time.time() - start_time) * 1000
    except Exception:
        logger.exception("[REDIS] Health check failed")
        return {"status": "error", "message": "Redis connection failed"}

    if not reachable:
        return {"status": "error", "message": "Redis connection failed"}
    return {"status": "ok", "latency_ms": round(latency_ms, 2)}
