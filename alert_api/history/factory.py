"""Factory para el HistoryStore del proceso.

Centraliza la configuración y creación del store.
"""

from __future__ import annotations

import logging
from typing import Optional

from common.config import get_settings

from ..core.redis.connection import RedisConnection
from .store import HistoryStore

logger = logging.getLogger(__name__)

_connection: Optional[RedisConnection] = None
_store_instance: Optional[HistoryStore] = None


def get_history_store() -> HistoryStore:
    """Obtiene la instancia singleton del store.

    La crea en la primera llamada y la reutiliza después.
    """
    global _connection, _store_instance
    if _store_instance is None:
        settings = get_settings()
        _connection = RedisConnection(settings.redis_url)
        _store_instance = HistoryStore(
            _connection.client,
            key=settings.history_key,
            capacity=settings.history_capacity,
        )
        logger.info(
            "[HISTORY] Store ready key=%s capacity=%d redis=%s",
            settings.history_key,
            settings.history_capacity,
            _connection.safe_url,
        )
    return _store_instance


def reset_history_store() -> None:
    """Resetea el singleton (útil para testing)."""
    global _connection, _store_instance
    if _connection is not None:
        _connection.disconnect()
    _connection = None
    _store_instance = None


def get_redis_connection() -> RedisConnection:
    """Conexión usada por el store del proceso."""
    get_history_store()
    return _connection
