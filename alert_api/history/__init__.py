"""Historial acotado de eventos recientes."""

from .store import DEFAULT_CAPACITY, HistoryStore
from .factory import get_history_store, get_redis_connection, reset_history_store

__all__ = [
    "DEFAULT_CAPACITY",
    "HistoryStore",
    "get_history_store",
    "get_redis_connection",
    "reset_history_store",
]
