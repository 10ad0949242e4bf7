"""Dependencias FastAPI.

Los tests las reemplazan con ``app.dependency_overrides``.
"""

from __future__ import annotations

import logging
from typing import Optional

from common.config import Settings, get_settings

from .history.factory import get_history_store
from .history.store import HistoryStore
from .notifications.dispatcher import ChannelDispatcher
from .notifications.factory import get_dispatcher

logger = logging.getLogger(__name__)


def provide_settings() -> Settings:
    return get_settings()


def provide_history_store() -> Optional[HistoryStore]:
    """Store del proceso, o None si no se pudo construir (URL inválida, etc.)."""
    try:
        return get_history_store()
    except Exception:
        logger.exception("[HISTORY] Could not create history store")
        return None


def provide_dispatcher() -> ChannelDispatcher:
    return get_dispatcher()
