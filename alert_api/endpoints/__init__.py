"""Endpoints HTTP del relay."""

from .alert import router as alert_router
from .health import router as health_router
from .history import router as history_router

__all__ = ["alert_router", "health_router", "history_router"]
