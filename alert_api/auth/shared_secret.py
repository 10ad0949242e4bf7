"""Autenticación por secreto compartido (header X-Webhook-Secret).

SECURITY: comparación por igualdad simple (no constante en tiempo).
Si el modelo de amenaza exige resistencia a timing, cambiar a hmac.compare_digest aquí (único punto de comparación).
"""

from __future__ import annotations

import logging
from typing import Optional

from ..errors import AuthorizationError

logger = logging.getLogger(__name__)

SECRET_HEADER = "X-Webhook-Secret"


def verify_shared_secret(provided: Optional[str], expected: Optional[str]) -> None:
    """Valida el secreto del request.

    Ausencia de cualquiera de los dos lados es un rechazo: un servidor
    sin WEBHOOK_SECRET configurado no acepta eventos.

    Raises:
        AuthorizationError: si falta o no coincide
    """
    if not expected:
        logger.error("[AUTH] WEBHOOK_SECRET not configured - rejecting request")
        raise AuthorizationError("Forbidden")

    if not provided:
        logger.warning("[AUTH] Missing %s header", SECRET_HEADER)
        raise AuthorizationError("Forbidden")

    if provided != expected:
        logger.warning("[AUTH] Invalid shared secret attempt")
        raise AuthorizationError("Forbidden")
