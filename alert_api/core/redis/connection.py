"""Conexión a Redis."""

from __future__ import annotations

import logging
import os
from typing import Optional

import redis

logger = logging.getLogger(__name__)


class RedisConnection:
    """Gestiona la conexión a Redis.

    Conecta de forma perezosa: crear el objeto no toca la red, así una
    caída de Redis no impide arrancar el servicio ni despachar alertas.
    """

    def __init__(self, url: Optional[str] = None, *, socket_timeout: float = 5.0):
        self._url = url or os.getenv("REDIS_URL", "redis://localhost:6379/0")
        self._socket_timeout = socket_timeout
        self._client: Optional[redis.Redis] = None

    @property
    def safe_url(self) -> str:
        return self._url.split("@")[-1]

    @property
    def client(self) -> redis.Redis:
        if self._client is None:
            self._client = redis.Redis.from_url(
                self._url,
                decode_responses=True,
                socket_timeout=self._socket_timeout,
                socket_connect_timeout=self._socket_timeout,
            )
            logger.info("[REDIS] Client created: %s", self.safe_url)
        return self._client

    def ping(self) -> bool:
        try:
            return bool(self.client.ping())
        except redis.RedisError as e:
            logger.warning("[REDIS] Ping failed: %s", e)
            return False

    def disconnect(self) -> None:
        """Desconecta de Redis."""
        if self._client is not None:
            try:
                self._client.close()
            except redis.RedisError as e:
                logger.debug("[REDIS] Close failed: %s", e)
        self._client = None
