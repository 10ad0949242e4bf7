"""Historial de eventos sobre una lista de Redis.

Lista newest-first de capacidad fija:

- append: LPUSH + LTRIM 0..N-1 (pipeline, sin transacción)
- recent: LRANGE 0..limit-1, descartando elementos corruptos

Si el proceso muere entre LPUSH y LTRIM la lista puede quedar con más
de N elementos de forma transitoria; el siguiente append la recorta.
Appends concurrentes se intercalan sin lock: aceptable para el volumen
de alertas de un dispositivo.
"""

from __future__ import annotations

import json
import logging
from typing import Any, List, Optional

import redis

from ..core.domain.event import EventRecord
from ..errors import StoreError

logger = logging.getLogger(__name__)

DEFAULT_KEY = "events"
DEFAULT_CAPACITY = 50


class HistoryStore:
    """Log append-only, acotado y newest-first.

    ``client`` es cualquier objeto con la interfaz de lista de redis-py
    (lpush/ltrim/lrange/lindex/pipeline).
    """

    def __init__(self, client: Any, *, key: str = DEFAULT_KEY, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self._client = client
        self._key = key
        self._capacity = capacity

    @property
    def key(self) -> str:
        return self._key

    @property
    def capacity(self) -> int:
        return self._capacity

    def append(self, record: EventRecord) -> None:
        """Inserta el registro en la cabeza y recorta a la capacidad.

        Raises:
            StoreError: si Redis no responde
        """
        data = json.dumps(record.to_dict(), separators=(",", ":"))
        try:
            pipe = self._client.pipeline(transaction=False)
            pipe.lpush(self._key, data)
            pipe.ltrim(self._key, 0, self._capacity - 1)
            pipe.execute()
        except redis.RedisError as e:
            raise StoreError(f"append failed: {e}") from e

        logger.debug("[HISTORY] Appended id=%s key=%s", record.id, self._key)

    def recent(self, limit: Optional[int] = None) -> List[EventRecord]:
        """Devuelve hasta ``limit`` registros, el más nuevo primero.

        El límite se acota a la capacidad. Elementos que no se pueden
        decodificar se descartan sin fallar la lectura completa.

        Raises:
            StoreError: si Redis no responde
        """
        if limit is None or limit > self._capacity:
            limit = self._capacity
        if limit <= 0:
            return []

        try:
            raw_items = self._client.lrange(self._key, 0, limit - 1)
        except redis.RedisError as e:
            raise StoreError(f"read failed: {e}") from e

        records: List[EventRecord] = []
        for raw in raw_items:
            record = _decode(raw)
            if record is not None:
                records.append(record)
        return records

    def last(self) -> Optional[EventRecord]:
        """Cabeza de la lista: el evento más reciente, o None.

        Si la cabeza está corrupta se devuelve el primer registro válido.
        """
        items = self.recent(self._capacity)
        return items[0] if items else None


def _decode(raw: Any) -> Optional[EventRecord]:
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError:
            logger.debug("[HISTORY] Dropping undecodable item")
            return None
    try:
        data = json.loads(raw)
        if not isinstance(data, dict):
            return None
        return EventRecord.from_dict(data)
    except (TypeError, ValueError, KeyError, AttributeError, OverflowError) as e:
        logger.debug("[HISTORY] Dropping corrupt item err=%s", type(e).__name__)
        return None
