"""Pipeline de ingesta de alertas.

Estados:

    UNAUTHENTICATED → AUTHENTICATED → PARSED → EXTRACTED
        → PERSISTED | PERSIST_FAILED → DISPATCHED → RESPONDED

Solo los pasos 1 (secreto) y 2 (parseo) pueden terminar en error visible
para el dispositivo. Persistencia y entrega corren en paralelo y sus
fallos se absorben: un dispositivo a batería no debe reintentar porque
Redis o un webhook estén caídos.
"""

from __future__ import annotations

import json
import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from .auth.shared_secret import verify_shared_secret
from .core.domain.event import EventRecord, new_event_id, now_ms
from .errors import MalformedInputError, StoreError
from .extraction.metric_extractor import MetricExtractor
from .history.store import HistoryStore
from .notifications.dispatcher import ChannelDispatcher, ChannelResult
from .notifications.renderer import ChannelPayload, NotificationRenderer, RenderMode

logger = logging.getLogger(__name__)

RawBody = Union[Mapping[str, Any], str, bytes, None]


class PipelineState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"
    PARSED = "parsed"
    EXTRACTED = "extracted"
    PERSISTED = "persisted"
    PERSIST_FAILED = "persist_failed"
    DISPATCHED = "dispatched"
    RESPONDED = "responded"


@dataclass
class IngestOutcome:
    """Resultado de un request aceptado."""
    record: EventRecord
    kv_ok: bool
    kv_error: Optional[str] = None
    deliveries: List[ChannelResult] = field(default_factory=list)
    states: List[PipelineState] = field(default_factory=list)

    def to_response(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "ok": True,
            "id": self.record.id,
            "kvOk": self.kv_ok,
            "channels": [r.to_dict() for r in self.deliveries],
        }
        if self.kv_error:
            body["kvError"] = self.kv_error
        return body


def parse_body(body: RawBody) -> Dict[str, Any]:
    """Acepta un objeto tal cual; str/bytes se decodifican como JSON.

    Raises:
        MalformedInputError: JSON inválido o que no es un objeto
    """
    if isinstance(body, Mapping):
        return dict(body)

    if body is None:
        return {}
    if isinstance(body, bytes):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedInputError("Body is not valid UTF-8") from e
    if not isinstance(body, str):
        raise MalformedInputError("Unsupported body type")
    if not body.strip():
        return {}

    try:
        data = json.loads(body)
    except ValueError as e:
        raise MalformedInputError(f"Invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise MalformedInputError("JSON body must be an object")
    return data


def _device_timestamp(raw: Any) -> Optional[int]:
    # Valor opaco del dispositivo: se conserva si es numérico, si no se descarta.
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    try:
        value = float(raw)
    except (TypeError, ValueError, OverflowError):
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    return int(value)


class IngestionPipeline:
    """Orquesta un request de ingesta de principio a fin."""

    def __init__(
        self,
        *,
        secret: Optional[str],
        store: Optional[HistoryStore],
        dispatcher: ChannelDispatcher,
        extractor: Optional[MetricExtractor] = None,
        renderer: Optional[NotificationRenderer] = None,
        clock: Callable[[], int] = now_ms,
    ):
        self._secret = secret
        self._store = store
        self._dispatcher = dispatcher
        self._extractor = extractor or MetricExtractor()
        self._renderer = renderer or NotificationRenderer()
        self._clock = clock

    def build_record(self, payload: Mapping[str, Any]) -> EventRecord:
        received_at = self._clock()
        msg = payload.get("msg")
        message = msg if isinstance(msg, str) else ("" if msg is None else str(msg))

        return EventRecord(
            id=new_event_id(received_at),
            event_type=str(payload.get("event") or "unknown"),
            message=message,
            received_at=received_at,
            device_timestamp=_device_timestamp(payload.get("ts")),
            metrics=self._extractor.extract(payload),
        )

    def process(self, secret_header: Optional[str], body: RawBody) -> IngestOutcome:
        """Ejecuta el pipeline completo.

        Raises:
            AuthorizationError: secreto ausente o incorrecto (sin efectos)
            MalformedInputError: body no decodificable (sin efectos)
        """
        states = [PipelineState.UNAUTHENTICATED]

        verify_shared_secret(secret_header, self._secret)
        states.append(PipelineState.AUTHENTICATED)

        payload = parse_body(body)
        states.append(PipelineState.PARSED)

        record = self.build_record(payload)
        states.append(PipelineState.EXTRACTED)
        logger.info(
            "[ALERT] Received id=%s event=%s metrics=%s",
            record.id,
            record.event_type,
            {k: v for k, v in record.metrics.to_dict().items() if v is not None},
        )

        # Persistencia en paralelo con la entrega; ninguna bloquea a la otra.
        with ThreadPoolExecutor(max_workers=1, thread_name_prefix="persist") as pool:
            persist_future = pool.submit(self._persist, record)
            deliveries = self._dispatch(record)
            kv_error = persist_future.result()

        kv_ok = kv_error is None
        states.append(PipelineState.PERSISTED if kv_ok else PipelineState.PERSIST_FAILED)
        states.append(PipelineState.DISPATCHED)
        states.append(PipelineState.RESPONDED)

        return IngestOutcome(
            record=record,
            kv_ok=kv_ok,
            kv_error=kv_error,
            deliveries=deliveries,
            states=states,
        )

    def _persist(self, record: EventRecord) -> Optional[str]:
        """Devuelve None si se guardó, o la descripción del error."""
        if self._store is None:
            logger.warning("[ALERT] History store unavailable id=%s", record.id)
            return "store unavailable"
        try:
            self._store.append(record)
        except StoreError as e:
            logger.warning("[ALERT] History append failed id=%s err=%s", record.id, e)
            return str(e)
        except Exception as e:
            logger.exception("[ALERT] Unexpected history error id=%s", record.id)
            return type(e).__name__
        return None

    def _render(self, record: EventRecord) -> Dict[RenderMode, ChannelPayload]:
        """Un payload por modo; un modo que falla no afecta a los demás.

        Los canales del modo fallido quedan sin payload y el dispatcher
        los reporta como fallidos.
        """
        payloads: Dict[RenderMode, ChannelPayload] = {}
        for mode in self._dispatcher.modes:
            try:
                payloads[mode] = self._renderer.render(record, mode)
            except Exception:
                logger.exception("[ALERT] Render failed id=%s mode=%s", record.id, mode.value)
        return payloads

    def _dispatch(self, record: EventRecord) -> List[ChannelResult]:
        try:
            return self._dispatcher.dispatch(record, self._render(record))
        except Exception:
            # La entrega nunca cambia la respuesta al dispositivo.
            logger.exception("[ALERT] Dispatch crashed id=%s", record.id)
            return []
