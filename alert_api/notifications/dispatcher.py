"""Fan-out de un EventRecord a los canales configurados.

Cada par (canal, destino) es una tarea independiente en un
ThreadPoolExecutor. Un fallo en un destino se registra como
ChannelResult(ok=False) y no afecta a los demás. No hay reintentos.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from concurrent.futures import TimeoutError as FuturesTimeout
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from ..core.domain.event import EventRecord
from .channels import NotificationChannel
from .renderer import ChannelPayload, RenderMode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChannelResult:
    """Resultado de una entrega (solo para logs/observabilidad)."""
    channel: str
    destination: str
    ok: bool
    error: Optional[str] = None

    def to_dict(self) -> dict:
        data = {"channel": self.channel, "destination": self.destination, "ok": self.ok}
        if self.error is not None:
            data["error"] = self.error
        return data


class ChannelDispatcher:
    """Entrega concurrente con aislamiento de fallos por destino."""

    def __init__(
        self,
        channels: Sequence[NotificationChannel],
        *,
        timeout_seconds: float = 15.0,
        max_workers: int = 8,
    ):
        self._channels = list(channels)
        self._timeout = timeout_seconds
        self._max_workers = max(1, max_workers)

    @property
    def channels(self) -> List[NotificationChannel]:
        return list(self._channels)

    @property
    def modes(self) -> set:
        """Modos de render que necesitan los canales activos."""
        return {ch.mode for ch in self._channels if ch.enabled}

    def dispatch(
        self,
        record: EventRecord,
        payloads: Mapping[RenderMode, ChannelPayload],
    ) -> List[ChannelResult]:
        tasks: List[Tuple[NotificationChannel, str]] = [
            (ch, dest) for ch in self._channels if ch.enabled for dest in ch.destinations
        ]
        if not tasks:
            logger.info("[DISPATCH] No channels configured id=%s", record.id)
            return []

        t0 = time.monotonic()
        results: List[ChannelResult] = []
        pool = ThreadPoolExecutor(
            max_workers=min(self._max_workers, len(tasks)),
            thread_name_prefix="dispatch",
        )
        try:
            futures = {
                pool.submit(self._deliver_one, ch, dest, record, payloads.get(ch.mode)): (ch, dest)
                for ch, dest in tasks
            }
            pending: Dict = dict(futures)
            try:
                for fut in as_completed(futures, timeout=self._timeout):
                    pending.pop(fut, None)
                    results.append(fut.result())
            except FuturesTimeout:
                for fut, (ch, dest) in pending.items():
                    fut.cancel()
                    logger.warning(
                        "[DISPATCH] Timeout channel=%s dest=%s id=%s",
                        ch.name,
                        ch.describe(dest),
                        record.id,
                    )
                    results.append(ChannelResult(ch.name, ch.describe(dest), False, "timeout"))
        finally:
            # No esperar a entregas colgadas más allá del timeout.
            pool.shutdown(wait=False)

        ok_count = sum(1 for r in results if r.ok)
        logger.info(
            "[DISPATCH] id=%s deliveries=%d ok=%d failed=%d ms=%.1f",
            record.id,
            len(results),
            ok_count,
            len(results) - ok_count,
            (time.monotonic() - t0) * 1000,
        )
        return results

    @staticmethod
    def _deliver_one(
        channel: NotificationChannel,
        destination: str,
        record: EventRecord,
        payload: Optional[ChannelPayload],
    ) -> ChannelResult:
        label = channel.describe(destination)
        if payload is None:
            logger.error("[DISPATCH] Missing %s payload channel=%s", channel.mode.value, channel.name)
            return ChannelResult(channel.name, label, False, f"missing {channel.mode.value} payload")
        try:
            channel.deliver(record, payload, destination)
        except Exception as e:
            logger.error(
                "[DISPATCH] Delivery failed channel=%s dest=%s id=%s err=%s",
                channel.name,
                label,
                record.id,
                e,
            )
            return ChannelResult(channel.name, label, False, str(e) or type(e).__name__)
        return ChannelResult(channel.name, label, True)
