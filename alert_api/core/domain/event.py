"""Modelo de dominio para eventos de dispositivo."""

from __future__ import annotations

import secrets
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


def now_ms() -> int:
    """Hora del servidor en epoch milisegundos."""
    return int(time.time() * 1000)


def new_event_id(received_at: int) -> str:
    """Id único: hora de recepción + sufijo aleatorio.

    Solo identifica; el orden lo da received_at.
    """
    return f"{received_at}-{secrets.token_hex(4)}"


@dataclass(frozen=True)
class MetricSet:
    """Vitales extraídos de un evento.

    None significa "desconocido", distinto de 0. Celsius y Fahrenheit se
    guardan tal como se observaron: nunca se derivan uno del otro aquí.
    """
    temperature_c: Optional[float] = None
    temperature_f: Optional[float] = None
    humidity_percent: Optional[float] = None
    step_count: Optional[int] = None
    heart_rate_bpm: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "temperatureC": self.temperature_c,
            "temperatureF": self.temperature_f,
            "humidityPercent": self.humidity_percent,
            "stepCount": self.step_count,
            "heartRateBpm": self.heart_rate_bpm,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MetricSet":
        steps = data.get("stepCount")
        return cls(
            temperature_c=_opt_float(data.get("temperatureC")),
            temperature_f=_opt_float(data.get("temperatureF")),
            humidity_percent=_opt_float(data.get("humidityPercent")),
            step_count=int(steps) if steps is not None else None,
            heart_rate_bpm=_opt_float(data.get("heartRateBpm")),
        )


@dataclass(frozen=True)
class EventRecord:
    """Evento ingerido - modelo canónico e inmutable.

    Este es el contrato que fluye por todo el pipeline:
    HTTP → Extracción → Historial (Redis) → Render → Canales
    """
    id: str
    event_type: str
    message: str
    received_at: int
    device_timestamp: Optional[int] = None
    metrics: MetricSet = field(default_factory=MetricSet)

    def to_dict(self) -> Dict[str, Any]:
        """Formato JSON persistido y expuesto por la API (camelCase)."""
        return {
            "id": self.id,
            "eventType": self.event_type,
            "message": self.message,
            "deviceTimestamp": self.device_timestamp,
            "receivedAt": self.received_at,
            "metrics": self.metrics.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EventRecord":
        """Reconstruye un registro persistido.

        Raises:
            KeyError, TypeError, ValueError: si el dict no tiene la forma esperada
        """
        metrics = data.get("metrics") or {}
        if not isinstance(metrics, dict):
            raise TypeError(f"metrics must be an object, got {type(metrics).__name__}")
        device_ts = data.get("deviceTimestamp")
        return cls(
            id=str(data["id"]),
            event_type=str(data["eventType"]),
            message=str(data.get("message", "")),
            received_at=int(data["receivedAt"]),
            device_timestamp=int(device_ts) if device_ts is not None else None,
            metrics=MetricSet.from_dict(metrics),
        )


def _opt_float(value: Any) -> Optional[float]:
    return float(value) if value is not None else None
