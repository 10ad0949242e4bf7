"""Renderizado de EventRecord para los canales de notificación.

Dos modos:

- REPORT: asunto + texto plano + HTML con tabla de métricas
  (email). Solo filas de métricas presentes; no se inventan
  conversiones de unidad en la tabla.
- DIGEST: una línea compacta para canales con límite de longitud
  (SMS vía gateway, chat). Único lugar donde se deriva C↔F, solo para
  mostrar; nunca se escribe de vuelta en el MetricSet.

Todo el escape HTML pasa por ``_esc``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from html import escape
from typing import List, Optional, Tuple, Union

from ..core.domain.event import EventRecord, MetricSet

# Valores de ts del dispositivo por encima de esto se tratan como ms.
DEVICE_TS_MS_THRESHOLD = 100_000_000_000


class RenderMode(str, Enum):
    REPORT = "report"
    DIGEST = "digest"


@dataclass(frozen=True)
class ReportPayload:
    subject: str
    text: str
    html: str


@dataclass(frozen=True)
class DigestPayload:
    text: str


ChannelPayload = Union[ReportPayload, DigestPayload]


# =============================================================================
# Helpers de formato
# =============================================================================

def _esc(value: object) -> str:
    return escape(str(value), quote=True)


def _single_line(value: str) -> str:
    # Asunto de email y digest no admiten saltos de línea.
    return " ".join(part for part in value.splitlines() if part)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def c_to_f(temp_c: float) -> float:
    return temp_c * 9.0 / 5.0 + 32.0


def f_to_c(temp_f: float) -> float:
    return (temp_f - 32.0) * 5.0 / 9.0


def iso_from_ms(epoch_ms: int) -> str:
    dt = datetime.fromtimestamp(epoch_ms / 1000.0, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def device_ts_iso(device_ts: Optional[int]) -> str:
    """ISO-8601 del ts del dispositivo, o ``n/a``.

    El valor es opaco: >= 1e11 se interpreta como ms, si no como
    segundos. Valores fuera de rango se muestran crudos.
    """
    if device_ts is None:
        return "n/a"
    epoch_ms = device_ts if abs(device_ts) >= DEVICE_TS_MS_THRESHOLD else device_ts * 1000
    try:
        return iso_from_ms(epoch_ms)
    except (OverflowError, OSError, ValueError):
        return str(device_ts)


def metric_rows(metrics: MetricSet) -> List[Tuple[str, str]]:
    """Filas (etiqueta, valor) de las métricas presentes."""
    rows: List[Tuple[str, str]] = []

    temps = []
    if metrics.temperature_c is not None:
        temps.append(f"{metrics.temperature_c:.2f} °C")
    if metrics.temperature_f is not None:
        temps.append(f"{metrics.temperature_f:.2f} °F")
    if temps:
        rows.append(("Temperature", " / ".join(temps)))

    if metrics.humidity_percent is not None:
        rows.append(("Humidity", f"{metrics.humidity_percent:.2f} %"))
    if metrics.step_count is not None:
        rows.append(("Steps", f"{metrics.step_count}"))
    if metrics.heart_rate_bpm is not None:
        rows.append(("Heart Rate", f"{metrics.heart_rate_bpm:.1f} bpm"))
    return rows


# =============================================================================
# Modos
# =============================================================================

_CELL_STYLE = "padding:6px 10px;border:1px solid #ddd;"
_FONT_STACK = "system-ui,-apple-system,Segoe UI,Roboto,Helvetica,Arial,sans-serif"


def render_report(record: EventRecord) -> ReportPayload:
    event = _single_line(record.event_type)
    device_ts = device_ts_iso(record.device_timestamp)
    received = iso_from_ms(record.received_at)
    rows = metric_rows(record.metrics)

    text_lines = [
        f"EVENT: {event}",
        f"MSG: {record.message}",
        f"TS: {device_ts}",
        f"Received: {received}",
    ]
    text_lines.extend(f"{label}: {value}" for label, value in rows)

    table = ""
    if rows:
        cells = "\n".join(
            f'<tr><td style="{_CELL_STYLE}"><b>{_esc(label)}</b></td>'
            f'<td style="{_CELL_STYLE}">{_esc(value)}</td></tr>'
            for label, value in rows
        )
        table = (
            '<table cellpadding="0" cellspacing="0" '
            'style="border-collapse:collapse;border:1px solid #ddd;margin:10px 0;">\n'
            f"{cells}\n</table>"
        )

    message_html = "<br>".join(_esc(line) for line in record.message.split("\n"))

    html = (
        f'<div style="font-family:{_FONT_STACK};font-size:14px;line-height:1.45;">\n'
        f'<h2 style="margin:0 0 8px;">Device Alert: {_esc(event)}</h2>\n'
        f"{table}\n"
        '<h3 style="margin:14px 0 6px;">Message</h3>\n'
        '<div style="white-space:normal;border:1px solid #eee;background:#fafafa;padding:10px;">'
        f"{message_html}</div>\n"
        f'<p style="color:#666;margin-top:12px;">TS (device): {_esc(device_ts)}<br>'
        f"Received: {_esc(received)}</p>\n"
        "</div>"
    )

    return ReportPayload(subject=f"Device Alert: {event}", text="\n".join(text_lines), html=html)


def render_digest(record: EventRecord) -> DigestPayload:
    """``ALERT: <type> | T:<C>C/<F>F | H:<h>% | S:<s> | HR:<hr>``"""
    m = record.metrics
    segments = [f"ALERT: {_single_line(record.event_type)}"]

    temp_c, temp_f = m.temperature_c, m.temperature_f
    if temp_c is not None or temp_f is not None:
        if temp_c is None:
            temp_c = f_to_c(temp_f)
        if temp_f is None:
            temp_f = c_to_f(temp_c)
        # La conversión de un valor extremo puede desbordar a inf.
        if math.isfinite(temp_c) and math.isfinite(temp_f):
            segments.append(f"T:{round_half_up(temp_c)}C/{round_half_up(temp_f)}F")

    if m.humidity_percent is not None and math.isfinite(m.humidity_percent):
        segments.append(f"H:{round_half_up(m.humidity_percent)}%")
    if m.step_count is not None:
        segments.append(f"S:{m.step_count}")
    if m.heart_rate_bpm is not None and math.isfinite(m.heart_rate_bpm):
        segments.append(f"HR:{round_half_up(m.heart_rate_bpm)}")

    return DigestPayload(text=" | ".join(segments))


class NotificationRenderer:
    """Produce la representación adecuada para cada modo de canal."""

    def render(self, record: EventRecord, mode: RenderMode) -> ChannelPayload:
        if mode is RenderMode.REPORT:
            return render_report(record)
        if mode is RenderMode.DIGEST:
            return render_digest(record)
        raise ValueError(f"unknown render mode: {mode!r}")
