"""Extractor de métricas.

Cada campo de MetricSet tiene una lista ORDENADA de reglas
(fuente, función). Se evalúan en orden hasta que una devuelve un valor:

    1. campo estructurado del payload (clave canónica, luego alias)
    2. patrón sobre el texto libre ``msg``

Así la precedencia "estructurado antes que texto" es una política
explícita y testeable, no un efecto del orden de expresiones.

La extracción nunca lanza excepciones: un número mal formado equivale
a "sin match" y el campo queda sin resolver (None, nunca 0).
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from ..core.domain.event import MetricSet

logger = logging.getLogger(__name__)

SOURCE_STRUCTURED = "structured"
SOURCE_TEXT = "text"

Number = float

# Temperatura: C y F deben aparecer juntos en el mismo match.
TEMPERATURE_PATTERN = re.compile(r"Temp:\s*([\d.]+)\s*C\s*/\s*([\d.]+)\s*F", re.IGNORECASE)
HUMIDITY_PATTERN = re.compile(r"Humidity:\s*([\d.]+)", re.IGNORECASE)
STEPS_PATTERN = re.compile(r"Steps:\s*(\d+)", re.IGNORECASE)
HEART_RATE_PATTERN = re.compile(r"Heart\s*Rate:\s*([\d.]+)", re.IGNORECASE)


@dataclass(frozen=True)
class MetricRule:
    """Una fuente candidata para un campo."""
    source: str
    extract: Callable[[Mapping[str, Any], str], Optional[Number]]
    description: str = ""


# =============================================================================
# Parsers numéricos
# =============================================================================

def _parse_float(raw: Any) -> Optional[float]:
    # bool es subclase de int: un True no es una medición.
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, str):
        raw = raw.strip()
    elif not isinstance(raw, (int, float)):
        return None
    try:
        value = float(raw)
    except (ValueError, OverflowError):
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    return value


def _parse_int(raw: Any) -> Optional[int]:
    value = _parse_float(raw)
    if value is None or not value.is_integer():
        return None
    return int(value)


# =============================================================================
# Fuentes
# =============================================================================

def structured(key: str, parser: Callable[[Any], Optional[Number]] = _parse_float) -> MetricRule:
    def _extract(payload: Mapping[str, Any], _message: str) -> Optional[Number]:
        return parser(payload.get(key))

    return MetricRule(SOURCE_STRUCTURED, _extract, description=key)


def text(
    pattern: re.Pattern,
    group: int = 1,
    parser: Callable[[Any], Optional[Number]] = _parse_float,
) -> MetricRule:
    def _extract(_payload: Mapping[str, Any], message: str) -> Optional[Number]:
        if not message:
            return None
        match = pattern.search(message)
        if match is None:
            return None
        return parser(match.group(group))

    return MetricRule(SOURCE_TEXT, _extract, description=pattern.pattern)


def _temperature_pair(message: str) -> Optional[Tuple[float, float]]:
    if not message:
        return None
    match = TEMPERATURE_PATTERN.search(message)
    if match is None:
        return None
    temp_c = _parse_float(match.group(1))
    temp_f = _parse_float(match.group(2))
    if temp_c is None or temp_f is None:
        return None
    return temp_c, temp_f


def temperature_text(index: int) -> MetricRule:
    """Regla de texto para una de las dos unidades del par C/F."""

    def _extract(_payload: Mapping[str, Any], message: str) -> Optional[Number]:
        pair = _temperature_pair(message)
        return pair[index] if pair is not None else None

    return MetricRule(SOURCE_TEXT, _extract, description=TEMPERATURE_PATTERN.pattern)


DEFAULT_RULES: Dict[str, List[MetricRule]] = {
    "temperature_c": [structured("tempC"), temperature_text(0)],
    "temperature_f": [structured("tempF"), temperature_text(1)],
    "humidity_percent": [structured("humidity"), text(HUMIDITY_PATTERN)],
    "step_count": [
        structured("steps", parser=_parse_int),
        text(STEPS_PATTERN, parser=_parse_int),
    ],
    "heart_rate_bpm": [
        structured("heartRate"),
        structured("bpm"),
        text(HEART_RATE_PATTERN),
    ],
}


class MetricExtractor:
    """Deriva un MetricSet canónico desde un payload crudo."""

    def __init__(self, rules: Optional[Dict[str, List[MetricRule]]] = None):
        self._rules = rules if rules is not None else DEFAULT_RULES

    def extract(self, payload: Mapping[str, Any]) -> MetricSet:
        raw_message = payload.get("msg")
        message = raw_message if isinstance(raw_message, str) else ""

        values: Dict[str, Optional[Number]] = {}
        for field_name, rules in self._rules.items():
            values[field_name] = self._resolve(field_name, rules, payload, message)

        return MetricSet(**values)

    def _resolve(
        self,
        field_name: str,
        rules: List[MetricRule],
        payload: Mapping[str, Any],
        message: str,
    ) -> Optional[Number]:
        for rule in rules:
            try:
                value = rule.extract(payload, message)
            except Exception:
                # Una regla defectuosa no tumba la extracción completa.
                logger.exception("[EXTRACT] rule failed field=%s source=%s", field_name, rule.source)
                continue
            if value is not None:
                logger.debug(
                    "[EXTRACT] %s=%s source=%s (%s)",
                    field_name,
                    value,
                    rule.source,
                    rule.description,
                )
                return value
        return None


_default_extractor = MetricExtractor()


def extract_metrics(payload: Mapping[str, Any]) -> MetricSet:
    """Atajo con las reglas por defecto."""
    return _default_extractor.extract(payload)
