"""Modelos de dominio."""

from .event import EventRecord, MetricSet, new_event_id, now_ms

__all__ = ["EventRecord", "MetricSet", "new_event_id", "now_ms"]
