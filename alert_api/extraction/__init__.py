"""Extracción de métricas desde payloads estructurados y texto libre."""

from .metric_extractor import MetricExtractor, MetricRule, extract_metrics

__all__ = ["MetricExtractor", "MetricRule", "extract_metrics"]
