"""Observability: structured logging and metrics hooks for tusify."""

from __future__ import annotations

from .logger import StructuredFormatter, get_logger, log_fields
from .metrics import CollectingMetricsHook, MetricsHook, NoopMetricsHook

__all__ = [
    "CollectingMetricsHook",
    "MetricsHook",
    "NoopMetricsHook",
    "StructuredFormatter",
    "get_logger",
    "log_fields",
]
