"""Lightweight metrics helpers."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from anchor.observability import tracing

logger = logging.getLogger(__name__)

METRIC_PREFIX = "metric:anchor."


def log_metric(name: str, value: float | int, metadata: Optional[Dict[str, Any]] = None) -> None:
    """Record a metric as a short Opik trace; silently a no-op when tracing is off."""
    payload: Dict[str, Any] = {"value": value}
    if metadata:
        payload.update(metadata)
    with tracing.trace(f"{METRIC_PREFIX}{name}", metadata=payload):
        pass
