"""Central logging configuration for Flow Navigator."""
from __future__ import annotations

import json
import sys
import time
from contextvars import ContextVar
from functools import wraps
from typing import Any, Dict

from loguru import logger
from prometheus_client import Counter, Histogram, start_http_server

from .config import settings

# Context variable for trace id so lower layers can attach it
trace_id_var: ContextVar[str | None] = ContextVar("trace_id", default=None)

_metrics_server_started = False


class JsonSink:
    """Loguru sink that outputs each record as a JSON line."""

    def __call__(self, message):  # type: ignore[override]
        record = message.record
        log_obj: Dict[str, Any] = {
            "timestamp": record["time"].isoformat(),
            "level": record["level"].name,
            "message": record["message"],
            **{k: _json_safe(v) for k, v in record["extra"].items()},
        }
        trace_id = trace_id_var.get()
        if trace_id:
            log_obj["traceId"] = trace_id
        sys.stdout.write(json.dumps(log_obj) + "\n")


def _json_safe(val: Any) -> Any:
    if isinstance(val, (str, int, float, bool)) or val is None:
        return val
    if isinstance(val, (list, tuple)):
        return [_json_safe(v) for v in val]
    if isinstance(val, dict):
        return {str(k): _json_safe(v) for k, v in val.items()}
    return str(val)


def configure_logging():
    """Apply JSON logging configuration. Safe to call multiple times."""

    global _metrics_server_started

    if any(isinstance(h, JsonSink) for _, h in logger._core.handlers.items()):  # type: ignore[attr-defined]
        return  # Already configured
    logger.remove()
    logger.add(JsonSink(), level=settings.log_level)

    if settings.enable_metrics and not _metrics_server_started:
        start_http_server(settings.metrics_port)
        _metrics_server_started = True


# Prometheus metrics
FLOW_STARTS_TOTAL = Counter("flow_starts_total", "Flow instances started", ["flow"])
NODE_COMPLETIONS_TOTAL = Counter(
    "flow_node_completions_total", "Node completions by resulting transition", ["flow", "outcome"]
)
FLOW_TERMINATIONS_TOTAL = Counter("flow_terminations_total", "Flow instances closed", ["flow", "reason"])
CONFIG_ERRORS_TOTAL = Counter("flow_config_errors_total", "Configuration errors reported by the engine")
STALE_CALLS_TOTAL = Counter("flow_stale_calls_total", "Calls discarded because they targeted a stale instance")
OPERATION_DURATION = Histogram("flow_operation_duration_seconds", "Engine operation duration", ["operation"])


def timed(name: str):
    """Record the wrapped call's duration in the histogram and at debug level."""

    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                return fn(*args, **kwargs)
            finally:
                elapsed = time.perf_counter() - start
                OPERATION_DURATION.labels(operation=name).observe(elapsed)
                logger.debug("perf| {} | {:.2f} ms", name, elapsed * 1000)
        return wrapper
    return decorator
