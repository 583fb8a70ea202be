"""Optional OTEL tracing and low-cardinality metrics for graph imports.

Both are disabled unless their env switch is set or an OTLP exporter is
configured, so unit runs never touch a collector.
"""

from __future__ import annotations

import hashlib
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, TypeVar

from opentelemetry import metrics, trace

from common.config.env import get_env_bool

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRACE_ENV_VAR = "GRAPH_IMPORT_TRACE_STATEMENTS"
METRICS_ENV_VAR = "GRAPH_IMPORT_METRICS_ENABLED"


def is_otel_exporter_configured() -> bool:
    """Return True when OTEL exporter environment indicates external export."""
    if get_env_bool("OTEL_DISABLE_EXPORTER", False):
        return False
    endpoint = (os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT") or "").strip()
    return bool(endpoint)


def is_enabled(env_var: str) -> bool:
    """Resolve enablement: an explicit env switch wins over exporter defaults."""
    if os.getenv(env_var) is not None:
        try:
            return get_env_bool(env_var, False) is True
        except ValueError:
            logger.warning("Invalid %s value '%s'; telemetry disabled.", env_var, os.getenv(env_var))
            return False
    return is_otel_exporter_configured()


def _hash_statement(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def trace_statement(
    name: str,
    target: str,
    statement_text: str,
    operation: Callable[[], T],
) -> T:
    """Run a statement operation inside a span when tracing is enabled.

    Only a hash of the statement is attached; Cypher text can carry labels
    and property names that should not leave the process.
    """
    if not is_enabled(TRACE_ENV_VAR):
        return operation()

    tracer = trace.get_tracer("graph_import")
    with tracer.start_as_current_span(name) as span:
        span.set_attribute("graph.target", target)
        span.set_attribute("db.statement_hash", _hash_statement(statement_text))
        try:
            result = operation()
            span.set_attribute("db.status", "ok")
            return result
        except Exception:
            span.set_attribute("db.status", "error")
            raise


@dataclass
class ImportMetrics:
    """Counters for attempted, imported and failed graph elements."""

    meter_name: str = "graph-import"
    enabled_env_var: str = METRICS_ENV_VAR
    _meter: Any = None
    _counters: Dict[str, Any] = field(default_factory=dict)

    def add(self, name: str, value: int = 1, attributes: Optional[Dict[str, Any]] = None) -> None:
        """Add to a monotonic counter when metrics are enabled."""
        if value <= 0 or not is_enabled(self.enabled_env_var):
            return
        try:
            counter = self._counters.get(name)
            if counter is None:
                if self._meter is None:
                    self._meter = metrics.get_meter(self.meter_name)
                counter = self._meter.create_counter(name=name, unit="1")
                self._counters[name] = counter
            counter.add(int(value), {k: str(v) for k, v in (attributes or {}).items()})
        except Exception as exc:
            logger.debug("Counter metric emission failed for %s: %s", name, exc)

    def record_attempted(self, kind: str, count: int) -> None:
        """Count elements handed to an import entry point."""
        self.add("graph_import.attempted", count, {"kind": kind})

    def record_imported(self, kind: str, count: int) -> None:
        """Count elements written and committed."""
        self.add("graph_import.imported", count, {"kind": kind})

    def record_failed(self, kind: str, count: int = 1) -> None:
        """Count reported failures."""
        self.add("graph_import.failed", count, {"kind": kind})

    def record_retry(self, kind: str) -> None:
        """Count retry attempts after transient failures."""
        self.add("graph_import.retries", 1, {"kind": kind})


import_metrics = ImportMetrics()
