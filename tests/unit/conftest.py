"""Unit test environment helpers."""

import os

import pytest

_IMPORT_ENV_PREFIXES = ("GRAPH_IMPORT_", "GRAPH_TARGET_")


@pytest.fixture(autouse=True)
def _minimal_env(monkeypatch):
    """Clear import settings and keep telemetry off for unit tests."""
    for name in list(os.environ):
        if name.startswith(_IMPORT_ENV_PREFIXES):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.delenv("OTEL_EXPORTER_OTLP_ENDPOINT", raising=False)
    monkeypatch.setenv("GRAPH_IMPORT_TRACE_STATEMENTS", "false")
    monkeypatch.setenv("GRAPH_IMPORT_METRICS_ENABLED", "false")
    yield
