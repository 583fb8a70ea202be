"""Tests for building an importer from the environment."""

from unittest.mock import patch

import pytest
from neo4j.exceptions import ServiceUnavailable

from graph_import.error_classification import BOLT_TRANSIENT_POLICY
from graph_import.errors import RetryableImportError
from graph_import.events import LoggingEventSink, RecordingEventSink
from graph_import.factory import open_importer_from_env
from tests._support.migration_defs import person_record, person_vertex


def test_opens_and_closes_bolt_driver(monkeypatch):
    """Settings come from the environment and the driver is closed on exit."""
    monkeypatch.setenv("GRAPH_TARGET_URI", "bolt://graph:7687")
    monkeypatch.setenv("GRAPH_TARGET_PASSWORD", "secret")
    monkeypatch.setenv("GRAPH_IMPORT_CDC", "true")

    with patch("graph_import.factory.load_dotenv"), patch(
        "graph_import.bolt.GraphDatabase.driver"
    ) as mock_driver:
        with open_importer_from_env() as importer:
            assert importer.config.cdc is True
            assert isinstance(importer.event_sink, LoggingEventSink)

    mock_driver.assert_called_once_with("bolt://graph:7687", auth=("neo4j", "secret"))
    mock_driver.return_value.close.assert_called_once_with()


def test_missing_uri_fails_before_connecting():
    """Without a target URI no driver is created."""
    with patch("graph_import.factory.load_dotenv"), patch(
        "graph_import.bolt.GraphDatabase.driver"
    ) as mock_driver:
        with pytest.raises(KeyError):
            with open_importer_from_env():
                pass
    mock_driver.assert_not_called()


def test_bolt_connection_drops_are_retried(monkeypatch):
    """A defunct Bolt connection is retried on fresh sessions before giving up."""
    monkeypatch.setenv("GRAPH_TARGET_URI", "bolt://graph:7687")
    monkeypatch.setenv("GRAPH_IMPORT_RETRY_BACKOFF_SECONDS", "0")
    sink = RecordingEventSink()

    with patch("graph_import.factory.load_dotenv"), patch(
        "graph_import.bolt.GraphDatabase.driver"
    ) as mock_driver:
        session = mock_driver.return_value.session.return_value
        session.begin_transaction.return_value.run.side_effect = ServiceUnavailable(
            "Failed to read from defunct connection"
        )
        with open_importer_from_env(event_sink=sink) as importer:
            assert importer.config.transient_policy is BOLT_TRANSIENT_POLICY
            count = importer.import_vertex(person_vertex(), [person_record(1)])

    assert count == 0
    assert mock_driver.return_value.session.call_count == 4
    assert len(sink.events) == 1
    assert isinstance(sink.events[0].error, RetryableImportError)
