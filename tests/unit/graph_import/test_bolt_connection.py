"""Tests for the Bolt target connection over mocked neo4j sessions."""

from unittest.mock import MagicMock, patch

import pytest
from neo4j.exceptions import ClientError, ServiceUnavailable

from graph_import.bolt import BoltConnectionProvider, BoltTargetConnection
from graph_import.error_classification import BOLT_TRANSIENT_POLICY, is_retryable
from graph_import.errors import RetryableImportError, TargetStatementError
from graph_import.query_builder import CypherStatement
from graph_import.transaction import target_connection


class _SyntaxError(ClientError):
    code = "Neo.ClientError.Statement.SyntaxError"
    message = "Invalid input"


def _statement(text="MATCH (n) RETURN count(n)"):
    return CypherStatement(text=text, placeholders=("p0",), parameter_columns=("id",))


def _summary(nodes=0, relationships=0):
    result = MagicMock()
    result.consume.return_value.counters.nodes_created = nodes
    result.consume.return_value.counters.relationships_created = relationships
    return result


class TestBoltTargetConnection:
    """Auto-commit and transaction handling on a session."""

    def test_autocommit_runs_on_session(self):
        """Auto-commit statements run as implicit transactions."""
        session = MagicMock()
        session.run.return_value.single.return_value = [3]
        connection = BoltTargetConnection(session)
        stmt = connection.prepare(_statement())
        stmt.set_parameters({"p0": 1})

        assert stmt.execute_query() == 3
        session.run.assert_called_once_with("MATCH (n) RETURN count(n)", {"p0": 1})
        session.begin_transaction.assert_not_called()

    def test_manual_commit_uses_one_transaction(self):
        """Statements share a lazily opened transaction until commit."""
        session = MagicMock()
        transaction = session.begin_transaction.return_value
        transaction.run.return_value.single.return_value = [1]
        connection = BoltTargetConnection(session)
        connection.autocommit = False

        stmt = connection.prepare(_statement())
        stmt.execute_query()
        stmt.execute_query()
        connection.commit()

        session.begin_transaction.assert_called_once_with()
        assert transaction.run.call_count == 2
        transaction.commit.assert_called_once_with()

    def test_enabling_autocommit_commits_open_transaction(self):
        """Switching auto-commit back on finishes pending work."""
        session = MagicMock()
        connection = BoltTargetConnection(session)
        connection.autocommit = False
        connection.run("RETURN 1", {})

        connection.autocommit = True

        session.begin_transaction.return_value.commit.assert_called_once_with()
        assert connection.autocommit is True

    def test_rollback_without_transaction_is_noop(self):
        """Rolling back with nothing open does not touch the session."""
        session = MagicMock()
        BoltTargetConnection(session).rollback()
        session.begin_transaction.assert_not_called()

    def test_execute_batch_counts_created_elements(self):
        """Each queued parameter set runs once and reports created elements."""
        session = MagicMock()
        session.run.side_effect = [_summary(nodes=1), _summary(nodes=1, relationships=1)]
        stmt = BoltTargetConnection(session).prepare(_statement("CREATE (n:A {id: $p0}) RETURN n"))

        stmt.set_parameters({"p0": 1})
        stmt.add_batch()
        stmt.set_parameters({"p0": 2})
        stmt.add_batch()

        assert stmt.execute_batch() == [1, 2]
        assert session.run.call_count == 2

    def test_execute_query_without_row_returns_zero(self):
        """An empty result counts as zero."""
        session = MagicMock()
        session.run.return_value.single.return_value = None
        assert BoltTargetConnection(session).prepare(_statement()).execute_query() == 0

    def test_neo4j_error_is_translated_with_code(self):
        """Server errors surface as TargetStatementError carrying the code."""
        session = MagicMock()
        error = _SyntaxError("Invalid input")
        session.run.side_effect = error
        stmt = BoltTargetConnection(session).prepare(_statement())

        with pytest.raises(TargetStatementError) as excinfo:
            stmt.execute_query()

        assert excinfo.value.error_code == "Neo.ClientError.Statement.SyntaxError"
        assert excinfo.value.__cause__ is error

    def test_driver_error_is_retryable_under_bolt_policy(self):
        """Transport failures keep their cause for classification."""
        session = MagicMock()
        session.run.side_effect = ServiceUnavailable("Unable to connect")
        stmt = BoltTargetConnection(session).prepare(_statement())

        with pytest.raises(TargetStatementError) as excinfo:
            stmt.execute_query()

        assert is_retryable(excinfo.value, BOLT_TRANSIENT_POLICY) is True

    def test_close_closes_transaction_and_session(self):
        """Closing discards the open transaction before closing the session."""
        session = MagicMock()
        connection = BoltTargetConnection(session)
        connection.autocommit = False
        connection.run("RETURN 1", {})

        connection.close()

        session.begin_transaction.return_value.close.assert_called_once_with()
        session.close.assert_called_once_with()


class TestBoltConnectionProvider:
    """Session acquisition from the driver pool."""

    def test_acquire_uses_configured_database(self):
        """Sessions target the configured database."""
        driver = MagicMock()
        provider = BoltConnectionProvider(driver, database="graph")

        connection = provider.acquire_target_connection()
        provider.release(connection)

        driver.session.assert_called_once_with(database="graph")
        driver.session.return_value.close.assert_called_once_with()

    def test_acquire_without_database(self):
        """Without a database the driver default is used."""
        driver = MagicMock()
        BoltConnectionProvider(driver).acquire_target_connection()
        driver.session.assert_called_once_with()

    def test_from_uri_builds_driver(self):
        """The driver is created with basic auth."""
        with patch("graph_import.bolt.GraphDatabase.driver") as mock_driver:
            provider = BoltConnectionProvider.from_uri("bolt://localhost:7687", "neo4j", "pw")

        mock_driver.assert_called_once_with("bolt://localhost:7687", auth=("neo4j", "pw"))
        assert provider.driver is mock_driver.return_value
        provider.close()
        mock_driver.return_value.close.assert_called_once_with()


def test_close_on_defunct_connection_does_not_raise():
    """Close failures are logged so an in-flight error is not replaced."""
    session = MagicMock()
    transaction = session.begin_transaction.return_value
    transaction.close.side_effect = ServiceUnavailable("Failed to write to defunct connection")
    session.close.side_effect = ServiceUnavailable("Failed to write to defunct connection")
    connection = BoltTargetConnection(session)
    connection.autocommit = False
    connection.run("RETURN 1", {})

    connection.close()

    transaction.close.assert_called_once_with()
    session.close.assert_called_once_with()


def test_release_during_retryable_failure_keeps_original_error():
    """A failing close inside the connection scope does not mask the retryable error."""
    driver = MagicMock()
    session = driver.session.return_value
    session.begin_transaction.return_value.rollback.side_effect = ServiceUnavailable("defunct")
    session.close.side_effect = ServiceUnavailable("defunct")
    provider = BoltConnectionProvider(driver)

    with pytest.raises(RetryableImportError):
        with target_connection(provider) as connection:
            connection.run("RETURN 1", {})
            raise RetryableImportError(TargetStatementError("defunct connection"))

    session.close.assert_called_once_with()
