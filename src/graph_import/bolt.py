"""Bolt (neo4j driver) implementation of the target connection contracts.

Works against Neo4j and Memgraph. The driver's own connection pool backs
``BoltConnectionProvider``; one session is held per acquired connection.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Mapping, Optional

from neo4j import Driver, GraphDatabase, Session, Transaction
from neo4j.exceptions import DriverError, Neo4jError

from graph_import.errors import TargetStatementError
from graph_import.query_builder import CypherStatement

logger = logging.getLogger(__name__)

BOLT_PROVIDER = "bolt"


@contextmanager
def _translate_errors() -> Iterator[None]:
    """Re-raise driver failures as ``TargetStatementError`` with their code."""
    try:
        yield
    except Neo4jError as exc:
        raise TargetStatementError(
            exc.message or str(exc), error_code=getattr(exc, "code", None)
        ) from exc
    except DriverError as exc:
        raise TargetStatementError(str(exc)) from exc


class BoltPreparedStatement:
    """Client-side prepared statement: Cypher text plus queued parameter sets."""

    def __init__(self, connection: "BoltTargetConnection", statement: CypherStatement):
        """Bind the statement to its owning connection."""
        self.statement = statement
        self._connection = connection
        self._parameters: Dict[str, Any] = {}
        self._batch: List[Dict[str, Any]] = []
        self._closed = False

    def set_parameters(self, parameters: Mapping[str, Any]) -> None:
        """Replace the current parameter values."""
        self._parameters = dict(parameters)

    def clear_parameters(self) -> None:
        """Drop the current parameter values."""
        self._parameters = {}

    def add_batch(self) -> None:
        """Queue the current parameters for ``execute_batch``."""
        self._batch.append(dict(self._parameters))

    def execute_batch(self) -> List[int]:
        """Run each queued parameter set and report created elements per run."""
        counts = []
        batch, self._batch = self._batch, []
        for parameters in batch:
            with _translate_errors():
                summary = self._connection.run(self.statement.text, parameters).consume()
            counters = summary.counters
            counts.append(counters.nodes_created + counters.relationships_created)
        return counts

    def execute_query(self) -> int:
        """Run with the current parameters and return the single count column."""
        with _translate_errors():
            record = self._connection.run(self.statement.text, self._parameters).single()
        if record is None:
            return 0
        return int(record[0] or 0)

    def close(self) -> None:
        """Discard queued parameters."""
        self._batch = []
        self._parameters = {}
        self._closed = True


class BoltTargetConnection:
    """A neo4j session exposed with JDBC-like auto-commit semantics.

    With auto-commit on, each statement runs in its own implicit transaction.
    With auto-commit off, statements join an explicit transaction opened
    lazily and finished by ``commit`` or ``rollback``.
    """

    def __init__(self, session: Session):
        """Wrap an open driver session."""
        self._session = session
        self._transaction: Optional[Transaction] = None
        self._autocommit = True

    @property
    def autocommit(self) -> bool:
        """Return True when statements commit individually."""
        return self._autocommit

    @autocommit.setter
    def autocommit(self, value: bool) -> None:
        """Switch auto-commit; enabling it commits any open transaction."""
        if value and self._transaction is not None:
            self.commit()
        self._autocommit = bool(value)

    def prepare(self, statement: CypherStatement) -> BoltPreparedStatement:
        """Prepare a built statement on this connection."""
        return BoltPreparedStatement(self, statement)

    def run(self, text: str, parameters: Mapping[str, Any]):
        """Run Cypher on the session or the open explicit transaction."""
        if self._autocommit:
            return self._session.run(text, dict(parameters))
        if self._transaction is None:
            self._transaction = self._session.begin_transaction()
        return self._transaction.run(text, dict(parameters))

    def commit(self) -> None:
        """Commit the open explicit transaction, if any."""
        transaction, self._transaction = self._transaction, None
        if transaction is not None:
            with _translate_errors():
                transaction.commit()

    def rollback(self) -> None:
        """Roll back the open explicit transaction, if any."""
        transaction, self._transaction = self._transaction, None
        if transaction is not None:
            with _translate_errors():
                transaction.rollback()

    def close(self) -> None:
        """Roll back unfinished work and close the session.

        Failures on a defunct connection are logged, not raised, so they never
        replace an error already propagating through the caller.
        """
        transaction, self._transaction = self._transaction, None
        if transaction is not None:
            try:
                transaction.close()
            except Exception as exc:
                logger.warning("Closing graph transaction failed: %s", exc)
        try:
            self._session.close()
        except Exception as exc:
            logger.warning("Closing graph session failed: %s", exc)


class BoltConnectionProvider:
    """Connection provider backed by the neo4j driver's connection pool."""

    def __init__(self, driver: Driver, database: Optional[str] = None):
        """Use an existing driver; ``database`` selects the target database."""
        self.driver = driver
        self.database = database

    @classmethod
    def from_uri(
        cls, uri: str, user: str, password: str, database: Optional[str] = None
    ) -> "BoltConnectionProvider":
        """Create a provider with its own driver."""
        driver = GraphDatabase.driver(uri, auth=(user, password))
        logger.info("Connected graph import target at %s", uri)
        return cls(driver, database=database)

    def acquire_target_connection(self) -> BoltTargetConnection:
        """Open a session from the driver pool."""
        if self.database:
            session = self.driver.session(database=self.database)
        else:
            session = self.driver.session()
        return BoltTargetConnection(session)

    def release(self, connection: BoltTargetConnection) -> None:
        """Close the session, returning its connection to the driver pool."""
        connection.close()

    def close(self) -> None:
        """Close the driver."""
        self.driver.close()
