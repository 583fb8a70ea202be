"""The acquire/prepare/execute/commit-or-rollback/release cycle.

All import modes share one ``TransactionUnit``; they differ only in how a
statement is built and bound for each item and in how results aggregate:

* batched: one statement, every record queued, executed and committed once;
* per item: a statement per item, committed (or rolled back) per item;
* reused: one statement re-bound per record, committed once at the end.

Statement failures are classified. A dropped connection is wrapped in
``RetryableImportError`` and propagated to the retry loop; any other
statement failure rolls back the current unit of work, is reported, and
processing continues where the strategy allows it.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Callable, Iterator, Optional, Sequence, TypeVar

from graph_import.connection import ConnectionProvider, PreparedStatement, TargetConnection
from graph_import.error_classification import (
    DEFAULT_TRANSIENT_POLICY,
    TransientFailurePolicy,
    classify_import_error,
    log_classified_error,
)
from graph_import.errors import ImportCountMismatchError, RetryableImportError, TargetStatementError
from graph_import.events import (
    EventReporter,
    ImportCountMismatchEvent,
    ImportGraphRecordsEvent,
    ImportTarget,
    SingleRecordErrorEvent,
    target_name,
)
from graph_import.query_builder import CypherStatement
from graph_import.telemetry import trace_statement
from schema.migration import Record

logger = logging.getLogger(__name__)

T = TypeVar("T")

Binder = Callable[[T, PreparedStatement], None]


@contextmanager
def target_connection(provider: ConnectionProvider) -> Iterator[TargetConnection]:
    """Acquire a connection with auto-commit disabled for the block.

    On every exit path unfinished work is rolled back (unexpected errors
    only), the original auto-commit mode is restored and the connection is
    released.
    """
    connection = provider.acquire_target_connection()
    restore_autocommit = False
    try:
        if connection.autocommit:
            connection.autocommit = False
            restore_autocommit = True
        yield connection
    except BaseException:
        try:
            connection.rollback()
        except Exception as rollback_exc:
            logger.warning("Rollback after failed import unit failed: %s", rollback_exc)
        raise
    finally:
        try:
            if restore_autocommit:
                connection.autocommit = True
        except Exception as restore_exc:
            logger.warning("Restoring auto-commit failed: %s", restore_exc)
        finally:
            provider.release(connection)


@contextmanager
def prepared(connection: TargetConnection, statement: CypherStatement) -> Iterator[PreparedStatement]:
    """Prepare a statement and close it when the block exits."""
    stmt = connection.prepare(statement)
    try:
        yield stmt
    finally:
        stmt.close()


class TransactionUnit:
    """Runs import work against one pooled connection per call."""

    def __init__(
        self,
        connections: ConnectionProvider,
        reporter: EventReporter,
        policy: TransientFailurePolicy = DEFAULT_TRANSIENT_POLICY,
    ):
        """Share a connection provider, event reporter and transient policy."""
        self.connections = connections
        self.reporter = reporter
        self.policy = policy

    def execute_batched(
        self,
        target: ImportTarget,
        statement: CypherStatement,
        records: Sequence[Optional[Record]],
        bind: Binder[Record],
        on_failure: Optional[Callable[[], Optional[str]]] = None,
    ) -> int:
        """Queue every non-null record on one statement and execute it once.

        A record that cannot be bound is reported on its own and skipped. If
        the affected count differs from the number of non-null records a
        mismatch event is reported besides the success event.

        Args:
            target: Vertex or edge being imported.
            statement: Built statement shared by all records.
            records: Source records; None entries are skipped.
            bind: Binds one record onto the prepared statement.
            on_failure: Called after a failed execution; may return the path
                of an error-records file to attach to the failure event.

        Returns:
            Number of graph elements written.
        """
        attempted = 0
        queued = 0
        with target_connection(self.connections) as connection:
            with prepared(connection, statement) as stmt:
                for record in records:
                    if record is None:
                        continue
                    attempted += 1
                    try:
                        bind(record, stmt)
                        stmt.add_batch()
                        queued += 1
                    except TargetStatementError as exc:
                        self._raise_if_retryable(exc, "bind")
                        self.reporter.report(SingleRecordErrorEvent(record=record, error=exc))
                    except Exception as exc:
                        logger.warning("Skipping record for %s: %s", target_name(target), exc)
                        self.reporter.report(SingleRecordErrorEvent(record=record, error=exc))

                if queued == 0:
                    affected = 0
                else:
                    try:
                        counts = trace_statement(
                            "graph_import.execute_batch",
                            target_name(target),
                            statement.text,
                            stmt.execute_batch,
                        )
                        self._commit(connection)
                    except TargetStatementError as exc:
                        self._rollback_unit(connection, exc, "execute_batch")
                        error_file = on_failure() if on_failure else None
                        self.reporter.report(
                            ImportGraphRecordsEvent(
                                target=target, count=attempted, error=exc, error_file=error_file
                            )
                        )
                        return 0
                    affected = sum(counts)

        if affected != attempted:
            self.reporter.report(
                ImportCountMismatchEvent(
                    target=target,
                    attempted=attempted,
                    affected=affected,
                    error=ImportCountMismatchError(attempted, affected),
                )
            )
        if affected > 0:
            self.reporter.report(ImportGraphRecordsEvent(target=target, count=affected))
        return affected

    def execute_per_item(
        self,
        target: ImportTarget,
        items: Sequence[T],
        build: Callable[[T], CypherStatement],
        bind: Optional[Binder[T]] = None,
    ) -> int:
        """Execute and commit one statement per item, continuing past failures.

        Returns:
            Sum of the count rows returned by the committed items.
        """
        total = 0
        with target_connection(self.connections) as connection:
            for item in items:
                statement = build(item)
                with prepared(connection, statement) as stmt:
                    try:
                        if bind is not None:
                            bind(item, stmt)
                        count = trace_statement(
                            "graph_import.execute_query",
                            target_name(target),
                            statement.text,
                            stmt.execute_query,
                        )
                        self._commit(connection)
                    except TargetStatementError as exc:
                        self._rollback_unit(connection, exc, "execute_query")
                        self.reporter.report(ImportGraphRecordsEvent(target=target, count=1, error=exc))
                        continue
                total += count
                if count > 0:
                    self.reporter.report(ImportGraphRecordsEvent(target=target, count=count))
        return total

    def execute_reused(
        self,
        target: ImportTarget,
        statement: CypherStatement,
        records: Sequence[Optional[Record]],
        bind: Binder[Record],
    ) -> int:
        """Re-bind one prepared statement per record and commit once at the end.

        Returns:
            Running total of the count rows, or 0 when the unit was rolled back.
        """
        pending = [record for record in records if record is not None]
        total = 0
        with target_connection(self.connections) as connection:
            with prepared(connection, statement) as stmt:
                try:
                    for record in pending:
                        bind(record, stmt)
                        total += trace_statement(
                            "graph_import.execute_query",
                            target_name(target),
                            statement.text,
                            stmt.execute_query,
                        )
                        stmt.clear_parameters()
                    self._commit(connection)
                except TargetStatementError as exc:
                    self._rollback_unit(connection, exc, "execute_query")
                    self.reporter.report(
                        ImportGraphRecordsEvent(target=target, count=len(pending), error=exc)
                    )
                    return 0

        if total > 0:
            self.reporter.report(ImportGraphRecordsEvent(target=target, count=total))
        return total

    def _commit(self, connection: TargetConnection) -> None:
        connection.commit()

    def _raise_if_retryable(self, exc: TargetStatementError, operation: str) -> None:
        info = classify_import_error(exc, self.policy)
        log_classified_error(operation, exc, info)
        if info.is_retryable:
            raise RetryableImportError(exc) from exc

    def _rollback_unit(self, connection: TargetConnection, exc: TargetStatementError, operation: str) -> None:
        """Propagate connectivity failures; otherwise roll back the current unit."""
        self._raise_if_retryable(exc, operation)
        try:
            connection.rollback()
        except TargetStatementError as rollback_exc:
            self._raise_if_retryable(rollback_exc, "rollback")
            raise
