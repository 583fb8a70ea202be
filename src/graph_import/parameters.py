"""Binding of record values onto built statement placeholders."""

from __future__ import annotations

from typing import Any, Dict, Protocol, Sequence, Union

from graph_import.connection import PreparedStatement
from graph_import.query_builder import CypherStatement
from schema.migration import EdgeDef, Record


class ParameterBinder(Protocol):
    """Maps record values onto a prepared statement's placeholders."""

    def bind(self, record: Record, statement: PreparedStatement) -> None:
        """Bind a record onto the statement's placeholders."""
        ...

    def bind_fk_lookup(
        self,
        column_names: Union[str, Sequence[str]],
        record: Record,
        statement: PreparedStatement,
    ) -> None:
        """Bind the named key columns of a record, in placeholder order."""
        ...

    def bind_edge_record(self, edge: EdgeDef, record: Record, statement: PreparedStatement) -> None:
        """Bind a join-table row onto a join edge statement."""
        ...


class PositionalParameterBinder:
    """Default binder following the placeholder order recorded by the builder.

    ``$p0`` receives the value of the first source column recorded on the
    built statement, ``$p1`` the second, and so on. Values are looked up by
    column name, so the record order does not matter. Temporal values are
    passed unchanged; the statement text wraps them in ``date()``/``datetime()``.
    """

    def bind(self, record: Record, statement: PreparedStatement) -> None:
        """Bind a record onto the statement's placeholders."""
        built = statement.statement
        statement.set_parameters(self._values(built, built.parameter_columns, record))

    def bind_fk_lookup(
        self,
        column_names: Union[str, Sequence[str]],
        record: Record,
        statement: PreparedStatement,
    ) -> None:
        """Bind the named key columns of a record, in placeholder order."""
        if isinstance(column_names, str):
            column_names = [column_names]
        statement.set_parameters(self._values(statement.statement, column_names, record))

    def bind_edge_record(self, edge: EdgeDef, record: Record, statement: PreparedStatement) -> None:
        """Bind a join-table row: both FK values first, then property columns."""
        columns = edge.fk_column_names()[:2] + [column.name for column in edge.columns]
        statement.set_parameters(self._values(statement.statement, columns, record))

    @staticmethod
    def _values(
        built: CypherStatement, column_names: Sequence[str], record: Record
    ) -> Dict[str, Any]:
        if len(column_names) != len(built.placeholders):
            raise ValueError(
                f"Statement expects {len(built.placeholders)} parameters, "
                f"got {len(column_names)} columns."
            )
        return {
            name: record.get_value(column)
            for name, column in zip(built.placeholders, column_names)
        }
