"""Target connection contracts consumed by the transaction unit.

Concrete implementations live beside their driver (see ``graph_import.bolt``).
Implementations raise ``TargetStatementError`` for any failure reported by
the store or the transport.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Protocol

from graph_import.query_builder import CypherStatement


class PreparedStatement(Protocol):
    """A statement bound to one connection, re-executable with new parameters."""

    statement: CypherStatement

    def set_parameters(self, parameters: Mapping[str, Any]) -> None:
        """Replace the current parameter values."""
        ...

    def clear_parameters(self) -> None:
        """Drop the current parameter values."""
        ...

    def add_batch(self) -> None:
        """Queue the current parameters for ``execute_batch``."""
        ...

    def execute_batch(self) -> List[int]:
        """Execute every queued parameter set; return affected elements per set."""
        ...

    def execute_query(self) -> int:
        """Execute with the current parameters; return the scalar count row."""
        ...

    def close(self) -> None:
        """Release statement resources."""
        ...


class TargetConnection(Protocol):
    """A live connection to the graph store."""

    autocommit: bool

    def prepare(self, statement: CypherStatement) -> PreparedStatement:
        """Prepare a built statement on this connection."""
        ...

    def commit(self) -> None:
        """Commit the current unit of work."""
        ...

    def rollback(self) -> None:
        """Discard the current unit of work."""
        ...


class ConnectionProvider(Protocol):
    """Pooled, blocking source of target connections."""

    def acquire_target_connection(self) -> TargetConnection:
        """Return a connection owned by the caller until released."""
        ...

    def release(self, connection: TargetConnection) -> None:
        """Return a connection to the pool."""
        ...
