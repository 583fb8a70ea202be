"""Exception hierarchy for the graph import engine."""

from __future__ import annotations

from typing import Any, Optional

NO_SUPPORTED_COLUMN_MESSAGE = "There is not a single supported column in the table."
JOIN_EDGE_MAPPING_MESSAGE = "A join table edge requires exactly two foreign key mappings."
COUNT_MISMATCH_MESSAGE = "The number of imported graph elements differs from the attempted records."


class GraphImportError(Exception):
    """Base class for graph import failures."""


class TargetStatementError(GraphImportError):
    """Raised by target connections when the store rejects a request.

    Carries the vendor error code (integer or dotted status string) so the
    transient-failure classifier can match it against a policy.
    """

    def __init__(self, message: str, *, error_code: Optional[Any] = None) -> None:
        """Attach the vendor error code to the error instance."""
        super().__init__(message)
        self.error_code = error_code


class RetryableImportError(GraphImportError):
    """Wraps a transient connectivity failure so the retry loop can act on it."""

    def __init__(self, cause: BaseException) -> None:
        """Wrap the original driver error."""
        super().__init__(str(cause))
        self.cause = cause


class UnsupportedSchemaError(GraphImportError):
    """Raised (and reported, never propagated) when no statement can be built."""

    def __init__(self, message: str = NO_SUPPORTED_COLUMN_MESSAGE) -> None:
        """Initialize with the canonical unsupported-schema message."""
        super().__init__(message)


class ImportCountMismatchError(GraphImportError):
    """Describes a batched execution whose affected count differs from the attempt."""

    def __init__(self, attempted: int, affected: int) -> None:
        """Record attempted and affected counts."""
        super().__init__(f"{COUNT_MISMATCH_MESSAGE} attempted={attempted} affected={affected}")
        self.attempted = attempted
        self.affected = affected


class ImportCancelledError(GraphImportError):
    """Raised when the surrounding run is shut down during a retry backoff."""

    def __init__(self, message: str = "Import cancelled while waiting to retry.") -> None:
        """Initialize with a default cancellation message."""
        super().__init__(message)
