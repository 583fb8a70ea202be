"""Write-side engine loading relational rows into a graph store."""

from graph_import.bolt import BoltConnectionProvider
from graph_import.config import ImporterConfig, TargetConnectionSettings
from graph_import.errors import (
    GraphImportError,
    ImportCancelledError,
    ImportCountMismatchError,
    RetryableImportError,
    TargetStatementError,
    UnsupportedSchemaError,
)
from graph_import.events import (
    EventSink,
    ImportCountMismatchEvent,
    ImportGraphRecordsEvent,
    LoggingEventSink,
    RecordingEventSink,
    SingleRecordErrorEvent,
)
from graph_import.factory import open_importer_from_env
from graph_import.importer import GraphImporter

__all__ = [
    "BoltConnectionProvider",
    "EventSink",
    "GraphImportError",
    "GraphImporter",
    "ImportCancelledError",
    "ImportCountMismatchError",
    "ImportCountMismatchEvent",
    "ImportGraphRecordsEvent",
    "ImporterConfig",
    "LoggingEventSink",
    "RecordingEventSink",
    "RetryableImportError",
    "SingleRecordErrorEvent",
    "TargetConnectionSettings",
    "UnsupportedSchemaError",
    "open_importer_from_env",
]
