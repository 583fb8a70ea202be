"""Import outcome events and the sinks that receive them.

Every execution path of an import call reports the outcome of each unit of
work through exactly one event; the return value of the call carries only
the number of committed graph elements.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import List, Optional, Protocol, Union

from graph_import.telemetry import import_metrics
from schema.migration import EdgeDef, Record, VertexDef

logger = logging.getLogger(__name__)

ImportTarget = Union[VertexDef, EdgeDef]


def target_kind(target: Optional[ImportTarget]) -> str:
    """Return a low-cardinality kind name for a vertex or edge target."""
    if isinstance(target, VertexDef):
        return "vertex"
    if isinstance(target, EdgeDef):
        return f"edge_{target.kind.value}"
    return "unknown"


def target_name(target: Optional[ImportTarget]) -> str:
    """Return the label identifying a vertex or edge target."""
    if isinstance(target, VertexDef):
        return target.label
    if isinstance(target, EdgeDef):
        return target.edge_label
    return "<none>"


@dataclass(frozen=True)
class ImportGraphRecordsEvent:
    """Outcome of importing graph elements for one target.

    A success carries the number of written elements. A failure carries the
    attempted count, the error and, when error records were spilled, the
    file they were written to.
    """

    target: ImportTarget
    count: int
    error: Optional[BaseException] = None
    error_file: Optional[str] = None

    @property
    def is_success(self) -> bool:
        """Return True for a success event."""
        return self.error is None


@dataclass(frozen=True)
class SingleRecordErrorEvent:
    """A single record (or, with no record, the whole table) failed to import."""

    record: Optional[Record]
    error: BaseException

    @property
    def is_success(self) -> bool:
        """Record-level errors are never successes."""
        return False


@dataclass(frozen=True)
class ImportCountMismatchEvent:
    """A batched execution affected a different number of rows than attempted."""

    target: ImportTarget
    attempted: int
    affected: int
    error: Optional[BaseException] = None

    @property
    def is_success(self) -> bool:
        """Mismatches are reported as failures."""
        return False

    @property
    def missing(self) -> int:
        """Return how many attempted records were not written."""
        return self.attempted - self.affected


ImportEvent = Union[ImportGraphRecordsEvent, SingleRecordErrorEvent, ImportCountMismatchEvent]


class EventSink(Protocol):
    """Receives import events for reporting."""

    def handle_event(self, event: ImportEvent) -> None:
        """Handle one event."""
        ...


class LoggingEventSink:
    """Event sink that only logs."""

    def handle_event(self, event: ImportEvent) -> None:
        """Log the event at info level for successes and warning otherwise."""
        if event.is_success:
            logger.info(
                "Imported %s graph elements for %s",
                event.count,
                target_name(event.target),
            )
            return
        logger.warning("Graph import event: %s", describe_event(event))


class RecordingEventSink:
    """Thread-safe in-memory event sink, useful for callers and tests."""

    def __init__(self) -> None:
        """Start with no events."""
        self._lock = threading.Lock()
        self._events: List[ImportEvent] = []

    def handle_event(self, event: ImportEvent) -> None:
        """Append the event."""
        with self._lock:
            self._events.append(event)

    @property
    def events(self) -> List[ImportEvent]:
        """Return a snapshot of recorded events."""
        with self._lock:
            return list(self._events)

    def successes(self) -> List[ImportGraphRecordsEvent]:
        """Return recorded success events."""
        return [e for e in self.events if e.is_success]

    def failures(self) -> List[ImportEvent]:
        """Return recorded non-success events."""
        return [e for e in self.events if not e.is_success]

    def imported_count(self) -> int:
        """Return the sum of counts over success events."""
        return sum(e.count for e in self.successes())


def describe_event(event: ImportEvent) -> str:
    """Return a one-line description of an event for logs."""
    if isinstance(event, ImportCountMismatchEvent):
        return (
            f"count mismatch for {target_name(event.target)}: "
            f"attempted={event.attempted} affected={event.affected}"
        )
    if isinstance(event, SingleRecordErrorEvent):
        scope = "record" if event.record is not None else "table"
        return f"{scope} error: {event.error}"
    if event.is_success:
        return f"imported {event.count} for {target_name(event.target)}"
    suffix = f" (error records: {event.error_file})" if event.error_file else ""
    return f"failed {event.count} for {target_name(event.target)}: {event.error}{suffix}"


class EventReporter:
    """Forwards events to a sink, updating metrics and logs on the way."""

    def __init__(self, sink: EventSink, kind: str = "unknown"):
        """Wrap a sink; ``kind`` labels metrics for events without a target."""
        self.sink = sink
        self.kind = kind

    def report(self, event: ImportEvent) -> None:
        """Report one event."""
        kind = target_kind(getattr(event, "target", None))
        if kind == "unknown":
            kind = self.kind
        if isinstance(event, ImportGraphRecordsEvent) and event.is_success:
            import_metrics.record_imported(kind, event.count)
        else:
            import_metrics.record_failed(kind)
            logger.debug("graph_import_failure_event: %s", describe_event(event))
        self.sink.handle_event(event)
