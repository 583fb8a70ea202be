"""Public entry points of the graph write engine."""

from __future__ import annotations

import logging
import threading
from typing import List, Optional, Sequence, Tuple

from graph_import.config import ImporterConfig
from graph_import.connection import ConnectionProvider, PreparedStatement
from graph_import.error_records import ErrorRecordsWriter
from graph_import.errors import JOIN_EDGE_MAPPING_MESSAGE, UnsupportedSchemaError
from graph_import.events import EventReporter, EventSink, ImportTarget, SingleRecordErrorEvent, target_kind
from graph_import.parameters import ParameterBinder, PositionalParameterBinder
from graph_import.projection import create_target_record
from graph_import.query_builder import (
    build_cdc_edge_create,
    build_edge_create,
    build_join_edge_create,
    build_vertex_create,
)
from graph_import.retry import RetryController
from graph_import.telemetry import import_metrics
from graph_import.transaction import TransactionUnit
from schema.migration import EdgeDef, EdgeKind, Record, VertexDef

logger = logging.getLogger(__name__)

RecordList = Optional[Sequence[Optional[Record]]]


def _present(records: RecordList) -> List[Record]:
    return [record for record in (records or ()) if record is not None]


class GraphImporter:
    """Writes vertices and edges of a migration run to a graph target.

    Every entry point returns the number of committed graph elements and
    reports outcomes to the event sink; import failures never propagate to
    the caller. Calls are synchronous and each one uses its own connection,
    so one importer may be shared by worker threads as long as the injected
    collaborators are thread-safe.
    """

    def __init__(
        self,
        connections: ConnectionProvider,
        event_sink: EventSink,
        config: Optional[ImporterConfig] = None,
        binder: Optional[ParameterBinder] = None,
        cancel_event: Optional[threading.Event] = None,
        error_records_writer: Optional[ErrorRecordsWriter] = None,
    ):
        """Wire the importer to its collaborators.

        Args:
            connections: Pooled target connection provider.
            event_sink: Receives import events.
            config: Run configuration; defaults to ``ImporterConfig()``.
            binder: Parameter binder; defaults to positional binding.
            cancel_event: Set to interrupt retry backoff for the whole run.
            error_records_writer: Spill writer for failed vertex batches;
                built from ``config.error_records_dir`` when omitted.
        """
        self.connections = connections
        self.event_sink = event_sink
        self.config = config or ImporterConfig()
        self.binder = binder or PositionalParameterBinder()
        self.cancel_event = cancel_event or threading.Event()
        self.error_records_writer = error_records_writer or ErrorRecordsWriter(
            self.config.error_records_dir
        )

    def _reporter(self, target: ImportTarget) -> EventReporter:
        return EventReporter(self.event_sink, kind=target_kind(target))

    def _unit(self, reporter: EventReporter) -> TransactionUnit:
        return TransactionUnit(self.connections, reporter, self.config.transient_policy)

    def _retry(self, reporter: EventReporter) -> RetryController:
        return RetryController(
            reporter,
            max_retries=self.config.max_retries,
            backoff_seconds=self.config.retry_backoff_seconds,
            cancel_event=self.cancel_event,
        )

    def import_vertex(self, vertex: VertexDef, records: RecordList) -> int:
        """Create one node per non-null record in a single batch.

        Returns:
            Number of nodes created, 0 on failure.
        """
        reporter = self._reporter(vertex)
        statement = build_vertex_create(vertex)
        if statement is None:
            logger.warning("Vertex %s has no importable column; skipped", vertex.label)
            reporter.report(SingleRecordErrorEvent(record=None, error=UnsupportedSchemaError()))
            return 0

        present = _present(records)
        import_metrics.record_attempted("vertex", len(present))
        unit = self._unit(reporter)

        def bind(record: Record, stmt: PreparedStatement) -> None:
            self.binder.bind(create_target_record(vertex, record), stmt)

        def spill() -> Optional[str]:
            if not self.config.write_error_records:
                return None
            return self.error_records_writer.write(
                vertex.label, [create_target_record(vertex, record) for record in present]
            )

        return self._retry(reporter).run(
            vertex,
            len(present),
            lambda: unit.execute_batched(vertex, statement, present, bind, on_failure=spill),
        )

    def import_edge(self, edge: EdgeDef, records: RecordList = None) -> int:
        """Create relationships for an edge.

        Join-table edges are created from the join-table rows in ``records``.
        Otherwise, with CDC enabled the relationships of the newly arrived
        rows in ``records`` are linked; without it every FK mapping is
        joined over the nodes already stored and ``records`` is ignored.
        """
        if edge.kind == EdgeKind.JOIN_TABLE:
            return self._import_join_edge(edge, records)
        if self.config.cdc:
            return self.import_cdc_edge(edge, records)
        return self._import_simple_edge(edge)

    def _import_simple_edge(self, edge: EdgeDef) -> int:
        reporter = self._reporter(edge)
        mapping_count = len(edge.fk_mappings)
        import_metrics.record_attempted(target_kind(edge), mapping_count)
        unit = self._unit(reporter)
        return self._retry(reporter).run(
            edge,
            mapping_count,
            lambda: unit.execute_per_item(
                edge, range(mapping_count), lambda index: build_edge_create(edge, index)
            ),
        )

    def _import_join_edge(self, edge: EdgeDef, records: RecordList) -> int:
        reporter = self._reporter(edge)
        statement = build_join_edge_create(edge)
        if statement is None:
            logger.warning(
                "Join edge %s has %d FK mappings; skipped", edge.edge_label, len(edge.fk_mappings)
            )
            reporter.report(
                SingleRecordErrorEvent(record=None, error=UnsupportedSchemaError(JOIN_EDGE_MAPPING_MESSAGE))
            )
            return 0

        present = _present(records)
        import_metrics.record_attempted(target_kind(edge), len(present))
        unit = self._unit(reporter)

        def bind(record: Record, stmt: PreparedStatement) -> None:
            self.binder.bind_edge_record(edge, record, stmt)

        return self._retry(reporter).run(
            edge,
            len(present),
            lambda: unit.execute_reused(edge, statement, present, bind),
        )

    def import_cdc_edge(self, edge: EdgeDef, records: RecordList) -> int:
        """Link newly arrived referenced rows to the nodes pointing at them.

        One statement is executed per record and FK mapping, narrowed to the
        referenced key value of the record.
        """
        reporter = self._reporter(edge)
        items = self._cdc_items(edge, records)
        import_metrics.record_attempted(target_kind(edge), len(items))

        def bind(item: Tuple[Record, int], stmt: PreparedStatement) -> None:
            record, index = item
            self.binder.bind_fk_lookup(edge.fk_mappings[index].ref_column, record, stmt)

        unit = self._unit(reporter)
        return self._retry(reporter).run(
            edge,
            len(edge.fk_mappings),
            lambda: unit.execute_per_item(
                edge, items, lambda item: build_cdc_edge_create(edge, item[1]), bind
            ),
        )

    def import_cdc_object(self, vertex: VertexDef, edge: EdgeDef, records: RecordList) -> int:
        """Link newly arrived rows of ``vertex`` through the FK edge ``edge``.

        Each record is a referencing row; its FK value narrows the statement
        to the referenced node. Failures are reported against the vertex.
        """
        vertex_reporter = self._reporter(vertex)
        edge_reporter = self._reporter(edge)
        items = self._cdc_items(edge, records)
        import_metrics.record_attempted("vertex", len(_present(records)))

        def bind(item: Tuple[Record, int], stmt: PreparedStatement) -> None:
            record, index = item
            self.binder.bind_fk_lookup(edge.fk_mappings[index].fk_column, record, stmt)

        unit = self._unit(edge_reporter)
        return self._retry(vertex_reporter).run(
            vertex,
            len(_present(records)),
            lambda: unit.execute_per_item(
                edge, items, lambda item: build_cdc_edge_create(edge, item[1]), bind
            ),
        )

    @staticmethod
    def _cdc_items(edge: EdgeDef, records: RecordList) -> List[Tuple[Record, int]]:
        return [
            (record, index)
            for record in _present(records)
            for index in range(len(edge.fk_mappings))
        ]
