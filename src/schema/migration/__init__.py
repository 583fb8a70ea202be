"""Migration definitions shared by the graph import engine."""

from .column_def import ColumnDef, GraphDataType
from .edge_def import EdgeDef, EdgeKind, FkMapping
from .record import ColumnValue, Record
from .vertex_def import VertexDef

__all__ = [
    "ColumnDef",
    "ColumnValue",
    "EdgeDef",
    "EdgeKind",
    "FkMapping",
    "GraphDataType",
    "Record",
    "VertexDef",
]
