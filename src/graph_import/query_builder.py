"""Cypher statement construction for the four graph write shapes.

Every builder is a pure function of its definition. Placeholders are named
``$p0, $p1, ...`` in emission order and each built statement records which
source column feeds each placeholder, so the parameter binder can bind by
column name while keeping the placeholder order. Builders return ``None``
when a definition cannot produce a valid statement; callers must check for
it before preparing anything.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from schema.migration import ColumnDef, EdgeDef, EdgeKind, GraphDataType, VertexDef

PLACEHOLDER_PREFIX = "p"
COUNT_COLUMN = "count(r)"

_PLACEHOLDER_RE = re.compile(r"\$" + PLACEHOLDER_PREFIX + r"(\d+)\b")


@dataclass(frozen=True)
class CypherStatement:
    """A built statement and the source column bound to each placeholder."""

    text: str
    placeholders: Tuple[str, ...] = ()
    parameter_columns: Tuple[str, ...] = ()

    def __str__(self) -> str:
        """Return the statement text."""
        return self.text


def placeholder(index: int) -> str:
    """Return the parameter name of the placeholder at ``index``."""
    return f"{PLACEHOLDER_PREFIX}{index}"


def count_placeholders(text: str) -> int:
    """Return the number of distinct ``$pN`` placeholders in statement text."""
    return len(set(_PLACEHOLDER_RE.findall(text)))


def wrap_placeholder(name: str, graph_data_type: str) -> str:
    """Wrap a placeholder in a temporal constructor for date/datetime columns."""
    if graph_data_type == GraphDataType.DATETIME.value:
        return f"datetime(${name})"
    if graph_data_type == GraphDataType.DATE.value:
        return f"date(${name})"
    return f"${name}"


def _property_map(columns: Iterable[ColumnDef], start_index: int) -> Tuple[str, List[str]]:
    entries = []
    sources = []
    for offset, column in enumerate(columns):
        name = placeholder(start_index + offset)
        entries.append(f"{column.property_name}: {wrap_placeholder(name, column.graph_data_type)}")
        sources.append(column.name)
    return ", ".join(entries), sources


def _relationship_pattern(edge: EdgeDef) -> str:
    if edge.kind == EdgeKind.TWO_WAY:
        return f"(m)-[r:{edge.edge_label}]->(n)"
    return f"(n)-[r:{edge.edge_label}]->(m)"


def build_vertex_create(vertex: VertexDef) -> Optional[CypherStatement]:
    """Build the node creation statement for a vertex.

    Only columns that are selected and graph-type supported are written.

    Returns:
        The statement, or None when the vertex has no importable column.
    """
    columns = vertex.importable_columns()
    if not columns:
        return None

    properties, sources = _property_map(columns, 0)
    text = f"CREATE (n:{vertex.label} {{{properties}}}) RETURN n"
    return CypherStatement(
        text=text,
        placeholders=tuple(placeholder(i) for i in range(len(sources))),
        parameter_columns=tuple(sources),
    )


def build_edge_create(edge: EdgeDef, index: int) -> CypherStatement:
    """Build the relationship creation statement for one FK mapping.

    The endpoints are joined on stored properties, so the statement takes no
    parameters. Two-way edges are created from the referenced node back to
    the referencing node.
    """
    mapping = edge.fk_mappings[index]
    text = (
        f"MATCH (n:{edge.start_label}), (m:{edge.end_label}) "
        f"WHERE n.{mapping.fk_column} = m.{mapping.ref_column} "
        f"CREATE {_relationship_pattern(edge)} "
        f"RETURN {COUNT_COLUMN}"
    )
    return CypherStatement(text=text)


def build_cdc_edge_create(edge: EdgeDef, index: int) -> CypherStatement:
    """Build the incremental relationship statement for one FK mapping.

    Same shape as ``build_edge_create`` with the referenced node narrowed to
    the key value of the newly arrived row, which is bound per record.
    """
    mapping = edge.fk_mappings[index]
    name = placeholder(0)
    text = (
        f"MATCH (n:{edge.start_label}), (m:{edge.end_label}) "
        f"WHERE n.{mapping.fk_column} = m.{mapping.ref_column} "
        f"AND m.{mapping.ref_column} = ${name} "
        f"CREATE {_relationship_pattern(edge)} "
        f"RETURN {COUNT_COLUMN}"
    )
    return CypherStatement(
        text=text,
        placeholders=(name,),
        parameter_columns=(mapping.ref_column,),
    )


def build_join_edge_create(edge: EdgeDef) -> Optional[CypherStatement]:
    """Build the relationship statement collapsing a many-to-many join table.

    Both endpoints are located by placeholder, bound from the two FK columns
    of each join-table row. For a self-referencing join the first predicate
    uses the second mapping's referenced column so both predicates resolve
    against distinct columns.

    Returns:
        The statement, or None when the edge does not have exactly two mappings.
    """
    if len(edge.fk_mappings) != 2:
        return None

    first, second = edge.fk_mappings
    start_ref = second.ref_column if edge.is_self_referencing else first.ref_column
    label = edge.edge_label.replace(" ", "_")

    properties, property_sources = _property_map(edge.columns, 2)
    body = f"r:{label} {{{properties}}}" if properties else f"r:{label}"
    text = (
        f"MATCH (n:{edge.start_label}), (m:{edge.end_label}) "
        f"WHERE n.{start_ref} = ${placeholder(0)} AND m.{second.ref_column} = ${placeholder(1)} "
        f"CREATE (n)-[{body}]->(m) "
        f"RETURN {COUNT_COLUMN}"
    )
    sources = [first.fk_column, second.fk_column] + property_sources
    return CypherStatement(
        text=text,
        placeholders=tuple(placeholder(i) for i in range(len(sources))),
        parameter_columns=tuple(sources),
    )
