from schema.migration import Record, VertexDef


def create_target_record(vertex: VertexDef, record: Record) -> Record:
    """Restrict a source record to the columns selected on the target vertex.

    Pairs for unselected or unknown columns are dropped silently. The result
    keeps the source record's order, not the vertex's column order, so values
    must be bound by column name.
    """
    selected = set(vertex.selected_column_names())
    return Record(
        column_values=tuple(cv for cv in record.column_values if cv.column.name in selected)
    )
