from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, Field

from .column_def import ColumnDef


class ColumnValue(BaseModel):
    """One (column, value) pair of a source row."""

    column: ColumnDef
    value: Any = None

    model_config = {"frozen": True}


class Record(BaseModel):
    """Ordered, immutable collection of column values representing one row.

    Filtering produces a new record; a record is never mutated in place.
    """

    column_values: Tuple[ColumnValue, ...] = Field(default_factory=tuple)

    model_config = {"frozen": True}

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[ColumnDef, Any]]) -> "Record":
        """Build a record from (column, value) pairs, preserving order."""
        return cls(column_values=tuple(ColumnValue(column=c, value=v) for c, v in pairs))

    @property
    def column_names(self) -> List[str]:
        """Return column names in record order."""
        return [cv.column.name for cv in self.column_values]

    def get_value(self, column_name: str) -> Optional[Any]:
        """Return the value stored for a column name, or None when absent."""
        for cv in self.column_values:
            if cv.column.name == column_name:
                return cv.value
        return None

    def has_column(self, column_name: str) -> bool:
        """Return True when the record carries a value for the column."""
        return any(cv.column.name == column_name for cv in self.column_values)

    def to_dict(self) -> Dict[str, Any]:
        """Return a plain ``{column_name: value}`` mapping in record order."""
        return {cv.column.name: cv.value for cv in self.column_values}