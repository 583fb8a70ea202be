from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator, model_validator

from .column_def import ColumnDef


class EdgeKind(str, Enum):
    """Cardinality shape of a migrated relationship."""

    SIMPLE = "simple"
    TWO_WAY = "two_way"
    JOIN_TABLE = "join_table"


class FkMapping(BaseModel):
    """Pairing of a referencing column with the column it references."""

    fk_column: str
    ref_column: str

    model_config = {"frozen": True}


class EdgeDef(BaseModel):
    """Graph relationship template derived from a foreign key or a join table.

    Simple and two-way edges process each FK mapping independently. Join-table
    edges collapse a many-to-many association table and expect exactly two
    mappings, one per side; ``columns`` then lists the join-table columns that
    are carried as relationship properties.
    """

    start_label: str
    end_label: str
    edge_label: str
    kind: EdgeKind = EdgeKind.SIMPLE
    fk_mappings: Tuple[FkMapping, ...]
    columns: Tuple[ColumnDef, ...] = Field(default_factory=tuple)

    model_config = {"frozen": True}

    @field_validator("start_label", "end_label", "edge_label")
    @classmethod
    def validate_labels(cls, v: str) -> str:
        """Labels must be non-empty."""
        if not v or not v.strip():
            raise ValueError("edge labels must be non-empty")
        return v

    @model_validator(mode="after")
    def validate_mappings(self) -> "EdgeDef":
        """An edge needs at least one FK mapping to locate its endpoints."""
        if not self.fk_mappings:
            raise ValueError(f"edge '{self.edge_label}' has no foreign key mappings")
        return self

    @property
    def is_self_referencing(self) -> bool:
        """Return True when both endpoints share the same vertex label."""
        return self.start_label == self.end_label

    def fk_column_names(self) -> List[str]:
        """Return referencing column names in mapping order."""
        return [mapping.fk_column for mapping in self.fk_mappings]

    def ref_column_for(self, fk_column: str) -> Optional[str]:
        """Return the referenced column for a referencing column."""
        for mapping in self.fk_mappings:
            if mapping.fk_column == fk_column:
                return mapping.ref_column
        return None
