from typing import List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

from .column_def import ColumnDef


class VertexDef(BaseModel):
    """Graph node template derived from a relational table.

    Attributes:
        label: Target node label.
        owner: Source table reference (schema or table owner) the label maps from.
        columns: Ordered column descriptors of the source table.
    """

    label: str
    owner: Optional[str] = None
    columns: Tuple[ColumnDef, ...] = Field(default_factory=tuple)

    model_config = {"frozen": True}

    @field_validator("label")
    @classmethod
    def validate_label(cls, v: str) -> str:
        """Labels must be non-empty."""
        if not v or not v.strip():
            raise ValueError("vertex label must be non-empty")
        return v

    def get_column(self, name: str) -> Optional[ColumnDef]:
        """Return the column descriptor with the given name, if any."""
        for column in self.columns:
            if column.name == name:
                return column
        return None

    def selected_column_names(self) -> List[str]:
        """Return names of selected columns in declaration order."""
        return [column.name for column in self.columns if column.selected]

    def importable_columns(self) -> List[ColumnDef]:
        """Return columns that are both selected and graph-type supported."""
        return [column for column in self.columns if column.is_importable]
