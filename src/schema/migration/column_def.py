from enum import Enum

from pydantic import BaseModel, field_validator


class GraphDataType(str, Enum):
    """Graph property type tags assigned to migrated columns.

    Only DATE and DATETIME change how a value is written; every other tag is
    passed through to the target as a plain scalar parameter.
    """

    DATE = "date"
    DATETIME = "datetime"
    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"


class ColumnDef(BaseModel):
    """Canonical representation of a source column mapped onto a graph property.

    Attributes:
        name: Source column name (may carry identifier quotes).
        selected: Whether the column participates in the migration.
        graph_type_supported: Whether the relational type has a graph mapping.
        graph_data_type: Graph type tag ("date", "datetime" or a scalar tag).
    """

    name: str
    selected: bool = True
    graph_type_supported: bool = True
    graph_data_type: str = GraphDataType.STRING.value

    model_config = {"frozen": True}

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Reject blank column names."""
        if not v or not v.strip():
            raise ValueError("column name must be non-empty")
        return v

    @field_validator("graph_data_type", mode="before")
    @classmethod
    def normalize_graph_data_type(cls, v):
        """Store enum members and mixed-case tags as lowercase strings."""
        if isinstance(v, GraphDataType):
            return v.value
        return str(v or GraphDataType.STRING.value).strip().lower()

    @property
    def is_importable(self) -> bool:
        """Return True when the column is both selected and graph-supported."""
        return self.selected and self.graph_type_supported

    @property
    def property_name(self) -> str:
        """Return the graph property key (identifier quotes stripped)."""
        return self.name.replace('"', "")
