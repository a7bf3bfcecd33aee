"""Data models for project sheets."""

from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field

# A row maps column ids to cell values, plus the reserved fields below
Row = dict[str, Any]

RESERVED_ROW_FIELDS = frozenset({"id", "comments", "attachments", "dependencies"})


class ColumnType(str, Enum):
    """Type of a sheet column."""

    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    DROPDOWN = "dropdown"
    CHECKBOX = "checkbox"
    STATUS = "status"


class Column(BaseModel):
    """Represents a sheet column."""

    id: str  # Stable machine key used in row data
    title: str  # Display label used inside [Title] references
    type: ColumnType = ColumnType.TEXT
    width: int = 120
    options: Optional[list[str]] = None  # For dropdowns


class Sheet(BaseModel):
    """A sheet's columns and raw rows."""

    id: Optional[str] = None
    columns: list[Column] = Field(default_factory=list)
    rows: list[Row] = Field(default_factory=list)
    revision: Optional[int] = None  # Bumped by the owner on every change


class CellView(BaseModel):
    """Raw and computed value of a single cell.

    Editors show ``raw`` (the formula text), viewers show ``value``.
    """

    row_id: Optional[str] = None
    column_id: str
    raw: Any = None
    value: Any = None
    is_formula: bool = False
    is_error: bool = False


def is_formula(value: Any) -> bool:
    """Check whether a raw cell value is a formula string."""
    return isinstance(value, str) and value.startswith("=")
