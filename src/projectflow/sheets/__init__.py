"""Sheet data model."""

from .models import (
    RESERVED_ROW_FIELDS,
    CellView,
    Column,
    ColumnType,
    Row,
    Sheet,
    is_formula,
)

__all__ = [
    "RESERVED_ROW_FIELDS",
    "CellView",
    "Column",
    "ColumnType",
    "Row",
    "Sheet",
    "is_formula",
]
