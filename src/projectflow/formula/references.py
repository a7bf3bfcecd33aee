"""Resolve [Column] references to columns and cell values."""

import logging
from typing import Any, Iterable, Mapping, Optional, Union

from pydantic import ValidationError

from ..sheets.models import Column, Row, is_formula

logger = logging.getLogger(__name__)

ColumnLike = Union[Column, Mapping[str, Any]]


def find_column(name: str, columns: Iterable[Column]) -> Optional[Column]:
    """
    Find the column a reference token names.

    Titles are matched before ids; both comparisons are exact and
    case-sensitive.

    Args:
        name: The text between the brackets of a [Column] token
        columns: The sheet's columns

    Returns:
        The matching Column, or None if nothing matches
    """
    columns = list(columns)
    for column in columns:
        if column.title == name:
            return column
    for column in columns:
        if column.id == name:
            return column
    return None


def cell_value(row: Row, column: Column) -> Any:
    """Get the raw value of a row's cell for a column."""
    return row.get(column.id)


def resolve_scalar(value: Any) -> Any:
    """
    Convert a raw cell value into a value usable inside an expression.

    Numbers and booleans pass through, plain strings stay strings. Formula
    strings and anything else (missing cells, comment lists) become 0.
    """
    if isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, str):
        return 0 if is_formula(value) else value
    return 0


def coerce_columns(columns: Iterable[ColumnLike]) -> list[Column]:
    """Build Column models from models or plain mappings, skipping invalid ones."""
    result = []
    for column in columns:
        if isinstance(column, Column):
            result.append(column)
            continue
        try:
            result.append(Column.model_validate(column))
        except ValidationError as e:
            logger.warning(f"Skipping invalid column {column!r}: {e}")
    return result
