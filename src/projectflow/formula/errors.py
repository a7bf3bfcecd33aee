"""Formula errors and sentinel values."""

from typing import Optional

# Returned in place of a computed value when evaluation fails
ERROR_VALUE = "#ERROR!"

# Returned when chained formulas reference each other in a loop
CYCLE_VALUE = "#CYCLE!"

SENTINEL_VALUES = frozenset({ERROR_VALUE, CYCLE_VALUE})


class FormulaError(Exception):
    """Base class for formula failures."""

    sentinel = ERROR_VALUE


class FormulaSyntaxError(FormulaError):
    """Raised when a formula cannot be tokenized or parsed."""

    def __init__(self, message: str, position: Optional[int] = None):
        self.position = position
        if position is not None:
            message = f"{message} (at position {position})"
        super().__init__(message)


class FormulaEvaluationError(FormulaError):
    """Raised when a parsed formula fails at evaluation time."""


class CircularReferenceError(FormulaError):
    """Raised when chained formulas form a cycle."""

    sentinel = CYCLE_VALUE

    def __init__(self, column_id: str):
        self.column_id = column_id
        super().__init__(f"Circular reference through column '{column_id}'")
