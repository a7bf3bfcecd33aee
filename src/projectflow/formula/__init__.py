"""Formula evaluation engine.

Formulas are cell strings starting with '='. They may use:
- Column references: [Column Title] or [columnId]
- Arithmetic, comparison and logical operators, ternaries
- Aggregates over all rows: SUM([Col]), COUNT([Col]), AVG([Col])
- Row-scoped dates: DATEDIFF([End], [Start])
- Conditionals: IF(condition, when_true, when_false)
"""

from .cache import FormulaCache
from .engine import FormulaEngine, compute_sheet_data, evaluate_formula, get_engine
from .errors import (
    CYCLE_VALUE,
    ERROR_VALUE,
    CircularReferenceError,
    FormulaError,
    FormulaEvaluationError,
    FormulaSyntaxError,
)
from .models import FormulaAnalysis
from .parser import FormulaParser, parse_expression
from .references import find_column

__all__ = [
    "FormulaCache",
    "FormulaEngine",
    "compute_sheet_data",
    "evaluate_formula",
    "get_engine",
    "CYCLE_VALUE",
    "ERROR_VALUE",
    "CircularReferenceError",
    "FormulaError",
    "FormulaEvaluationError",
    "FormulaSyntaxError",
    "FormulaAnalysis",
    "FormulaParser",
    "parse_expression",
    "find_column",
]
