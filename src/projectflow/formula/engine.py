"""Formula evaluation and sheet recompute.

Failures never leave this module: a formula that cannot be parsed or
evaluated yields the ``#ERROR!`` sentinel for its own cell and the rest of
the sheet computes normally.
"""

import logging
from typing import Any, Iterable, Mapping, Optional, Sequence, Union

from ..config import Settings, settings as default_settings
from ..sheets.models import RESERVED_ROW_FIELDS, CellView, Column, Row, Sheet, is_formula
from .ast import Conditional, FunctionCall, Node, Reference, walk
from .cache import FormulaCache
from .errors import ERROR_VALUE, SENTINEL_VALUES, FormulaError
from .evaluator import EvaluationContext, FormulaEvaluator
from .models import FormulaAnalysis
from .parser import FormulaParser
from .references import ColumnLike, coerce_columns

logger = logging.getLogger(__name__)

SheetLike = Union[Sheet, Mapping[str, Any]]


class FormulaEngine:
    """Evaluates formula cells for a sheet.

    The engine holds configuration only; every call is independent and
    deterministic for the same rows and columns.
    """

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or default_settings
        self.evaluator = FormulaEvaluator()

    def parse(self, expression: str) -> Node:
        """Parse the expression part of a formula (without the leading '=')."""
        return FormulaParser(max_depth=self.config.max_formula_depth).parse(expression)

    def evaluate_formula(
        self,
        formula: Any,
        current_row: Row,
        all_rows: Sequence[Row],
        columns: Iterable[ColumnLike],
    ) -> Any:
        """
        Evaluate a single formula against a row.

        Args:
            formula: Raw cell value; anything not starting with '=' is returned unchanged
            current_row: The row the formula belongs to
            all_rows: Every row of the sheet, for aggregates
            columns: The sheet's columns, for reference resolution

        Returns:
            The computed number, string or boolean, or a sentinel string
            ("#ERROR!", "#CYCLE!") when evaluation fails
        """
        if not is_formula(formula):
            return formula
        return self._evaluate(formula, current_row, all_rows, coerce_columns(columns))

    def _evaluate(
        self,
        formula: str,
        row: Row,
        rows: Sequence[Row],
        columns: Sequence[Column],
        origin: Optional[str] = None,
    ) -> Any:
        if len(formula) > self.config.max_formula_length:
            logger.warning(
                f"Formula length ({len(formula)}) exceeds limit "
                f"of {self.config.max_formula_length} characters"
            )
            return ERROR_VALUE

        context = EvaluationContext(
            row=row,
            rows=rows,
            columns=columns,
            chain_parser=self.parse if self.config.formula_chaining else None,
            visited=frozenset({origin}) if origin else frozenset(),
        )
        try:
            tree = self.parse(formula[1:])
            return self.evaluator.evaluate(tree, context)
        except FormulaError as e:
            logger.warning(f"Formula error: {formula!r}: {e}")
            return e.sentinel
        except (ArithmeticError, RecursionError, ValueError) as e:
            logger.warning(f"Formula error: {formula!r}: {type(e).__name__}: {e}")
            return ERROR_VALUE

    def compute_sheet_data(
        self,
        sheet: SheetLike,
        cache: Optional[FormulaCache] = None,
    ) -> list[Row]:
        """
        Recompute every formula cell of a sheet.

        Args:
            sheet: A Sheet, or a mapping with "rows" and "columns"
            cache: Optional memo; only consulted when the sheet has both an
                id and a revision, so one cache can serve many sheets

        Returns:
            New rows in the same order, formula cells replaced by their values.
            Input rows are never modified.
        """
        if isinstance(sheet, Sheet):
            sheet_id, revision = sheet.id, sheet.revision
            rows, raw_columns = sheet.rows, sheet.columns
        else:
            rows = sheet.get("rows") or []
            raw_columns = sheet.get("columns") or []
            sheet_id = sheet.get("id")
            revision = sheet.get("revision")
        columns = coerce_columns(raw_columns)

        use_cache = cache is not None and sheet_id is not None and revision is not None
        if use_cache:
            cache.invalidate_before(sheet_id, revision)

        computed_rows = []
        formula_count = 0

        for row in rows:
            computed = dict(row)
            for column in columns:
                if column.id in RESERVED_ROW_FIELDS:
                    continue
                value = row.get(column.id)
                if not is_formula(value):
                    continue
                formula_count += 1

                if use_cache and "id" in row:
                    key = FormulaCache.make_key(sheet_id, revision, row["id"], column.id, value)
                    found, result = cache.get(key)
                    if not found:
                        result = self._evaluate(value, row, rows, columns, origin=column.id)
                        cache.store(key, result)
                else:
                    result = self._evaluate(value, row, rows, columns, origin=column.id)
                computed[column.id] = result
            computed_rows.append(computed)

        logger.debug(f"Computed {formula_count} formula cells across {len(rows)} rows")
        return computed_rows

    def build_cell_views(
        self,
        raw_rows: Sequence[Row],
        computed_rows: Sequence[Row],
        columns: Iterable[ColumnLike],
    ) -> list[CellView]:
        """
        Pair each cell's raw value with its computed value.

        Rows are matched by position, which compute_sheet_data preserves.
        """
        columns = coerce_columns(columns)
        views = []
        for raw_row, computed_row in zip(raw_rows, computed_rows):
            for column in columns:
                raw = raw_row.get(column.id)
                value = computed_row.get(column.id)
                formula = is_formula(raw)
                views.append(
                    CellView(
                        row_id=str(raw_row["id"]) if raw_row.get("id") is not None else None,
                        column_id=column.id,
                        raw=raw,
                        value=value,
                        is_formula=formula,
                        is_error=formula and isinstance(value, str) and value in SENTINEL_VALUES,
                    )
                )
        return views

    def analyze_formula(self, formula: str) -> FormulaAnalysis:
        """
        Parse a formula without evaluating it.

        Args:
            formula: The formula text, including the leading '='

        Returns:
            FormulaAnalysis with the referenced columns and functions, or
            the syntax error that prevents evaluation
        """
        if not is_formula(formula):
            return FormulaAnalysis(formula=formula, is_formula=False, valid=True)

        errors = []
        if len(formula) > self.config.max_formula_length:
            errors.append(
                f"Formula length ({len(formula)}) exceeds limit "
                f"of {self.config.max_formula_length} characters"
            )
            return FormulaAnalysis(formula=formula, is_formula=True, valid=False, errors=errors)

        try:
            tree = self.parse(formula[1:])
        except FormulaError as e:
            return FormulaAnalysis(formula=formula, is_formula=True, valid=False, errors=[str(e)])

        references = []
        functions = []
        for node in walk(tree):
            if isinstance(node, Reference) and node.name not in references:
                references.append(node.name)
            elif isinstance(node, FunctionCall) and node.name not in functions:
                functions.append(node.name)
            elif isinstance(node, Conditional) and node.function and node.function not in functions:
                functions.append(node.function)

        return FormulaAnalysis(
            formula=formula,
            is_formula=True,
            valid=True,
            references=references,
            functions=functions,
        )


# Default engine built from the global settings
_engine: Optional[FormulaEngine] = None


def get_engine() -> FormulaEngine:
    """Get the default engine instance."""
    global _engine
    if _engine is None:
        _engine = FormulaEngine()
    return _engine


def evaluate_formula(
    formula: Any,
    current_row: Row,
    all_rows: Sequence[Row],
    columns: Iterable[ColumnLike],
) -> Any:
    """Evaluate a single formula with the default engine."""
    return get_engine().evaluate_formula(formula, current_row, all_rows, columns)


def compute_sheet_data(sheet: SheetLike, cache: Optional[FormulaCache] = None) -> list[Row]:
    """Recompute a sheet's formula cells with the default engine."""
    return get_engine().compute_sheet_data(sheet, cache=cache)
