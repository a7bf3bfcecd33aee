"""Evaluate parsed formula expressions against a sheet row.

Values follow JavaScript semantics because sheet formulas were authored
against a JavaScript engine: ``+`` concatenates when either side is a
string, ``==`` compares loosely and ``&&``/``||`` return an operand.
"""

import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence

from ..sheets.models import Column, Row, is_formula
from .ast import BinaryOp, Conditional, FunctionCall, Literal, Node, Reference, UnaryOp
from .errors import CircularReferenceError, FormulaEvaluationError
from .functions import AGGREGATES, date_diff
from .references import cell_value, find_column, resolve_scalar

logger = logging.getLogger(__name__)

# String forms Number() accepts; anything else, "1_000" included, is NaN
DECIMAL_PATTERN = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
INTEGER_PATTERN = re.compile(r"[+-]?\d+")
HEX_PATTERN = re.compile(r"0[xX][0-9a-fA-F]+")


@dataclass
class EvaluationContext:
    """Everything a formula may read while it is evaluated."""

    row: Row
    rows: Sequence[Row]
    columns: Sequence[Column]
    # Parses referenced formulas when chaining is enabled, None disables it
    chain_parser: Optional[Callable[[str], Node]] = None
    visited: frozenset[str] = field(default_factory=frozenset)


def is_nan(value: Any) -> bool:
    return isinstance(value, float) and math.isnan(value)


def js_number(value: Any) -> float:
    """Convert a value to a number the way JavaScript's Number() does."""
    if isinstance(value, bool):
        return 1 if value else 0
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0
        if HEX_PATTERN.fullmatch(text):
            return int(text, 16)
        if not DECIMAL_PATTERN.fullmatch(text):
            return math.nan
        if INTEGER_PATTERN.fullmatch(text):
            try:
                return int(text)
            except ValueError:
                # Past the int string conversion limit
                pass
        return float(text)
    return math.nan


def to_text(value: Any) -> str:
    """Convert a value to a string the way JavaScript's String() does."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value)


def is_truthy(value: Any) -> bool:
    if is_nan(value):
        return False
    return bool(value)


def normalize(value: Any) -> Any:
    """Collapse integral floats to ints so 10/5 reads as 2."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _finite(value: Any, expression: str) -> Any:
    if isinstance(value, float) and not math.isfinite(value):
        raise FormulaEvaluationError(f"{expression} is not a finite number")
    return value


def loose_equals(left: Any, right: Any) -> bool:
    """JavaScript ``==`` for numbers, strings and booleans."""
    if isinstance(left, str) and isinstance(right, str):
        return left == right
    left_number, right_number = js_number(left), js_number(right)
    if is_nan(left_number) or is_nan(right_number):
        return False
    return left_number == right_number


def strict_equals(left: Any, right: Any) -> bool:
    """JavaScript ``===``: booleans never equal numbers."""
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    if isinstance(left, str) != isinstance(right, str):
        return False
    if is_nan(left) or is_nan(right):
        return False
    return left == right


def compare(op: str, left: Any, right: Any) -> bool:
    """Relational comparison, lexical for two strings and numeric otherwise."""
    if not (isinstance(left, str) and isinstance(right, str)):
        left, right = js_number(left), js_number(right)
        if is_nan(left) or is_nan(right):
            return False
    if op == "<":
        return left < right
    if op == "<=":
        return left <= right
    if op == ">":
        return left > right
    return left >= right


def arithmetic(op: str, left: Any, right: Any) -> Any:
    """Apply an arithmetic operator to two values."""
    if op == "+" and (isinstance(left, str) or isinstance(right, str)):
        return to_text(left) + to_text(right)

    left_number, right_number = js_number(left), js_number(right)
    description = f"{to_text(left)!r} {op} {to_text(right)!r}"
    if is_nan(left_number) or is_nan(right_number):
        raise FormulaEvaluationError(f"{description} is not a number")

    if op == "+":
        result = left_number + right_number
    elif op == "-":
        result = left_number - right_number
    elif op == "*":
        result = left_number * right_number
    elif op == "/":
        if right_number == 0:
            raise FormulaEvaluationError(f"Division by zero in {description}")
        result = left_number / right_number
    else:
        if right_number == 0:
            raise FormulaEvaluationError(f"Modulo by zero in {description}")
        result = math.fmod(left_number, right_number)
        if isinstance(left_number, int) and isinstance(right_number, int):
            result = int(result)
    return _finite(result, description)


class FormulaEvaluator:
    """Walk a formula AST and compute its value."""

    def evaluate(self, node: Node, context: EvaluationContext) -> Any:
        """
        Evaluate an expression tree.

        Args:
            node: Root of the parsed expression
            context: Row, sheet rows and columns the formula reads

        Returns:
            The computed number, string or boolean

        Raises:
            FormulaEvaluationError: On non-numeric arithmetic, division by
                zero or a non-finite result
            CircularReferenceError: If chained formulas loop back on themselves
        """
        result = self._eval(node, context)
        return normalize(_finite(result, "Formula result"))

    def _eval(self, node: Node, context: EvaluationContext) -> Any:
        if isinstance(node, Literal):
            return node.value
        if isinstance(node, Reference):
            return self._reference(node, context)
        if isinstance(node, UnaryOp):
            return self._unary(node, context)
        if isinstance(node, BinaryOp):
            return self._binary(node, context)
        if isinstance(node, Conditional):
            if is_truthy(self._eval(node.condition, context)):
                return self._eval(node.when_true, context)
            return self._eval(node.when_false, context)
        if isinstance(node, FunctionCall):
            return self._call(node, context)
        raise FormulaEvaluationError(f"Unsupported expression node {type(node).__name__}")

    def _reference(self, node: Reference, context: EvaluationContext) -> Any:
        column = find_column(node.name, context.columns)
        if column is None:
            logger.debug(f"Unresolved reference [{node.name}] substituted with 0")
            return 0

        value = cell_value(context.row, column)
        if is_formula(value) and context.chain_parser is not None:
            return self._chained(value, column, context)
        return resolve_scalar(value)

    def _chained(self, formula: str, column: Column, context: EvaluationContext) -> Any:
        if column.id in context.visited:
            raise CircularReferenceError(column.id)
        tree = context.chain_parser(formula[1:])
        child = EvaluationContext(
            row=context.row,
            rows=context.rows,
            columns=context.columns,
            chain_parser=context.chain_parser,
            visited=context.visited | {column.id},
        )
        return self.evaluate(tree, child)

    def _unary(self, node: UnaryOp, context: EvaluationContext) -> Any:
        value = self._eval(node.operand, context)
        if node.op == "!":
            return not is_truthy(value)
        number = js_number(value)
        if is_nan(number):
            raise FormulaEvaluationError(f"{node.op}{to_text(value)!r} is not a number")
        return -number if node.op == "-" else number

    def _binary(self, node: BinaryOp, context: EvaluationContext) -> Any:
        # Fold the left spine in a loop; chains of a thousand terms are legal
        spine = []
        current = node
        while isinstance(current, BinaryOp):
            spine.append(current)
            current = current.left

        value = self._eval(current, context)
        for link in reversed(spine):
            value = self._apply(link, value, context)
        return value

    def _apply(self, node: BinaryOp, left: Any, context: EvaluationContext) -> Any:
        op = node.op

        # Short-circuit, returning the deciding operand
        if op == "&&":
            return self._eval(node.right, context) if is_truthy(left) else left
        if op == "||":
            return left if is_truthy(left) else self._eval(node.right, context)

        right = self._eval(node.right, context)
        if op in ("==", "="):
            return loose_equals(left, right)
        if op in ("!=", "<>"):
            return not loose_equals(left, right)
        if op == "===":
            return strict_equals(left, right)
        if op == "!==":
            return not strict_equals(left, right)
        if op in ("<", "<=", ">", ">="):
            return compare(op, left, right)
        return arithmetic(op, left, right)

    def _call(self, node: FunctionCall, context: EvaluationContext) -> Any:
        columns = [find_column(arg.name, context.columns) for arg in node.args]
        if any(column is None for column in columns):
            logger.debug(f"{node.name} over an unresolved column contributes 0")
            return 0

        if node.name in AGGREGATES:
            return AGGREGATES[node.name](context.rows, columns[0])
        if node.name == "DATEDIFF":
            return date_diff(context.row, columns[0], columns[1])
        raise FormulaEvaluationError(f"Unsupported function {node.name}")
