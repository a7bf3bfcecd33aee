"""AST nodes for parsed formula expressions."""

from dataclasses import dataclass, field
from typing import Any, Optional, Union


@dataclass(frozen=True)
class Literal:
    """A number, string or boolean literal."""

    value: Any


@dataclass(frozen=True)
class Reference:
    """A [Column] reference, by title or id."""

    name: str


@dataclass(frozen=True)
class UnaryOp:
    op: str
    operand: "Node"


@dataclass(frozen=True)
class BinaryOp:
    op: str
    left: "Node"
    right: "Node"


@dataclass(frozen=True)
class Conditional:
    """Ternary ``cond ? a : b``, also the target of IF(cond, a, b)."""

    condition: "Node"
    when_true: "Node"
    when_false: "Node"
    function: Optional[str] = None  # "IF" when written as a function call


@dataclass(frozen=True)
class FunctionCall:
    name: str  # Upper-cased function name
    args: tuple["Node", ...] = field(default_factory=tuple)


Node = Union[Literal, Reference, UnaryOp, BinaryOp, Conditional, FunctionCall]


def children(node: Node) -> tuple["Node", ...]:
    """Direct sub-expressions of a node, left to right."""
    if isinstance(node, UnaryOp):
        return (node.operand,)
    if isinstance(node, BinaryOp):
        return (node.left, node.right)
    if isinstance(node, Conditional):
        return (node.condition, node.when_true, node.when_false)
    if isinstance(node, FunctionCall):
        return node.args
    return ()


def walk(node: Node):
    """Yield ``node`` and all of its descendants, depth first."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(children(current)))
