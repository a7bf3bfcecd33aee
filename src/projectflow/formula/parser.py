"""Recursive-descent parser for formula expressions.

The grammar only admits literals, column references, arithmetic, comparison
and logical operators, ternaries and the built-in functions. There is no
identifier resolution or attribute access, so formula text taken from
imported or shared data cannot reach anything beyond its own literals.
"""

from typing import Optional

from .ast import BinaryOp, Conditional, FunctionCall, Literal, Node, Reference, UnaryOp
from .errors import FormulaSyntaxError
from .lexer import Lexer, Token, TokenType

AGGREGATE_FUNCTIONS = frozenset({"SUM", "COUNT", "AVG"})
DATE_FUNCTIONS = frozenset({"DATEDIFF"})
CONDITIONAL_FUNCTIONS = frozenset({"IF"})
KNOWN_FUNCTIONS = AGGREGATE_FUNCTIONS | DATE_FUNCTIONS | CONDITIONAL_FUNCTIONS

BOOLEAN_NAMES = {"true": True, "false": False}

EQUALITY_OPERATORS = ("==", "!=", "===", "!==", "=", "<>")
COMPARISON_OPERATORS = ("<", "<=", ">", ">=")
ADDITIVE_OPERATORS = ("+", "-")
MULTIPLICATIVE_OPERATORS = ("*", "/", "%")
UNARY_OPERATORS = ("!", "-", "+")

DEFAULT_MAX_DEPTH = 64


class FormulaParser:
    """Parse formula expressions into an AST."""

    def __init__(self, max_depth: int = DEFAULT_MAX_DEPTH):
        self.max_depth = max_depth
        self._tokens: list[Token] = []
        self._index = 0
        self._depth = 0

    def parse(self, expression: str) -> Node:
        """
        Parse an expression (the formula text after the leading '=').

        Args:
            expression: The expression to parse

        Returns:
            Root node of the expression tree

        Raises:
            FormulaSyntaxError: If the expression is empty or malformed
        """
        self._tokens = Lexer(expression).tokenize()
        self._index = 0
        self._depth = 0

        if self._current.type == TokenType.EOF:
            raise FormulaSyntaxError("Empty formula", 0)

        node = self._expression()
        if self._current.type != TokenType.EOF:
            raise FormulaSyntaxError(
                f"Unexpected token {self._current.value!r}", self._current.position
            )
        return node

    @property
    def _current(self) -> Token:
        return self._tokens[self._index]

    def _advance(self) -> Token:
        token = self._tokens[self._index]
        if token.type != TokenType.EOF:
            self._index += 1
        return token

    def _match_operator(self, operators: tuple[str, ...]) -> Optional[str]:
        token = self._current
        if token.type == TokenType.OPERATOR and token.value in operators:
            self._advance()
            return token.value
        return None

    def _expect(self, token_type: TokenType, description: str) -> Token:
        if self._current.type != token_type:
            found = self._current.value if self._current.type != TokenType.EOF else "end of formula"
            raise FormulaSyntaxError(
                f"Expected {description}, found {found!r}", self._current.position
            )
        return self._advance()

    def _expression(self) -> Node:
        self._depth += 1
        if self._depth > self.max_depth:
            raise FormulaSyntaxError("Formula is nested too deeply", self._current.position)
        try:
            return self._ternary()
        finally:
            self._depth -= 1

    def _ternary(self) -> Node:
        condition = self._or()
        if self._current.type != TokenType.QUESTION:
            return condition
        self._advance()
        when_true = self._expression()
        self._expect(TokenType.COLON, "':'")
        when_false = self._expression()
        return Conditional(condition, when_true, when_false)

    def _or(self) -> Node:
        node = self._and()
        while self._match_operator(("||",)):
            node = BinaryOp("||", node, self._and())
        return node

    def _and(self) -> Node:
        node = self._equality()
        while self._match_operator(("&&",)):
            node = BinaryOp("&&", node, self._equality())
        return node

    def _equality(self) -> Node:
        node = self._comparison()
        op = self._match_operator(EQUALITY_OPERATORS)
        while op:
            node = BinaryOp(op, node, self._comparison())
            op = self._match_operator(EQUALITY_OPERATORS)
        return node

    def _comparison(self) -> Node:
        node = self._additive()
        op = self._match_operator(COMPARISON_OPERATORS)
        while op:
            node = BinaryOp(op, node, self._additive())
            op = self._match_operator(COMPARISON_OPERATORS)
        return node

    def _additive(self) -> Node:
        node = self._term()
        op = self._match_operator(ADDITIVE_OPERATORS)
        while op:
            node = BinaryOp(op, node, self._term())
            op = self._match_operator(ADDITIVE_OPERATORS)
        return node

    def _term(self) -> Node:
        node = self._unary()
        op = self._match_operator(MULTIPLICATIVE_OPERATORS)
        while op:
            node = BinaryOp(op, node, self._unary())
            op = self._match_operator(MULTIPLICATIVE_OPERATORS)
        return node

    def _unary(self) -> Node:
        op = self._match_operator(UNARY_OPERATORS)
        if op:
            self._depth += 1
            if self._depth > self.max_depth:
                raise FormulaSyntaxError("Formula is nested too deeply", self._current.position)
            try:
                return UnaryOp(op, self._unary())
            finally:
                self._depth -= 1
        return self._primary()

    def _primary(self) -> Node:
        token = self._current

        if token.type in (TokenType.NUMBER, TokenType.STRING):
            self._advance()
            return Literal(token.value)

        if token.type == TokenType.REFERENCE:
            self._advance()
            return Reference(token.value)

        if token.type == TokenType.LPAREN:
            self._advance()
            node = self._expression()
            self._expect(TokenType.RPAREN, "')'")
            return node

        if token.type == TokenType.NAME:
            self._advance()
            if token.value in BOOLEAN_NAMES:
                return Literal(BOOLEAN_NAMES[token.value])
            if self._current.type == TokenType.LPAREN:
                return self._function_call(token)
            raise FormulaSyntaxError(f"Unknown name {token.value!r}", token.position)

        if token.type == TokenType.EOF:
            raise FormulaSyntaxError("Unexpected end of formula", token.position)
        raise FormulaSyntaxError(f"Unexpected token {token.value!r}", token.position)

    def _function_call(self, name_token: Token) -> Node:
        name = name_token.value.upper()
        if name not in KNOWN_FUNCTIONS:
            raise FormulaSyntaxError(f"Unknown function {name_token.value!r}", name_token.position)

        self._expect(TokenType.LPAREN, "'('")
        args = []
        if self._current.type != TokenType.RPAREN:
            args.append(self._expression())
            while self._current.type == TokenType.COMMA:
                self._advance()
                args.append(self._expression())
        self._expect(TokenType.RPAREN, "')'")

        return self._build_call(name, args, name_token.position)

    def _build_call(self, name: str, args: list[Node], position: int) -> Node:
        if name in CONDITIONAL_FUNCTIONS:
            if len(args) != 3:
                raise FormulaSyntaxError(f"IF expects 3 arguments, got {len(args)}", position)
            # IF(cond, a, b) is the ternary (cond) ? a : b
            return Conditional(*args, function=name)

        expected = 1 if name in AGGREGATE_FUNCTIONS else 2
        if len(args) != expected:
            raise FormulaSyntaxError(
                f"{name} expects {expected} column reference(s), got {len(args)}", position
            )
        # Aggregates and DATEDIFF need the column itself, not a row value
        if not all(isinstance(arg, Reference) for arg in args):
            raise FormulaSyntaxError(f"{name} arguments must be [Column] references", position)
        return FunctionCall(name, tuple(args))


def parse_expression(expression: str, max_depth: int = DEFAULT_MAX_DEPTH) -> Node:
    """Parse an expression with a fresh parser."""
    return FormulaParser(max_depth=max_depth).parse(expression)
