"""Tests for the formula lexer and parser."""

import pytest

from projectflow.formula import FormulaParser, FormulaSyntaxError, parse_expression
from projectflow.formula.ast import (
    BinaryOp,
    Conditional,
    FunctionCall,
    Literal,
    Reference,
    UnaryOp,
    walk,
)
from projectflow.formula.lexer import Lexer, TokenType


class TestLexer:
    """Test tokenization."""

    def test_tokenize_reference_and_number(self):
        tokens = Lexer("[Start Date] + 10").tokenize()

        assert [t.type for t in tokens] == [
            TokenType.REFERENCE,
            TokenType.OPERATOR,
            TokenType.NUMBER,
            TokenType.EOF,
        ]
        assert tokens[0].value == "Start Date"
        assert tokens[2].value == 10

    def test_numbers(self):
        values = [t.value for t in Lexer("1 2.5 .5 1e3").tokenize()[:-1]]
        assert values == [1, 2.5, 0.5, 1000.0]
        assert isinstance(values[0], int)

    def test_strings_with_escapes(self):
        tokens = Lexer(r'"say \"hi\"" ' + "'it'").tokenize()
        assert tokens[0].type == TokenType.STRING
        assert tokens[0].value == 'say "hi"'
        assert tokens[1].value == "it"

    def test_longest_operator_wins(self):
        ops = [t.value for t in Lexer("=== !== == != <= >= <> && || = < >").tokenize()[:-1]]
        assert ops == ["===", "!==", "==", "!=", "<=", ">=", "<>", "&&", "||", "=", "<", ">"]

    def test_punctuation(self):
        types = [t.type for t in Lexer("IF(a, b ? c : d)").tokenize()]
        assert types == [
            TokenType.NAME,
            TokenType.LPAREN,
            TokenType.NAME,
            TokenType.COMMA,
            TokenType.NAME,
            TokenType.QUESTION,
            TokenType.NAME,
            TokenType.COLON,
            TokenType.NAME,
            TokenType.RPAREN,
            TokenType.EOF,
        ]

    def test_positions(self):
        tokens = Lexer("1 + [A]").tokenize()
        assert [t.position for t in tokens] == [0, 2, 4, 7]

    @pytest.mark.parametrize("text", ['"open', "[Open", "1 ; 2", "a.b", "`x`"])
    def test_invalid_input(self, text):
        with pytest.raises(FormulaSyntaxError):
            Lexer(text).tokenize()


class TestParser:
    """Test parsing into an expression tree."""

    def test_precedence(self):
        tree = parse_expression("1 + 2 * 3")
        assert tree == BinaryOp("+", Literal(1), BinaryOp("*", Literal(2), Literal(3)))

    def test_left_associative(self):
        tree = parse_expression("10 - 4 - 3")
        assert tree == BinaryOp("-", BinaryOp("-", Literal(10), Literal(4)), Literal(3))

    def test_parentheses(self):
        tree = parse_expression("(1 + 2) * 3")
        assert tree == BinaryOp("*", BinaryOp("+", Literal(1), Literal(2)), Literal(3))

    def test_comparison_binds_tighter_than_logic(self):
        tree = parse_expression("[A] > 1 && [B] == 2")
        assert tree == BinaryOp(
            "&&",
            BinaryOp(">", Reference("A"), Literal(1)),
            BinaryOp("==", Reference("B"), Literal(2)),
        )

    def test_unary(self):
        assert parse_expression("-[A]") == UnaryOp("-", Reference("A"))
        assert parse_expression("!true") == UnaryOp("!", Literal(True))

    def test_booleans(self):
        assert parse_expression("true") == Literal(True)
        assert parse_expression("false") == Literal(False)

    def test_if_becomes_conditional(self):
        tree = parse_expression('IF([A] == 1, "yes", "no")')
        assert tree == Conditional(
            BinaryOp("==", Reference("A"), Literal(1)),
            Literal("yes"),
            Literal("no"),
            function="IF",
        )

    def test_ternary_is_right_associative(self):
        tree = parse_expression("[A] ? 1 : [B] ? 2 : 3")
        assert tree == Conditional(
            Reference("A"), Literal(1), Conditional(Reference("B"), Literal(2), Literal(3))
        )

    def test_aggregate_call(self):
        assert parse_expression("sum([Progress])") == FunctionCall("SUM", (Reference("Progress"),))

    def test_datediff_call(self):
        tree = parse_expression("DATEDIFF([To Date], [Start Date])")
        assert tree == FunctionCall("DATEDIFF", (Reference("To Date"), Reference("Start Date")))

    def test_function_inside_if(self):
        tree = parse_expression('IF(SUM([A]) > 10, "Big", "Small")')
        nodes = list(walk(tree))
        assert FunctionCall("SUM", (Reference("A"),)) in nodes

    @pytest.mark.parametrize(
        "expression",
        [
            "",
            "1 +",
            "(1",
            "1)",
            "1 2",
            "+*5",
            "foo",
            "FOO(1)",
            "SUM(1)",
            "SUM([A] + 1)",
            "SUM()",
            "AVG([A], [B])",
            "DATEDIFF([A])",
            "IF(1, 2)",
            "IF(1, 2, 3, 4)",
            "1 ? 2",
        ],
    )
    def test_syntax_errors(self, expression):
        with pytest.raises(FormulaSyntaxError):
            parse_expression(expression)

    def test_error_reports_position(self):
        with pytest.raises(FormulaSyntaxError) as exc_info:
            parse_expression("1 + * 5")
        assert exc_info.value.position == 4

    def test_max_depth(self):
        parser = FormulaParser(max_depth=5)
        assert parser.parse("((1))") == Literal(1)
        with pytest.raises(FormulaSyntaxError, match="nested too deeply"):
            parser.parse("((((((1))))))")

    def test_parser_is_reusable(self):
        parser = FormulaParser()
        assert parser.parse("1") == Literal(1)
        assert parser.parse("[A]") == Reference("A")
