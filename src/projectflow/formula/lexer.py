"""Tokenizer for formula expressions."""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .errors import FormulaSyntaxError

logger = logging.getLogger(__name__)


class TokenType(str, Enum):
    """Kind of a lexical token."""

    NUMBER = "number"
    STRING = "string"
    REFERENCE = "reference"  # [Column Title or Id]
    NAME = "name"  # Function names and true/false
    OPERATOR = "operator"
    LPAREN = "lparen"
    RPAREN = "rparen"
    COMMA = "comma"
    QUESTION = "question"
    COLON = "colon"
    EOF = "eof"


@dataclass(frozen=True)
class Token:
    """A single token with its position in the expression."""

    type: TokenType
    value: Any
    position: int


# Longest operators first so "===" wins over "==" and "="
OPERATORS = (
    "===",
    "!==",
    "==",
    "!=",
    "<=",
    ">=",
    "<>",
    "&&",
    "||",
    "<",
    ">",
    "=",
    "!",
    "+",
    "-",
    "*",
    "/",
    "%",
)

PUNCTUATION = {
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    ",": TokenType.COMMA,
    "?": TokenType.QUESTION,
    ":": TokenType.COLON,
}

NUMBER_PATTERN = re.compile(r"(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
NAME_PATTERN = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")

ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "\\": "\\", '"': '"', "'": "'"}


class Lexer:
    """Break a formula expression into tokens."""

    def __init__(self, text: str):
        self.text = text
        self.pos = 0

    def tokenize(self) -> list[Token]:
        """
        Tokenize the whole expression.

        Returns:
            List of tokens ending with an EOF token

        Raises:
            FormulaSyntaxError: On unterminated strings/references or
                characters outside the formula grammar
        """
        tokens = []
        while self.pos < len(self.text):
            char = self.text[self.pos]

            if char.isspace():
                self.pos += 1
                continue

            if char == "[":
                tokens.append(self._reference())
            elif char in ('"', "'"):
                tokens.append(self._string(char))
            elif char.isdigit() or (char == "." and self._peek(1).isdigit()):
                tokens.append(self._number())
            elif char.isalpha() or char == "_":
                match = NAME_PATTERN.match(self.text, self.pos)
                tokens.append(Token(TokenType.NAME, match.group(0), self.pos))
                self.pos = match.end()
            elif char in PUNCTUATION:
                tokens.append(Token(PUNCTUATION[char], char, self.pos))
                self.pos += 1
            else:
                tokens.append(self._operator())

        tokens.append(Token(TokenType.EOF, None, self.pos))
        logger.debug(f"Tokenized {self.text!r} into {len(tokens)} tokens")
        return tokens

    def _peek(self, offset: int) -> str:
        index = self.pos + offset
        return self.text[index] if index < len(self.text) else ""

    def _reference(self) -> Token:
        start = self.pos
        end = self.text.find("]", start + 1)
        if end == -1:
            raise FormulaSyntaxError("Unterminated column reference", start)
        self.pos = end + 1
        return Token(TokenType.REFERENCE, self.text[start + 1 : end], start)

    def _string(self, quote: str) -> Token:
        start = self.pos
        self.pos += 1
        chars = []
        while self.pos < len(self.text):
            char = self.text[self.pos]
            if char == "\\" and self.pos + 1 < len(self.text):
                escaped = self.text[self.pos + 1]
                chars.append(ESCAPES.get(escaped, escaped))
                self.pos += 2
                continue
            if char == quote:
                self.pos += 1
                return Token(TokenType.STRING, "".join(chars), start)
            chars.append(char)
            self.pos += 1
        raise FormulaSyntaxError("Unterminated string literal", start)

    def _number(self) -> Token:
        match = NUMBER_PATTERN.match(self.text, self.pos)
        text = match.group(0)
        self.pos = match.end()
        if "." in text or "e" in text or "E" in text:
            value = float(text)
        else:
            value = int(text)
        return Token(TokenType.NUMBER, value, match.start())

    def _operator(self) -> Token:
        for op in OPERATORS:
            if self.text.startswith(op, self.pos):
                token = Token(TokenType.OPERATOR, op, self.pos)
                self.pos += len(op)
                return token
        raise FormulaSyntaxError(f"Unexpected character {self.text[self.pos]!r}", self.pos)
