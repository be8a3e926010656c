"""Tokenizer for condition and effect expressions."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum

from storyloom.expressions.errors import ExpressionSyntaxError

MAX_EXPRESSION_LENGTH = 2000


class TokenKind(StrEnum):
    NUMBER = "number"
    STRING = "string"
    NAME = "name"
    OP = "op"
    END = "end"


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    value: str
    position: int


KEYWORDS = frozenset({"true", "false", "and", "or", "not"})

# Longest operators first so that "<=" wins over "<" and "+=" over "+".
_OPERATORS = [
    "===",
    "!==",
    "==",
    "!=",
    "<=",
    ">=",
    "&&",
    "||",
    "+=",
    "-=",
    "<",
    ">",
    "!",
    "=",
    "+",
    "-",
    "(",
    ")",
    "[",
    "]",
    ".",
    ";",
]

_TOKEN_RE = re.compile(
    r"""
    (?P<ws>\s+)
    | (?P<number>(?:\d+\.\d*|\.\d+|\d+))
    | (?P<string>"(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*')
    | (?P<name>(?:[^\W\d]|\$)(?:\w|\$)*)
    | (?P<op>"""
    + "|".join(re.escape(op) for op in _OPERATORS)
    + r""")
    """,
    re.VERBOSE,
)


def tokenize(source: str) -> list[Token]:
    """Split *source* into tokens, ending with a single END token.

    Raises:
        ExpressionSyntaxError: On an unexpected character or an expression
            longer than ``MAX_EXPRESSION_LENGTH``.
    """
    if len(source) > MAX_EXPRESSION_LENGTH:
        raise ExpressionSyntaxError(
            source[:40] + "...",
            f"Expression longer than {MAX_EXPRESSION_LENGTH} characters",
        )

    tokens: list[Token] = []
    pos = 0
    while pos < len(source):
        match = _TOKEN_RE.match(source, pos)
        if match is None:
            raise ExpressionSyntaxError(source, f"Unexpected character {source[pos]!r}", pos)
        kind = match.lastgroup
        text = match.group()
        if kind == "string":
            tokens.append(Token(TokenKind.STRING, _unquote(text), pos))
        elif kind == "number":
            tokens.append(Token(TokenKind.NUMBER, text, pos))
        elif kind == "name":
            tokens.append(Token(TokenKind.NAME, text, pos))
        elif kind == "op":
            tokens.append(Token(TokenKind.OP, text, pos))
        pos = match.end()

    tokens.append(Token(TokenKind.END, "", len(source)))
    return tokens


def _unquote(text: str) -> str:
    body = text[1:-1]
    return re.sub(r"\\(.)", r"\1", body)
