"""Recursive-descent parser for conditions and effects.

Conditions::

    condition  := or_expr
    or_expr    := and_expr (("||" | "or") and_expr)*
    and_expr   := not_expr (("&&" | "and") not_expr)*
    not_expr   := ("!" | "not") not_expr | comparison
    comparison := additive (COMPARE_OP additive)?
    additive   := unary (("+" | "-") unary)*
    unary      := "-" unary | primary
    primary    := NUMBER | "true" | "false" | path | "(" or_expr ")"
    path       := NAME ("." NAME | "[" STRING "]")*

Effects::

    effect     := statement (";" statement)* ";"?
    statement  := path ("+=" | "-=") signed_number
                | path "=" (signed_number | "true" | "false")

Nesting is capped at ``MAX_NESTING_DEPTH`` so that no input can exhaust the
interpreter stack.
"""

from __future__ import annotations

from functools import lru_cache
from typing import NoReturn

from storyloom.expressions.errors import ExpressionSyntaxError
from storyloom.expressions.lexer import KEYWORDS, Token, TokenKind, tokenize
from storyloom.expressions.nodes import (
    Arithmetic,
    Assign,
    BoolOp,
    Compare,
    Decrement,
    Effect,
    Expr,
    Increment,
    Literal,
    Negate,
    Not,
    Path,
    Statement,
    Value,
)
from storyloom.expressions.variables import CATEGORIES

MAX_NESTING_DEPTH = 64

_COMPARE_OPS = {
    "==": "==",
    "===": "==",
    "!=": "!=",
    "!==": "!=",
    "<": "<",
    "<=": "<=",
    ">": ">",
    ">=": ">=",
}


class _Parser:
    def __init__(self, source: str) -> None:
        self.source = source
        self.tokens = tokenize(source)
        self.index = 0
        self.depth = 0

    # -- Token helpers ---------------------------------------------------------

    @property
    def current(self) -> Token:
        return self.tokens[self.index]

    def _advance(self) -> Token:
        token = self.tokens[self.index]
        if token.kind is not TokenKind.END:
            self.index += 1
        return token

    def _at_op(self, *ops: str) -> bool:
        return self.current.kind is TokenKind.OP and self.current.value in ops

    def _at_keyword(self, *words: str) -> bool:
        return self.current.kind is TokenKind.NAME and self.current.value in words

    def _expect_op(self, op: str) -> Token:
        if not self._at_op(op):
            self._fail(f"Expected '{op}'")
        return self._advance()

    def _fail(self, reason: str) -> NoReturn:
        token = self.current
        found = "end of expression" if token.kind is TokenKind.END else repr(token.value)
        raise ExpressionSyntaxError(self.source, f"{reason}, found {found}", token.position)

    def _enter(self) -> None:
        self.depth += 1
        if self.depth > MAX_NESTING_DEPTH:
            raise ExpressionSyntaxError(
                self.source,
                f"Expression nested deeper than {MAX_NESTING_DEPTH} levels",
                self.current.position,
            )

    def _leave(self) -> None:
        self.depth -= 1

    def _expect_end(self) -> None:
        if self.current.kind is not TokenKind.END:
            self._fail("Unexpected trailing input")

    # -- Conditions ------------------------------------------------------------

    def parse_condition(self) -> Expr:
        if self.current.kind is TokenKind.END:
            self._fail("Empty condition")
        expr = self._or_expr()
        self._expect_end()
        return expr

    def _or_expr(self) -> Expr:
        operands = [self._and_expr()]
        while self._at_op("||") or self._at_keyword("or"):
            self._advance()
            operands.append(self._and_expr())
        return operands[0] if len(operands) == 1 else BoolOp("or", tuple(operands))

    def _and_expr(self) -> Expr:
        operands = [self._not_expr()]
        while self._at_op("&&") or self._at_keyword("and"):
            self._advance()
            operands.append(self._not_expr())
        return operands[0] if len(operands) == 1 else BoolOp("and", tuple(operands))

    def _not_expr(self) -> Expr:
        if self._at_op("!") or self._at_keyword("not"):
            self._advance()
            self._enter()
            try:
                return Not(self._not_expr())
            finally:
                self._leave()
        return self._comparison()

    def _comparison(self) -> Expr:
        left = self._additive()
        if self.current.kind is TokenKind.OP and self.current.value in _COMPARE_OPS:
            op = _COMPARE_OPS[self._advance().value]
            right = self._additive()
            if self.current.kind is TokenKind.OP and self.current.value in _COMPARE_OPS:
                self._fail("Chained comparisons are not supported")
            return Compare(op, left, right)  # type: ignore[arg-type]
        return left

    def _additive(self) -> Expr:
        expr = self._unary()
        while self._at_op("+", "-"):
            op = self._advance().value
            expr = Arithmetic(op, expr, self._unary())  # type: ignore[arg-type]
        return expr

    def _unary(self) -> Expr:
        if self._at_op("-"):
            self._advance()
            self._enter()
            try:
                return Negate(self._unary())
            finally:
                self._leave()
        return self._primary()

    def _primary(self) -> Expr:
        token = self.current
        if token.kind is TokenKind.NUMBER:
            self._advance()
            return Literal(_number(token.value))
        if self._at_keyword("true", "false"):
            self._advance()
            return Literal(token.value == "true")
        if token.kind is TokenKind.NAME and token.value not in KEYWORDS:
            return self._path()
        if self._at_op("("):
            self._advance()
            self._enter()
            try:
                expr = self._or_expr()
            finally:
                self._leave()
            self._expect_op(")")
            return expr
        self._fail("Expected a number, true, false, a variable or '('")

    def _path(self) -> Path:
        token = self._advance()
        parts = [token.value]
        while self._at_op(".", "["):
            if self._advance().value == ".":
                if self.current.kind is not TokenKind.NAME:
                    self._fail("Expected a name after '.'")
                parts.append(self._advance().value)
            else:
                if self.current.kind is not TokenKind.STRING:
                    self._fail("Expected a quoted key inside '[ ]'")
                parts.append(self._advance().value)
                self._expect_op("]")
        return Path(tuple(parts))

    # -- Effects ---------------------------------------------------------------

    def parse_effect(self) -> Effect:
        statements: list[Statement] = []
        while self.current.kind is not TokenKind.END:
            statements.append(self._statement())
            if self._at_op(";"):
                self._advance()
            else:
                break
        self._expect_end()
        if not statements:
            self._fail("Empty effect")
        return Effect(tuple(statements))

    def _statement(self) -> Statement:
        token = self.current
        if token.kind is not TokenKind.NAME or token.value in KEYWORDS:
            self._fail("Expected a variable path")
        target = self._path()
        if len(target.parts) == 1 and target.parts[0] in CATEGORIES:
            raise ExpressionSyntaxError(
                self.source,
                f"Cannot assign to the whole '{target.parts[0]}' category",
                token.position,
            )

        if self._at_op("+=", "-="):
            op = self._advance().value
            amount = self._signed_number()
            return Increment(target, amount) if op == "+=" else Decrement(target, amount)
        if self._at_op("="):
            self._advance()
            return Assign(target, self._literal_value())
        self._fail("Expected '=', '+=' or '-='")

    def _signed_number(self) -> int | float:
        sign = 1
        if self._at_op("-", "+"):
            sign = -1 if self._advance().value == "-" else 1
        if self.current.kind is not TokenKind.NUMBER:
            self._fail("Expected a number")
        return sign * _number(self._advance().value)

    def _literal_value(self) -> Value:
        if self._at_keyword("true", "false"):
            return self._advance().value == "true"
        return self._signed_number()


def _number(text: str) -> int | float:
    if "." in text:
        return float(text)
    return int(text)


@lru_cache(maxsize=1024)
def parse_condition(source: str) -> Expr:
    """Parse a condition into an expression tree.

    Raises:
        ExpressionSyntaxError: If *source* is not a valid condition.
    """
    return _Parser(source).parse_condition()


@lru_cache(maxsize=1024)
def parse_effect(source: str) -> Effect:
    """Parse an effect into its statements.

    Raises:
        ExpressionSyntaxError: If *source* is not a valid effect.
    """
    return _Parser(source).parse_effect()
