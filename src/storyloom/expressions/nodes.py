"""Expression tree produced by the parser.

Nodes are frozen so parsed trees can be cached and shared between calls.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal as TypingLiteral

Value = bool | int | float | None


@dataclass(frozen=True)
class Literal:
    value: Value


@dataclass(frozen=True)
class Path:
    parts: tuple[str, ...]

    def __str__(self) -> str:
        return ".".join(self.parts)


@dataclass(frozen=True)
class Not:
    operand: Expr


@dataclass(frozen=True)
class Negate:
    operand: Expr


@dataclass(frozen=True)
class Arithmetic:
    op: TypingLiteral["+", "-"]
    left: Expr
    right: Expr


@dataclass(frozen=True)
class Compare:
    op: TypingLiteral["==", "!=", "<", "<=", ">", ">="]
    left: Expr
    right: Expr


@dataclass(frozen=True)
class BoolOp:
    op: TypingLiteral["and", "or"]
    operands: tuple[Expr, ...]


Expr = Literal | Path | Not | Negate | Arithmetic | Compare | BoolOp


@dataclass(frozen=True)
class Assign:
    target: Path
    value: Value


@dataclass(frozen=True)
class Increment:
    target: Path
    amount: int | float


@dataclass(frozen=True)
class Decrement:
    target: Path
    amount: int | float


Statement = Assign | Increment | Decrement


@dataclass(frozen=True)
class Effect:
    statements: tuple[Statement, ...]
