"""Error types raised while parsing or evaluating story expressions.

Every failure is a :class:`MalformedExpressionError`. The lenient entry
points (``evaluate_condition`` and ``apply_effect``) catch it, log it and
fall back to "condition is false" / "effect does nothing". The strict entry
points let it propagate so authoring tools can report it.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class MalformedExpressionError(Exception):
    """Base class for expression failures.

    Attributes:
        expression: The source text that failed.
        reason: Human-readable description of the problem.
        position: Character offset of the problem, when known.
    """

    expression: str
    reason: str
    position: int | None = None

    def __post_init__(self) -> None:
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        where = f" at column {self.position + 1}" if self.position is not None else ""
        return f"{self.reason}{where} in {self.expression!r}"

    def __str__(self) -> str:
        return self._format_message()


@dataclass
class ExpressionSyntaxError(MalformedExpressionError):
    """The text does not match the condition or effect grammar."""


@dataclass
class ExpressionReferenceError(MalformedExpressionError):
    """A path does not resolve inside the variable store."""


@dataclass
class ExpressionTypeError(MalformedExpressionError):
    """An operator was applied to values of the wrong type."""
