"""Condition and effect expressions.

A small, grammar-limited language evaluated by a tree-walking interpreter
over a :class:`VariableStore`.
"""

from storyloom.expressions.errors import (
    ExpressionReferenceError,
    ExpressionSyntaxError,
    ExpressionTypeError,
    MalformedExpressionError,
)
from storyloom.expressions.evaluator import (
    apply_effect,
    check_condition,
    evaluate,
    evaluate_condition,
    execute_effect,
)
from storyloom.expressions.lexer import MAX_EXPRESSION_LENGTH
from storyloom.expressions.parser import MAX_NESTING_DEPTH, parse_condition, parse_effect
from storyloom.expressions.variables import CATEGORIES, NUMERIC_FIELDS, VariableStore

__all__ = [
    "CATEGORIES",
    "MAX_EXPRESSION_LENGTH",
    "MAX_NESTING_DEPTH",
    "NUMERIC_FIELDS",
    "ExpressionReferenceError",
    "ExpressionSyntaxError",
    "ExpressionTypeError",
    "MalformedExpressionError",
    "VariableStore",
    "apply_effect",
    "check_condition",
    "evaluate",
    "evaluate_condition",
    "execute_effect",
    "parse_condition",
    "parse_effect",
]
