"""Tree-walking interpreter for conditions and effects.

The interpreter only ever touches the :class:`VariableStore` it is given.
There is no name lookup outside that store, no attribute access on host
objects and no I/O, so a story document cannot reach anything beyond its
own variables.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from storyloom.expressions.errors import (
    ExpressionTypeError,
    MalformedExpressionError,
)
from storyloom.expressions.nodes import (
    Arithmetic,
    Assign,
    BoolOp,
    Compare,
    Decrement,
    Increment,
    Literal,
    Negate,
    Not,
    Path,
)
from storyloom.expressions.parser import parse_condition, parse_effect
from storyloom.observability.logging import get_logger

if TYPE_CHECKING:
    from storyloom.expressions.nodes import Expr, Statement
    from storyloom.expressions.variables import VariableStore

log = get_logger(__name__)


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def _equals(left: Any, right: Any) -> bool:
    # A boolean never equals a number, even though True == 1 in Python.
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    return bool(left == right)


def evaluate(node: Expr, variables: VariableStore, *, source: str = "") -> Any:
    """Evaluate an expression tree against *variables*.

    Raises:
        MalformedExpressionError: On a reference or type failure.
    """
    if isinstance(node, Literal):
        return node.value

    if isinstance(node, Path):
        return variables.lookup(node.parts, expression=source)

    if isinstance(node, Not):
        return not evaluate(node.operand, variables, source=source)

    if isinstance(node, Negate):
        value = evaluate(node.operand, variables, source=source)
        if not _is_number(value):
            raise ExpressionTypeError(source, f"Cannot negate {value!r}")
        return -value

    if isinstance(node, BoolOp):
        if node.op == "and":
            return all(evaluate(operand, variables, source=source) for operand in node.operands)
        return any(evaluate(operand, variables, source=source) for operand in node.operands)

    if isinstance(node, Arithmetic):
        return _fold_arithmetic(node, variables, source)

    if isinstance(node, Compare):
        left = evaluate(node.left, variables, source=source)
        right = evaluate(node.right, variables, source=source)
        if node.op == "==":
            return _equals(left, right)
        if node.op == "!=":
            return not _equals(left, right)
        # Ordering against a missing variable is false rather than an error
        if left is None or right is None:
            return False
        if not (_is_number(left) and _is_number(right)):
            raise ExpressionTypeError(
                source, f"Cannot compare {left!r} {node.op} {right!r}"
            )
        if node.op == "<":
            return left < right
        if node.op == "<=":
            return left <= right
        if node.op == ">":
            return left > right
        return left >= right

    raise TypeError(f"Unknown expression node: {node!r}")


def _fold_arithmetic(node: Arithmetic, variables: VariableStore, source: str) -> Any:
    # The parser builds `a + b - c` left-nested, so walk the left spine in a
    # loop; chain length must not cost stack depth.
    steps: list[tuple[str, Expr]] = []
    head: Expr = node
    while isinstance(head, Arithmetic):
        steps.append((head.op, head.right))
        head = head.left

    total = evaluate(head, variables, source=source)
    for op, operand in reversed(steps):
        right = evaluate(operand, variables, source=source)
        if not (_is_number(total) and _is_number(right)):
            raise ExpressionTypeError(source, f"Cannot apply '{op}' to {total!r} and {right!r}")
        total = total + right if op == "+" else total - right
    return total


def check_condition(condition: str | None, variables: VariableStore) -> bool:
    """Evaluate a condition strictly.

    An absent or blank condition is always true.

    Raises:
        MalformedExpressionError: If the condition fails to parse or evaluate.
    """
    if condition is None or not condition.strip():
        return True
    tree = parse_condition(condition)
    return bool(evaluate(tree, variables, source=condition))


def evaluate_condition(condition: str | None, variables: VariableStore) -> bool:
    """Evaluate a condition, treating any failure as false.

    Failures are logged as ``condition_failed`` and never raised, so a typo
    in a story only hides the affected choice.
    """
    try:
        return check_condition(condition, variables)
    except MalformedExpressionError as e:
        log.warning("condition_failed", condition=condition, error=str(e))
        return False


def _execute_statement(statement: Statement, variables: VariableStore, source: str) -> None:
    path = statement.target.parts
    if isinstance(statement, Assign):
        container = variables.container_for(path, create=True, expression=source)
        container[path[-1]] = statement.value
        return

    container = variables.container_for(path, create=False, expression=source)
    current = container.get(path[-1])
    if current is None:
        current = 0
    if not _is_number(current):
        raise ExpressionTypeError(
            source, f"'{statement.target}' holds {current!r}, not a number"
        )
    if isinstance(statement, Increment):
        container[path[-1]] = current + statement.amount
    elif isinstance(statement, Decrement):
        container[path[-1]] = current - statement.amount


def execute_effect(effect: str | None, variables: VariableStore) -> None:
    """Apply an effect strictly.

    All statements run against a scratch copy that replaces *variables* only
    once every statement has succeeded.

    Raises:
        MalformedExpressionError: If the effect fails to parse or apply. The
            variables are left untouched.
    """
    if effect is None or not effect.strip():
        return
    parsed = parse_effect(effect)
    scratch = variables.copy()
    for statement in parsed.statements:
        _execute_statement(statement, scratch, effect)
    variables.replace_with(scratch)


def apply_effect(effect: str | None, variables: VariableStore) -> None:
    """Apply an effect, ignoring malformed input.

    Failures are logged as ``effect_failed`` and leave *variables* unchanged.
    """
    try:
        execute_effect(effect, variables)
    except MalformedExpressionError as e:
        log.warning("effect_failed", effect=effect, error=str(e))
