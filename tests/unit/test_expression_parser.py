"""Tests for the expression tokenizer and parser."""

from __future__ import annotations

import pytest

from storyloom.expressions import (
    MAX_EXPRESSION_LENGTH,
    MAX_NESTING_DEPTH,
    ExpressionSyntaxError,
    MalformedExpressionError,
    parse_condition,
    parse_effect,
)
from storyloom.expressions.lexer import TokenKind, tokenize
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


class TestTokenize:
    """Test the tokenizer."""

    def test_longest_operator_wins(self) -> None:
        """`<=` is one token, not `<` followed by `=`."""
        tokens = tokenize("health <= 3")

        assert [(t.kind, t.value) for t in tokens] == [
            (TokenKind.NAME, "health"),
            (TokenKind.OP, "<="),
            (TokenKind.NUMBER, "3"),
            (TokenKind.END, ""),
        ]

    def test_positions_are_recorded(self) -> None:
        """Each token carries its character offset."""
        tokens = tokenize("a  == 1")

        assert [t.position for t in tokens] == [0, 3, 6, 7]

    def test_quoted_keys_are_unquoted(self) -> None:
        """String tokens carry their unescaped content."""
        tokens = tokenize("""inventory["old key"] || inventory['it\\'s']""")

        strings = [t.value for t in tokens if t.kind is TokenKind.STRING]
        assert strings == ["old key", "it's"]

    def test_unicode_names(self) -> None:
        """Names may use letters outside ASCII, `_` and `$`."""
        tokens = tokenize("relationships.méra > $x_1")

        names = [t.value for t in tokens if t.kind is TokenKind.NAME]
        assert names == ["relationships", "méra", "$x_1"]
        assert parse_condition("flags.ñandú") == Path(("flags", "ñandú"))

    def test_names_cannot_start_with_digit(self) -> None:
        """A leading digit starts a number, not a name."""
        tokens = tokenize("1abc")

        assert [(t.kind, t.value) for t in tokens[:-1]] == [
            (TokenKind.NUMBER, "1"),
            (TokenKind.NAME, "abc"),
        ]

    def test_decimal_numbers(self) -> None:
        """Numbers may have a fractional part."""
        tokens = tokenize("1.5 .25")

        assert [t.value for t in tokens[:-1]] == ["1.5", ".25"]

    def test_unexpected_character(self) -> None:
        """Characters outside the grammar are rejected with their column."""
        with pytest.raises(ExpressionSyntaxError) as exc_info:
            tokenize("health @ 1")

        assert exc_info.value.position == 7
        assert "column 8" in str(exc_info.value)

    def test_length_cap(self) -> None:
        """Overlong input is rejected before tokenizing."""
        with pytest.raises(ExpressionSyntaxError, match="longer than"):
            tokenize("1" * (MAX_EXPRESSION_LENGTH + 1))


class TestParseCondition:
    """Test condition parsing."""

    def test_path_with_dots_and_brackets(self) -> None:
        """Dotted and bracketed segments form one path."""
        tree = parse_condition('inventory["old key"]')

        assert tree == Path(("inventory", "old key"))

    def test_and_binds_tighter_than_or(self) -> None:
        """`a || b && c` parses as `a || (b && c)`."""
        tree = parse_condition("flags.a || flags.b && flags.c")

        assert tree == BoolOp(
            "or",
            (
                Path(("flags", "a")),
                BoolOp("and", (Path(("flags", "b")), Path(("flags", "c")))),
            ),
        )

    def test_word_operators(self) -> None:
        """`and`, `or` and `not` are synonyms for the symbols."""
        assert parse_condition("not flags.a and flags.b") == parse_condition(
            "!flags.a && flags.b"
        )
        assert parse_condition("flags.a or flags.b") == parse_condition("flags.a || flags.b")

    def test_strict_equality_is_equality(self) -> None:
        """`===` and `!==` map to `==` and `!=`."""
        assert parse_condition("health === 1") == Compare(
            "==", Path(("health",)), Literal(1)
        )
        assert parse_condition("health !== 1") == Compare(
            "!=", Path(("health",)), Literal(1)
        )

    def test_arithmetic_and_negation(self) -> None:
        """Additive expressions and unary minus are supported."""
        tree = parse_condition("relationships.mara + 2 > -1")

        assert tree == Compare(
            ">",
            Arithmetic("+", Path(("relationships", "mara")), Literal(2)),
            Negate(Literal(1)),
        )

    def test_literals(self) -> None:
        """Booleans and decimals parse to literal values."""
        assert parse_condition("true") == Literal(True)
        assert parse_condition("2.5") == Literal(2.5)

    def test_parentheses_group(self) -> None:
        """Parentheses override precedence."""
        tree = parse_condition("!(flags.a || flags.b)")

        assert tree == Not(BoolOp("or", (Path(("flags", "a")), Path(("flags", "b")))))

    @pytest.mark.parametrize(
        "source",
        [
            "",
            "   ",
            "(health > 1",
            "health >",
            "health < 1 < 2",
            "flags.",
            "inventory[key]",
            "__import__('os')",
            "flags.a; flags.b",
            "health = 1",
        ],
    )
    def test_rejects_malformed(self, source: str) -> None:
        """Malformed conditions raise a syntax error."""
        with pytest.raises(ExpressionSyntaxError):
            parse_condition(source)

    def test_nesting_cap(self) -> None:
        """Nesting deeper than the cap is rejected."""
        too_deep = "(" * (MAX_NESTING_DEPTH + 1) + "1" + ")" * (MAX_NESTING_DEPTH + 1)

        with pytest.raises(ExpressionSyntaxError, match="nested deeper"):
            parse_condition(too_deep)

    def test_nesting_at_cap_is_allowed(self) -> None:
        """Nesting exactly at the cap parses."""
        at_cap = "(" * MAX_NESTING_DEPTH + "1" + ")" * MAX_NESTING_DEPTH

        assert parse_condition(at_cap) == Literal(1)

    def test_deep_negation_is_capped(self) -> None:
        """A long run of `!` cannot exhaust the stack."""
        with pytest.raises(MalformedExpressionError):
            parse_condition("!" * 500 + "flags.a")


class TestParseEffect:
    """Test effect parsing."""

    def test_increment_and_decrement(self) -> None:
        """`+=` and `-=` take a signed number."""
        effect = parse_effect("relationships.mara += 1; health -= -2")

        assert effect.statements == (
            Increment(Path(("relationships", "mara")), 1),
            Decrement(Path(("health",)), -2),
        )

    def test_assignment_values(self) -> None:
        """Assignments take a boolean or a number."""
        effect = parse_effect("flags.met = true; inventory.key = false; health = 7.5;")

        assert effect.statements == (
            Assign(Path(("flags", "met")), True),
            Assign(Path(("inventory", "key")), False),
            Assign(Path(("health",)), 7.5),
        )

    @pytest.mark.parametrize(
        "source",
        [
            "",
            ";",
            "inventory = true",
            "flags.a = 'yes'",
            "flags.a == true",
            "flags.a += flags.b",
            "flags.a = true flags.b = true",
            "true = flags.a",
        ],
    )
    def test_rejects_malformed(self, source: str) -> None:
        """Malformed effects raise a syntax error."""
        with pytest.raises(ExpressionSyntaxError):
            parse_effect(source)

    def test_whole_category_assignment_message(self) -> None:
        """Assigning to a bare category names the category."""
        with pytest.raises(ExpressionSyntaxError, match="whole 'flags' category"):
            parse_effect("flags = 1")
