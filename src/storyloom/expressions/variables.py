"""The variable store that conditions read and effects write.

The store is a plain nested mapping with three categories (``inventory``,
``relationships``, ``flags``) and the optional numeric ``health`` field. It
is the only scope expressions can see.
"""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING, Any

from storyloom.expressions.errors import ExpressionReferenceError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from storyloom.models.story import Variables

CATEGORIES = ("inventory", "relationships", "flags")
NUMERIC_FIELDS = ("health",)
ROOT_NAMES = frozenset(CATEGORIES + NUMERIC_FIELDS)


class VariableStore:
    """Mutable working copy of the story variables.

    Args:
        data: Initial values. Deep-copied; the caller's mapping is never
            touched afterwards.
    """

    def __init__(self, data: Mapping[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = copy.deepcopy(dict(data or {}))
        for category in CATEGORIES:
            if self._data.get(category) is None:
                self._data[category] = {}

    @classmethod
    def from_variables(cls, variables: Variables) -> VariableStore:
        """Build a working store from a document's declared variables."""
        return cls(variables.model_dump(exclude_none=True))

    # -- Reading ---------------------------------------------------------------

    def lookup(self, path: tuple[str, ...], *, expression: str = "") -> Any:
        """Read the value at *path*.

        A missing leaf reads as ``None``; an absent ``health`` reads as 0.

        Raises:
            ExpressionReferenceError: If the root is not a known name, or the
                path descends into a missing or scalar value.
        """
        root = path[0]
        self._check_root(root, expression)

        if root in NUMERIC_FIELDS and len(path) == 1:
            value = self._data.get(root)
            return 0 if value is None else value

        current: Any = self._data.get(root)
        for depth, key in enumerate(path[1:], start=1):
            if not isinstance(current, dict):
                raise ExpressionReferenceError(
                    expression,
                    f"'{'.'.join(path[:depth])}' is not a container",
                )
            current = current.get(key)
        return current

    def container_for(
        self,
        path: tuple[str, ...],
        *,
        create: bool,
        expression: str = "",
    ) -> dict[str, Any]:
        """Return the mapping that holds the last segment of *path*.

        Args:
            path: Dotted path split into segments.
            create: Create missing intermediate containers instead of failing.
            expression: Source text, for error messages.

        Raises:
            ExpressionReferenceError: If the parent does not resolve to a
                container (and *create* is false, or a scalar is in the way).
        """
        root = path[0]
        self._check_root(root, expression)

        current = self._data
        for depth, key in enumerate(path[:-1], start=1):
            child = current.get(key)
            if child is None and create:
                child = {}
                current[key] = child
            if not isinstance(child, dict):
                raise ExpressionReferenceError(
                    expression,
                    f"'{'.'.join(path[:depth])}' is not a container",
                )
            current = child
        return current

    # -- Copying ---------------------------------------------------------------

    def copy(self) -> VariableStore:
        """Return an independent deep copy."""
        return VariableStore(self._data)

    def replace_with(self, other: VariableStore) -> None:
        """Adopt the contents of *other* (deep-copied)."""
        self._data = copy.deepcopy(other._data)

    def to_dict(self) -> dict[str, Any]:
        """Return the store contents as a deep-copied dict."""
        return copy.deepcopy(self._data)

    # -- Utility ---------------------------------------------------------------

    @staticmethod
    def _check_root(root: str, expression: str) -> None:
        if root not in ROOT_NAMES:
            allowed = ", ".join(sorted(ROOT_NAMES))
            raise ExpressionReferenceError(
                expression, f"Unknown variable '{root}' (expected one of: {allowed})"
            )

    def __eq__(self, other: object) -> bool:
        if isinstance(other, VariableStore):
            return self._data == other._data
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"VariableStore({self._data!r})"
