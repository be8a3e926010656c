"""Passage storage backend protocol and dict-based implementation.

The PassageStore protocol defines the low-level storage operations that
StoryGraph delegates to. Implementations handle raw CRUD; StoryGraph provides
the public API with validation, cascades and error messages.

DictPassageStore is the in-memory backend. Passages are kept in insertion
order, which is also the order used for listing and export.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterator

    from storyloom.models.story import Passage


@runtime_checkable
class PassageStore(Protocol):
    """Storage backend protocol for StoryGraph.

    Methods raise no domain-specific errors; StoryGraph is responsible for
    translating a missing id into PassageNotFoundError and so on.
    """

    def get(self, passage_id: str) -> Passage | None:
        """Get a passage by id, or None if not found."""
        ...

    def has(self, passage_id: str) -> bool:
        """Check whether a passage exists."""
        ...

    def set(self, passage_id: str, passage: Passage) -> None:
        """Set a passage (create or overwrite)."""
        ...

    def delete(self, passage_id: str) -> None:
        """Delete a passage by id. No cascade; caller handles choices."""
        ...

    def rename(self, old_id: str, new_id: str) -> None:
        """Move a passage to a new id, keeping its position in the order."""
        ...

    def ids(self) -> list[str]:
        """Return all passage ids in insertion order."""
        ...

    def items(self) -> Iterator[tuple[str, Passage]]:
        """Iterate over (id, passage) pairs in insertion order."""
        ...

    def count(self) -> int:
        """Return the number of passages."""
        ...

    def replace_all(self, passages: dict[str, Passage]) -> None:
        """Replace every passage at once."""
        ...


class DictPassageStore:
    """In-memory dict-based passage store."""

    def __init__(self, passages: dict[str, Passage] | None = None) -> None:
        self._passages: dict[str, Passage] = dict(passages or {})

    def get(self, passage_id: str) -> Passage | None:
        return self._passages.get(passage_id)

    def has(self, passage_id: str) -> bool:
        return passage_id in self._passages

    def set(self, passage_id: str, passage: Passage) -> None:
        self._passages[passage_id] = passage

    def delete(self, passage_id: str) -> None:
        del self._passages[passage_id]

    def rename(self, old_id: str, new_id: str) -> None:
        self._passages = {
            (new_id if pid == old_id else pid): passage
            for pid, passage in self._passages.items()
        }

    def ids(self) -> list[str]:
        return list(self._passages)

    def items(self) -> Iterator[tuple[str, Passage]]:
        # Copy so callers may mutate the store while iterating.
        yield from list(self._passages.items())

    def count(self) -> int:
        return len(self._passages)

    def replace_all(self, passages: dict[str, Passage]) -> None:
        self._passages = dict(passages)

    def __repr__(self) -> str:
        return f"DictPassageStore(passages={len(self._passages)})"
