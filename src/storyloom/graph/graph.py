"""The story graph: passages connected by choices.

The graph enforces identifier uniqueness similar to a primary key:
- Passage creation is explicit (create_passage fails if the id exists)
- Renames never merge two passages (DuplicateIdentifierError)
- Deleting a passage cascades to every choice that targets it
- Variables are declared once per category (DuplicateIdentifierError)

Choices may point at passages that do not exist. Such dangling choices are
valid and inert; traversal and play treat them as dead ends.

StoryGraph delegates storage to a PassageStore backend (DictPassageStore by
default).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from storyloom.expressions.variables import CATEGORIES
from storyloom.graph.errors import (
    DuplicateIdentifierError,
    InvalidDocumentError,
    PassageNotFoundError,
    VariableNotFoundError,
)
from storyloom.graph.store import DictPassageStore, PassageStore
from storyloom.models.story import Choice, Passage, StoryDocument, Variables
from storyloom.observability.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

log = get_logger(__name__)

Snapshot = dict[str, dict[str, Any]]


class StoryGraph:
    """All passages of a story plus its declared initial variables.

    Attributes:
        title: Optional story title.
        variables: Declared initial variable values.
    """

    def __init__(
        self,
        passages: dict[str, Passage] | None = None,
        *,
        variables: Variables | None = None,
        title: str | None = None,
        store: PassageStore | None = None,
    ) -> None:
        """Initialize the graph.

        Args:
            passages: Initial passages. Ignored if *store* is provided.
            variables: Declared initial variables. Defaults to empty categories.
            title: Optional story title.
            store: Pre-built storage backend.
        """
        self._store: PassageStore = store if store is not None else DictPassageStore(passages)
        self.variables = variables if variables is not None else Variables()
        self.title = title

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    @classmethod
    def empty(cls) -> StoryGraph:
        """Create an empty graph."""
        return cls()

    @classmethod
    def from_document(cls, document: StoryDocument) -> StoryGraph:
        """Build a graph from a validated story document (deep-copied)."""
        document = document.model_copy(deep=True)
        return cls(document.passages, variables=document.variables, title=document.title)

    @classmethod
    def from_dict(cls, data: Any, *, source: str = "<data>") -> StoryGraph:
        """Validate raw document data and build a graph from it.

        Args:
            data: Parsed JSON/YAML content.
            source: Description of where the data came from, for errors.

        Raises:
            InvalidDocumentError: If the data is not a valid story document.
        """
        if not isinstance(data, dict):
            raise InvalidDocumentError(source, "top level must be a mapping")
        if "passages" not in data:
            raise InvalidDocumentError(source, "missing 'passages'")
        try:
            document = StoryDocument.model_validate(data)
        except ValidationError as e:
            raise InvalidDocumentError(source, _summarize_validation_error(e)) from e
        return cls.from_document(document)

    def to_document(self) -> StoryDocument:
        """Return the graph as a story document (deep copy)."""
        return StoryDocument(
            title=self.title,
            variables=self.variables.model_copy(deep=True),
            passages={pid: p.model_copy(deep=True) for pid, p in self._store.items()},
        )

    # -------------------------------------------------------------------------
    # Passage Operations
    # -------------------------------------------------------------------------

    def get_passage(self, passage_id: str) -> Passage | None:
        """Get a passage by id, or None if it does not exist."""
        return self._store.get(passage_id)

    def has_passage(self, passage_id: str) -> bool:
        """Check if a passage exists."""
        return self._store.has(passage_id)

    def passage_ids(self) -> list[str]:
        """Return all passage ids in insertion order."""
        return self._store.ids()

    def passages(self) -> Iterator[tuple[str, Passage]]:
        """Iterate over (id, passage) pairs in insertion order."""
        return self._store.items()

    def put_passage(self, passage_id: str, passage: Passage) -> None:
        """Create or replace a passage."""
        self._store.set(passage_id, passage)

    def create_passage(
        self,
        passage_id: str,
        text: str = "",
        choices: Iterable[Choice] = (),
        position: tuple[float, float] | None = None,
    ) -> Passage:
        """Create a new passage.

        Raises:
            DuplicateIdentifierError: If *passage_id* already exists.
        """
        if self._store.has(passage_id):
            raise DuplicateIdentifierError(passage_id)
        passage = Passage(text=text, choices=list(choices), position=position)
        self._store.set(passage_id, passage)
        log.debug("passage_created", passage=passage_id)
        return passage

    def set_passage_text(self, passage_id: str, text: str) -> None:
        """Replace the body text of a passage.

        Raises:
            PassageNotFoundError: If the passage does not exist.
        """
        self._require(passage_id, "set_passage_text").text = text

    def rename_passage(self, old_id: str, new_id: str, *, retarget: bool = False) -> int:
        """Rename a passage.

        By default choices that pointed at *old_id* are left alone and now
        dangle. With ``retarget=True`` they are rewritten to *new_id* in the
        same operation.

        Args:
            old_id: Current identifier.
            new_id: New identifier.
            retarget: Also rewrite choices that target *old_id*.

        Returns:
            Number of choices rewritten.

        Raises:
            PassageNotFoundError: If *old_id* does not exist.
            DuplicateIdentifierError: If *new_id* already exists. The graph
                is unchanged.
        """
        if old_id == new_id:
            self._require(old_id, "rename_passage")
            return 0
        self._require(old_id, "rename_passage")
        if self._store.has(new_id):
            raise DuplicateIdentifierError(new_id)

        self._store.rename(old_id, new_id)
        rewritten = 0
        if retarget:
            for _pid, passage in self._store.items():
                for choice in passage.choices:
                    if choice.target == old_id:
                        choice.target = new_id
                        rewritten += 1

        log.info("passage_renamed", old=old_id, new=new_id, retargeted=rewritten)
        return rewritten

    def delete_passage(self, passage_id: str) -> int:
        """Delete a passage and every choice that targets it.

        Deleting an id that does not exist is not an error; choices dangling
        to it are still stripped.

        Returns:
            Number of choices removed across the graph.
        """
        if self._store.has(passage_id):
            self._store.delete(passage_id)

        stripped = 0
        for _pid, passage in self._store.items():
            kept = [c for c in passage.choices if c.target != passage_id]
            stripped += len(passage.choices) - len(kept)
            passage.choices = kept

        log.info("passage_deleted", passage=passage_id, choices_removed=stripped)
        return stripped

    def unique_passage_id(self, base: str) -> str:
        """Return *base* if unused, else the first free ``base_1``, ``base_2``, ..."""
        if not self._store.has(base):
            return base
        n = 1
        while self._store.has(f"{base}_{n}"):
            n += 1
        return f"{base}_{n}"

    # -------------------------------------------------------------------------
    # Choice Operations
    # -------------------------------------------------------------------------

    def add_choice(self, passage_id: str, choice: Choice, index: int | None = None) -> None:
        """Add a choice to a passage, at the end or before *index*.

        Raises:
            PassageNotFoundError: If the passage does not exist.
        """
        passage = self._require(passage_id, "add_choice")
        if index is None:
            passage.choices.append(choice)
        else:
            passage.choices.insert(index, choice)

    def update_choice(self, passage_id: str, index: int, **fields: Any) -> Choice:
        """Update fields (text, target, condition, effect) of one choice.

        The updated choice is re-validated, so blank conditions and effects
        are normalized to None.

        Raises:
            PassageNotFoundError: If the passage does not exist.
            IndexError: If *index* is out of range.
        """
        passage = self._require(passage_id, "update_choice")
        current = passage.choices[index]
        updated = Choice.model_validate({**current.model_dump(), **fields})
        passage.choices[index] = updated
        return updated

    def remove_choice(self, passage_id: str, index: int) -> Choice:
        """Remove and return one choice.

        Raises:
            PassageNotFoundError: If the passage does not exist.
            IndexError: If *index* is out of range.
        """
        passage = self._require(passage_id, "remove_choice")
        return passage.choices.pop(index)

    def choices_targeting(self, passage_id: str) -> list[tuple[str, int, Choice]]:
        """Return (source id, index, choice) for every choice targeting *passage_id*."""
        return [
            (pid, i, choice)
            for pid, passage in self._store.items()
            for i, choice in enumerate(passage.choices)
            if choice.target == passage_id
        ]

    # -------------------------------------------------------------------------
    # Variable Operations
    # -------------------------------------------------------------------------

    def declare_variable(self, category: str, name: str, value: Any = None) -> Any:
        """Declare a new initial variable.

        Without a value, relationships start at 0 and inventory items and
        flags start false.

        Returns:
            The declared value.

        Raises:
            ValueError: If the category is unknown, the name is blank or the
                value has the wrong type for the category.
            DuplicateIdentifierError: If the variable is already declared.
        """
        values = self._category(category)
        if not name.strip():
            raise ValueError("Variable name must not be empty")
        if name in values:
            raise DuplicateIdentifierError(f"{category}.{name}", kind="Variable")
        values[name] = _check_variable_value(category, name, value)
        log.info("variable_declared", category=category, name=name, value=values[name])
        return values[name]

    def set_variable(self, category: str, name: str, value: Any) -> None:
        """Change the initial value of a declared variable.

        Raises:
            ValueError: If the category is unknown or the value has the
                wrong type.
            VariableNotFoundError: If the variable was never declared.
        """
        values = self._require_variable(category, name)
        values[name] = _check_variable_value(category, name, value)

    def remove_variable(self, category: str, name: str) -> Any:
        """Remove a declared variable and return its initial value.

        Conditions and effects that mention it are left alone; reads of it
        become missing-key reads.

        Raises:
            ValueError: If the category is unknown.
            VariableNotFoundError: If the variable was never declared.
        """
        values = self._require_variable(category, name)
        value = values.pop(name)
        log.info("variable_removed", category=category, name=name)
        return value

    def _category(self, category: str) -> dict[str, Any]:
        if category not in CATEGORIES:
            raise ValueError(
                f"Unknown variable category '{category}'. "
                f"Expected one of: {', '.join(CATEGORIES)}"
            )
        values: dict[str, Any] = getattr(self.variables, category)
        return values

    def _require_variable(self, category: str, name: str) -> dict[str, Any]:
        values = self._category(category)
        if name not in values:
            raise VariableNotFoundError(category, name, available=list(values))
        return values

    # -------------------------------------------------------------------------
    # Snapshots
    # -------------------------------------------------------------------------

    def snapshot(self) -> Snapshot:
        """Deep copy of passage text and choices, without editor positions."""
        return {
            pid: passage.model_dump(exclude={"position"}) for pid, passage in self._store.items()
        }

    def restore(self, snapshot: Snapshot) -> None:
        """Replace all passages with *snapshot*.

        Passages whose id survives keep their current editor position.
        """
        positions = {pid: p.position for pid, p in self._store.items()}
        restored: dict[str, Passage] = {}
        for pid, data in snapshot.items():
            passage = Passage.model_validate(data)
            passage.position = positions.get(pid)
            restored[pid] = passage
        self._store.replace_all(restored)

    # -------------------------------------------------------------------------
    # Utility
    # -------------------------------------------------------------------------

    def _require(self, passage_id: str, context: str) -> Passage:
        passage = self._store.get(passage_id)
        if passage is None:
            raise PassageNotFoundError(
                passage_id, available=self._store.ids(), context=context
            )
        return passage

    def __len__(self) -> int:
        return self._store.count()

    def __contains__(self, passage_id: object) -> bool:
        return isinstance(passage_id, str) and self._store.has(passage_id)

    def __repr__(self) -> str:
        """Return string representation of graph."""
        choice_count = sum(len(p.choices) for _pid, p in self._store.items())
        return f"StoryGraph(passages={self._store.count()}, choices={choice_count})"


def _check_variable_value(category: str, name: str, value: Any) -> Any:
    numeric = category == "relationships"
    if value is None:
        return 0 if numeric else False
    if numeric:
        if isinstance(value, bool) or not isinstance(value, int | float):
            raise ValueError(f"relationships.{name} must be a number, got {value!r}")
    elif not isinstance(value, bool):
        raise ValueError(f"{category}.{name} must be true or false, got {value!r}")
    return value


def _summarize_validation_error(error: ValidationError) -> str:
    """Condense a pydantic error into one line per problem (max 5)."""
    problems = []
    for item in error.errors()[:5]:
        loc = ".".join(str(part) for part in item["loc"])
        problems.append(f"{loc}: {item['msg']}")
    if error.error_count() > 5:
        problems.append(f"... and {error.error_count() - 5} more")
    return "; ".join(problems)
