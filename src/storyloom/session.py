"""Editing session: one story graph with its undo/redo history.

Every user-visible edit goes through a StorySession so that it can be undone.
The session snapshots the passages before the edit, runs it, and records the
snapshot only if the edit succeeded and actually changed something. An
``on_change`` callback tells the caller (an editor view, a CLI) to refresh
after edits, undos and redos.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from storyloom.graph.algorithms import DEFAULT_ENTRY, generate_script
from storyloom.graph.graph import StoryGraph
from storyloom.graph.history import MAX_HISTORY, HistoryBuffer
from storyloom.observability.logging import get_logger
from storyloom.runtime.player import DEFAULT_END_TEXT, Player

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator

    from storyloom.models.story import Choice, Passage

log = get_logger(__name__)


class StorySession:
    """Runtime context bundling a graph, its history and a change callback.

    Attributes:
        graph: The story being edited.
        history: Undo/redo snapshots of the graph's passages.
        entry_id: Passage used for scripts and play.
    """

    def __init__(
        self,
        graph: StoryGraph | None = None,
        *,
        history_depth: int = MAX_HISTORY,
        on_change: Callable[[StorySession], None] | None = None,
        entry_id: str = DEFAULT_ENTRY,
    ) -> None:
        self.graph = graph if graph is not None else StoryGraph.empty()
        self.history = HistoryBuffer(history_depth)
        self.on_change = on_change
        self.entry_id = entry_id

    # -------------------------------------------------------------------------
    # Edit Tracking
    # -------------------------------------------------------------------------

    @contextmanager
    def edit(self, action: str) -> Iterator[StoryGraph]:
        """Context manager that records one undoable edit.

        Args:
            action: Short name of the edit, for logging.

        Yields:
            The graph to mutate.
        """
        before = self.graph.snapshot()
        yield self.graph
        if self.graph.snapshot() == before:
            log.debug("edit_unchanged", action=action)
            return
        self.history.push(before)
        log.debug("edit_recorded", action=action, undo_depth=len(self.history))
        self._notify()

    def undo(self) -> bool:
        """Revert the most recent edit.

        Returns:
            True if a snapshot was installed, False if there was nothing to undo.
        """
        snapshot = self.history.undo(self.graph.snapshot())
        if snapshot is None:
            log.info("nothing_to_undo")
            return False
        self.graph.restore(snapshot)
        log.debug("undo_applied", undo_depth=len(self.history))
        self._notify()
        return True

    def redo(self) -> bool:
        """Re-apply the most recently undone edit.

        Returns:
            True if a snapshot was installed, False if there was nothing to redo.
        """
        snapshot = self.history.redo(self.graph.snapshot())
        if snapshot is None:
            log.info("nothing_to_redo")
            return False
        self.graph.restore(snapshot)
        log.debug("redo_applied", undo_depth=len(self.history))
        self._notify()
        return True

    @property
    def can_undo(self) -> bool:
        return self.history.can_undo

    @property
    def can_redo(self) -> bool:
        return self.history.can_redo

    def _notify(self) -> None:
        if self.on_change is not None:
            self.on_change(self)

    # -------------------------------------------------------------------------
    # Graph Mutations
    # -------------------------------------------------------------------------

    def create_passage(
        self,
        passage_id: str,
        text: str = "",
        choices: Iterable[Choice] = (),
        position: tuple[float, float] | None = None,
    ) -> Passage:
        with self.edit("create_passage") as graph:
            return graph.create_passage(passage_id, text, choices, position)

    def put_passage(self, passage_id: str, passage: Passage) -> None:
        with self.edit("put_passage") as graph:
            graph.put_passage(passage_id, passage)

    def set_passage_text(self, passage_id: str, text: str) -> None:
        with self.edit("set_passage_text") as graph:
            graph.set_passage_text(passage_id, text)

    def rename_passage(self, old_id: str, new_id: str, *, retarget: bool = False) -> int:
        with self.edit("rename_passage") as graph:
            return graph.rename_passage(old_id, new_id, retarget=retarget)

    def delete_passage(self, passage_id: str) -> int:
        with self.edit("delete_passage") as graph:
            return graph.delete_passage(passage_id)

    def add_choice(self, passage_id: str, choice: Choice, index: int | None = None) -> None:
        with self.edit("add_choice") as graph:
            graph.add_choice(passage_id, choice, index)

    def update_choice(self, passage_id: str, index: int, **fields: Any) -> Choice:
        with self.edit("update_choice") as graph:
            return graph.update_choice(passage_id, index, **fields)

    def remove_choice(self, passage_id: str, index: int) -> Choice:
        with self.edit("remove_choice") as graph:
            return graph.remove_choice(passage_id, index)

    # -------------------------------------------------------------------------
    # Variable Declarations
    # -------------------------------------------------------------------------
    # History snapshots hold passages only, so these edits are not undoable.

    def declare_variable(self, category: str, name: str, value: Any = None) -> Any:
        declared = self.graph.declare_variable(category, name, value)
        self._notify()
        return declared

    def set_variable(self, category: str, name: str, value: Any) -> None:
        self.graph.set_variable(category, name, value)
        self._notify()

    def remove_variable(self, category: str, name: str) -> Any:
        value = self.graph.remove_variable(category, name)
        self._notify()
        return value

    # -------------------------------------------------------------------------
    # Read-only Views
    # -------------------------------------------------------------------------

    def generate_script(self, *, indent: str = "  ") -> str:
        """Flatten the story from the session's entry passage."""
        return generate_script(self.graph, self.entry_id, indent=indent)

    def start_player(self, end_text: str = DEFAULT_END_TEXT) -> Player:
        """Create a player positioned at the session's entry passage."""
        return Player(self.graph, entry_id=self.entry_id, end_text=end_text)

    def __repr__(self) -> str:
        return f"StorySession({self.graph!r}, history={self.history!r})"
