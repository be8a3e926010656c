"""Player state machine.

A Player walks a StoryGraph one choice at a time. Its state is the triple
(current passage id, variable values, choice history). Selecting a choice
applies the choice's effect, records the step and moves to the target. A
current id that does not resolve to a passage is terminal: the view shows
the end text and no choices.
"""

from __future__ import annotations

import base64
import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from storyloom.expressions import VariableStore, apply_effect, evaluate_condition
from storyloom.graph.algorithms import DEFAULT_ENTRY
from storyloom.models.progress import HistoryEntry, PlayerState
from storyloom.observability.logging import get_logger

if TYPE_CHECKING:
    from storyloom.graph.graph import StoryGraph
    from storyloom.models.story import Choice, Passage

log = get_logger(__name__)

DEFAULT_END_TEXT = "The end."


@dataclass
class ChoiceUnavailableError(Exception):
    """Raised when selecting a choice the player cannot take right now.

    Attributes:
        passage_id: Current passage of the player.
        reason: Why the choice cannot be taken.
    """

    passage_id: str
    reason: str

    def __post_init__(self) -> None:
        super().__init__(f"Choice unavailable at '{self.passage_id}': {self.reason}")


@dataclass
class InvalidProgressError(Exception):
    """Raised when a saved progress blob cannot be decoded or validated."""

    reason: str

    def __post_init__(self) -> None:
        super().__init__(f"Invalid progress data: {self.reason}")


@dataclass(frozen=True)
class ChoiceView:
    """An enabled choice as shown to the player."""

    index: int
    text: str
    target: str


@dataclass(frozen=True)
class PassageView:
    """What the player sees at the current passage."""

    passage_id: str
    text: str
    choices: list[ChoiceView] = field(default_factory=list)
    is_terminal: bool = False


class Player:
    """Walks a story graph, tracking position, variables and history.

    Args:
        graph: Story to play. Read, never modified.
        entry_id: Passage to start at.
        end_text: Text shown when the current passage does not exist.
    """

    def __init__(
        self,
        graph: StoryGraph,
        entry_id: str = DEFAULT_ENTRY,
        end_text: str = DEFAULT_END_TEXT,
    ) -> None:
        self.graph = graph
        self.entry_id = entry_id
        self.end_text = end_text
        self.current_passage_id = entry_id
        self.variables = VariableStore.from_variables(graph.variables)
        self.history: list[HistoryEntry] = []

    def restart(self) -> None:
        """Return to the entry passage with fresh variables and no history."""
        self.current_passage_id = self.entry_id
        self.variables = VariableStore.from_variables(self.graph.variables)
        self.history = []
        log.debug("player_restarted", entry=self.entry_id)

    # -- Reading ---------------------------------------------------------------

    @property
    def current_passage(self) -> Passage | None:
        return self.graph.get_passage(self.current_passage_id)

    @property
    def is_terminal(self) -> bool:
        return self.current_passage is None

    def enabled_choices(self) -> list[tuple[int, Choice]]:
        """Return (declared index, choice) for choices whose condition holds."""
        passage = self.current_passage
        if passage is None:
            return []
        return [
            (i, choice)
            for i, choice in enumerate(passage.choices)
            if evaluate_condition(choice.condition, self.variables)
        ]

    def view(self) -> PassageView:
        """Return what the player currently sees. Does not change state."""
        passage = self.current_passage
        if passage is None:
            return PassageView(self.current_passage_id, self.end_text, [], is_terminal=True)
        choices = [ChoiceView(i, c.text, c.target) for i, c in self.enabled_choices()]
        return PassageView(self.current_passage_id, passage.text.strip(), choices)

    # -- Transitions -----------------------------------------------------------

    def select_choice(self, choice: Choice | int) -> None:
        """Take a choice from the current passage.

        Args:
            choice: The Choice object, or its declared index in the current
                passage.

        Raises:
            ChoiceUnavailableError: If the player is at an ending, the choice
                is not part of the current passage, or its condition is false.
        """
        passage = self.current_passage
        if passage is None:
            raise ChoiceUnavailableError(self.current_passage_id, "the story has ended")

        selected = self._resolve(passage, choice)
        if not evaluate_condition(selected.condition, self.variables):
            raise ChoiceUnavailableError(
                self.current_passage_id, f"condition '{selected.condition}' is not met"
            )

        apply_effect(selected.effect, self.variables)
        self.history.append(
            HistoryEntry(passage=self.current_passage_id, choice_text=selected.text)
        )
        log.debug(
            "choice_selected",
            passage=self.current_passage_id,
            choice=selected.text,
            target=selected.target,
        )
        self.current_passage_id = selected.target

    def _resolve(self, passage: Passage, choice: Choice | int) -> Choice:
        if isinstance(choice, int):
            if not 0 <= choice < len(passage.choices):
                raise ChoiceUnavailableError(
                    self.current_passage_id, f"no choice at index {choice}"
                )
            return passage.choices[choice]
        for candidate in passage.choices:
            if candidate is choice:
                return candidate
        if choice in passage.choices:
            return choice
        raise ChoiceUnavailableError(
            self.current_passage_id, f"'{choice.text}' is not a choice of this passage"
        )

    # -- Exports ---------------------------------------------------------------

    def transcript(self) -> str:
        """Render the playthrough so far as prose.

        Each step contributes the passage text and a ``You chose: "..."``
        line; the current passage's text closes the transcript when the
        current passage exists.
        """
        blocks: list[str] = []
        for entry in self.history:
            passage = self.graph.get_passage(entry.passage)
            if passage is not None:
                blocks.append(passage.text.strip())
            blocks.append(f'You chose: "{entry.choice_text}"')
        final = self.current_passage
        if final is not None:
            blocks.append(final.text.strip())
        return "".join(f"{block}\n\n" for block in blocks)

    # -- Progress --------------------------------------------------------------

    @property
    def state(self) -> PlayerState:
        return PlayerState(
            current_passage_id=self.current_passage_id,
            variables_state=self.variables.to_dict(),
            history=list(self.history),
        )

    def save_progress(self) -> str:
        """Encode the player state as a base64 JSON blob."""
        payload = self.state.model_dump_json(by_alias=True)
        return base64.b64encode(payload.encode("utf-8")).decode("ascii")

    def load_progress(self, blob: str) -> None:
        """Replace the player state with one decoded from *blob*.

        Raises:
            InvalidProgressError: If the blob cannot be decoded or validated.
                The player is left unchanged.
        """
        state = decode_progress(blob)
        self.current_passage_id = state.current_passage_id
        self.variables = VariableStore(state.variables_state)
        self.history = list(state.history)
        log.info("progress_loaded", passage=self.current_passage_id, steps=len(self.history))

    @classmethod
    def from_progress(
        cls,
        graph: StoryGraph,
        blob: str,
        *,
        entry_id: str = DEFAULT_ENTRY,
        end_text: str = DEFAULT_END_TEXT,
    ) -> Player:
        """Create a player and restore its state from *blob*.

        Raises:
            InvalidProgressError: If the blob cannot be decoded or validated.
        """
        player = cls(graph, entry_id=entry_id, end_text=end_text)
        player.load_progress(blob)
        return player

    def __repr__(self) -> str:
        return f"Player(current={self.current_passage_id!r}, steps={len(self.history)})"


def decode_progress(blob: str) -> PlayerState:
    """Decode and validate a progress blob.

    Raises:
        InvalidProgressError: If the blob is not base64 JSON of a player state.
    """
    try:
        raw = base64.b64decode(blob.strip(), validate=True)
        data: Any = json.loads(raw.decode("utf-8"))
        return PlayerState.model_validate(data)
    except ValueError as e:
        # binascii, unicode, JSON and pydantic errors are all ValueErrors
        raise InvalidProgressError(str(e).splitlines()[0] if str(e) else type(e).__name__) from e
