"""Tests for StoryGraph."""

from __future__ import annotations

from typing import Any

import pytest

from storyloom.graph import (
    DuplicateIdentifierError,
    InvalidDocumentError,
    PassageNotFoundError,
    StoryGraph,
    VariableNotFoundError,
)
from storyloom.models import Choice
from tests.fixtures.story_fixtures import make_cycle_graph, make_dangling_graph


def all_targets(graph: StoryGraph) -> list[str]:
    return [c.target for _pid, p in graph.passages() for c in p.choices]


class TestConstruction:
    """Test building graphs from documents."""

    def test_from_dict(self, story_data: dict[str, Any]) -> None:
        """Passages, variables and title come from the document."""
        graph = StoryGraph.from_dict(story_data)

        assert graph.title == "The Locked Door"
        assert graph.passage_ids() == ["start", "search", "outside"]
        assert graph.variables.health == 10
        assert len(graph) == 3

    def test_from_dict_does_not_share_state(self, story_data: dict[str, Any]) -> None:
        """Editing the graph leaves the input data alone."""
        graph = StoryGraph.from_dict(story_data)

        graph.set_passage_text("search", "Nothing here.")

        assert story_data["passages"]["search"]["text"].startswith("Under the pillow")

    def test_top_level_must_be_mapping(self) -> None:
        """A list document is rejected."""
        with pytest.raises(InvalidDocumentError, match="top level must be a mapping"):
            StoryGraph.from_dict(["start"])

    def test_passages_required(self) -> None:
        """A document without passages is rejected."""
        with pytest.raises(InvalidDocumentError, match="missing 'passages'"):
            StoryGraph.from_dict({"title": "Nothing"}, source="empty.yaml")

    def test_bad_choice_is_summarized(self) -> None:
        """Validation problems name the offending location."""
        data = {"passages": {"start": {"choices": [{"text": "Go"}]}}}

        with pytest.raises(InvalidDocumentError) as exc_info:
            StoryGraph.from_dict(data)

        assert "passages.start.choices.0.target" in exc_info.value.reason

    def test_to_document_round_trip(self, key_story: StoryGraph) -> None:
        """A graph survives conversion to a document and back."""
        rebuilt = StoryGraph.from_document(key_story.to_document())

        assert rebuilt.snapshot() == key_story.snapshot()
        assert rebuilt.variables == key_story.variables

    def test_repr(self, key_story: StoryGraph) -> None:
        """repr shows passage and choice counts."""
        assert repr(key_story) == "StoryGraph(passages=3, choices=3)"


class TestPassageOperations:
    """Test creating, renaming and deleting passages."""

    def test_create_passage(self) -> None:
        """A created passage can be read back."""
        graph = StoryGraph.empty()

        graph.create_passage("start", "Hello")

        assert "start" in graph
        assert graph.get_passage("start").text == "Hello"  # type: ignore[union-attr]

    def test_create_duplicate_raises(self) -> None:
        """Creating an existing id fails."""
        graph = make_cycle_graph()

        with pytest.raises(DuplicateIdentifierError) as exc_info:
            graph.create_passage("a", "Again")

        assert exc_info.value.passage_id == "a"
        assert graph.get_passage("a").text == "Passage A"  # type: ignore[union-attr]

    def test_set_text_missing_passage(self) -> None:
        """Editing a missing passage raises with suggestions."""
        graph = make_cycle_graph()

        with pytest.raises(PassageNotFoundError) as exc_info:
            graph.set_passage_text("c", "text")

        assert "Existing passages: a, b" in exc_info.value.to_feedback()

    def test_not_found_suggests_close_match(self, key_story: StoryGraph) -> None:
        """Typos get a 'did you mean' hint."""
        with pytest.raises(PassageNotFoundError) as exc_info:
            key_story.rename_passage("serch", "look")

        assert exc_info.value.suggestions() == ["search"]

    def test_rename_leaves_choices_dangling(self) -> None:
        """Without retarget, choices keep the old id."""
        graph = make_cycle_graph()

        rewritten = graph.rename_passage("b", "c")

        assert rewritten == 0
        assert graph.passage_ids() == ["a", "c"]
        assert all_targets(graph) == ["b", "a"]

    def test_rename_with_retarget(self) -> None:
        """With retarget, choices follow the passage."""
        graph = make_cycle_graph()

        rewritten = graph.rename_passage("b", "c", retarget=True)

        assert rewritten == 1
        assert all_targets(graph) == ["c", "a"]

    def test_rename_onto_existing_raises(self) -> None:
        """Renaming never merges two passages."""
        graph = make_cycle_graph()
        before = graph.snapshot()

        with pytest.raises(DuplicateIdentifierError):
            graph.rename_passage("a", "b")

        assert graph.snapshot() == before

    def test_rename_there_and_back(self) -> None:
        """Renaming a->b->a restores the original graph."""
        graph = StoryGraph.empty()
        graph.create_passage("a", "First", [Choice(text="loop", target="a")])
        before = graph.snapshot()

        graph.rename_passage("a", "b", retarget=True)
        graph.rename_passage("b", "a", retarget=True)

        assert graph.snapshot() == before

    def test_rename_to_same_id(self) -> None:
        """Renaming to the same id is a no-op."""
        graph = make_cycle_graph()

        assert graph.rename_passage("a", "a") == 0
        assert graph.passage_ids() == ["a", "b"]

    def test_delete_cascades_to_choices(self, key_story: StoryGraph) -> None:
        """No choice targets a deleted passage afterwards."""
        removed = key_story.delete_passage("start")

        assert removed == 1
        assert "start" not in key_story
        assert "start" not in all_targets(key_story)

    def test_delete_missing_strips_dangling(self) -> None:
        """Deleting an absent id still removes choices that point at it."""
        graph = make_dangling_graph()

        removed = graph.delete_passage("missing")

        assert removed == 1
        assert graph.get_passage("start").choices == []  # type: ignore[union-attr]

    def test_unique_passage_id(self) -> None:
        """Suffixes count up until an unused id is found."""
        graph = make_cycle_graph()
        graph.create_passage("a_1")

        assert graph.unique_passage_id("c") == "c"
        assert graph.unique_passage_id("a") == "a_2"


class TestChoiceOperations:
    """Test editing choices."""

    def test_add_choice_at_index(self, key_story: StoryGraph) -> None:
        """Choices can be inserted before an index."""
        key_story.add_choice("start", Choice(text="Wait", target="start"), index=0)

        choices = key_story.get_passage("start").choices  # type: ignore[union-attr]
        assert [c.text for c in choices] == ["Wait", "Search the room", "Open the door"]

    def test_update_choice_normalizes(self, key_story: StoryGraph) -> None:
        """Updated choices are validated again."""
        updated = key_story.update_choice("start", 1, condition="  ", text="Leave")

        assert updated.condition is None
        assert updated.text == "Leave"
        assert updated.target == "outside"

    def test_remove_choice(self, key_story: StoryGraph) -> None:
        """Removing returns the removed choice."""
        removed = key_story.remove_choice("search", 0)

        assert removed.target == "start"
        assert key_story.get_passage("search").choices == []  # type: ignore[union-attr]

    def test_remove_choice_bad_index(self, key_story: StoryGraph) -> None:
        """Out of range indexes raise IndexError."""
        with pytest.raises(IndexError):
            key_story.remove_choice("search", 5)

    def test_choices_targeting(self, key_story: StoryGraph) -> None:
        """Incoming choices are listed with their source and index."""
        incoming = key_story.choices_targeting("start")

        assert [(pid, i) for pid, i, _c in incoming] == [("search", 0)]


class TestVariableOperations:
    """Test declaring, updating and removing initial variables."""

    @pytest.mark.parametrize(
        ("category", "expected"),
        [("inventory", False), ("relationships", 0), ("flags", False)],
    )
    def test_declare_uses_category_default(self, category: str, expected: Any) -> None:
        """Relationships start at 0, everything else false."""
        graph = StoryGraph.empty()

        value = graph.declare_variable(category, "x")

        assert value == expected
        assert type(value) is type(expected)
        assert getattr(graph.variables, category) == {"x": expected}

    def test_declare_with_value(self) -> None:
        """An explicit value of the right type is kept."""
        graph = StoryGraph.empty()

        graph.declare_variable("relationships", "mara", 2.5)
        graph.declare_variable("flags", "open", True)

        assert graph.variables.relationships == {"mara": 2.5}
        assert graph.variables.flags == {"open": True}

    def test_declare_duplicate_raises(self, key_story: StoryGraph) -> None:
        """A name can be declared once per category."""
        with pytest.raises(DuplicateIdentifierError, match="Variable 'flags.hasKey'"):
            key_story.declare_variable("flags", "hasKey", True)

        assert key_story.variables.flags == {"hasKey": False}

    def test_same_name_in_other_category(self, key_story: StoryGraph) -> None:
        """Categories are separate namespaces."""
        key_story.declare_variable("flags", "key")

        assert key_story.variables.inventory == {"key": False}
        assert key_story.variables.flags == {"hasKey": False, "key": False}

    @pytest.mark.parametrize(
        ("category", "name", "value", "message"),
        [
            ("health", "x", None, "Unknown variable category"),
            ("stats", "x", None, "Unknown variable category"),
            ("flags", "  ", None, "must not be empty"),
            ("relationships", "mara", True, "must be a number"),
            ("relationships", "mara", "3", "must be a number"),
            ("inventory", "lamp", 1, "must be true or false"),
        ],
    )
    def test_declare_rejects_bad_input(
        self, category: str, name: str, value: Any, message: str
    ) -> None:
        """Unknown categories, blank names and mistyped values are refused."""
        graph = StoryGraph.empty()

        with pytest.raises(ValueError, match=message):
            graph.declare_variable(category, name, value)

    def test_set_variable(self, key_story: StoryGraph) -> None:
        """set_variable changes the initial value."""
        key_story.set_variable("relationships", "mara", 3)

        assert key_story.variables.relationships == {"mara": 3}

    def test_set_undeclared_raises(self, key_story: StoryGraph) -> None:
        """Only declared variables can be changed."""
        with pytest.raises(VariableNotFoundError) as exc_info:
            key_story.set_variable("relationships", "marra", 3)

        assert "Did you mean: mara?" in exc_info.value.to_feedback()

    def test_remove_variable(self, key_story: StoryGraph) -> None:
        """remove_variable returns the value it dropped."""
        assert key_story.remove_variable("inventory", "key") is False
        assert key_story.variables.inventory == {}

    def test_remove_undeclared_raises(self) -> None:
        """Removing an unknown variable is an error."""
        graph = StoryGraph.empty()

        with pytest.raises(VariableNotFoundError) as exc_info:
            graph.remove_variable("flags", "open")

        assert "No flags variables are declared yet." in exc_info.value.to_feedback()

    def test_declared_variables_round_trip(self, key_story: StoryGraph) -> None:
        """Declarations are part of the document."""
        key_story.declare_variable("inventory", "lamp", True)

        rebuilt = StoryGraph.from_document(key_story.to_document())

        assert rebuilt.variables.inventory == {"key": False, "lamp": True}


class TestSnapshots:
    """Test snapshot and restore."""

    def test_snapshot_excludes_position(self) -> None:
        """Editor positions are not part of a snapshot."""
        graph = StoryGraph.empty()
        graph.create_passage("start", "Hi", position=(1.0, 2.0))

        assert graph.snapshot() == {"start": {"text": "Hi", "choices": []}}

    def test_restore_keeps_positions(self) -> None:
        """Restoring keeps the current position of surviving passages."""
        graph = StoryGraph.empty()
        graph.create_passage("start", "Hi", position=(1.0, 2.0))
        snap = graph.snapshot()
        graph.set_passage_text("start", "Changed")
        graph.get_passage("start").position = (5.0, 5.0)  # type: ignore[union-attr]

        graph.restore(snap)

        passage = graph.get_passage("start")
        assert passage is not None
        assert passage.text == "Hi"
        assert passage.position == (5.0, 5.0)

    def test_snapshot_is_independent(self, key_story: StoryGraph) -> None:
        """Later edits do not change a taken snapshot."""
        snap = key_story.snapshot()

        key_story.delete_passage("search")

        assert "search" in snap
        assert snap["start"]["choices"][0]["target"] == "search"
