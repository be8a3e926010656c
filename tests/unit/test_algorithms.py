"""Tests for script generation and reachability walks."""

from __future__ import annotations

from storyloom.graph import (
    StoryGraph,
    dangling_choices,
    ending_passages,
    generate_script,
    reachable_passages,
    unreachable_passages,
)
from storyloom.models import Choice
from tests.fixtures.story_fixtures import (
    make_chain_graph,
    make_cycle_graph,
    make_dangling_graph,
)


class TestGenerateScript:
    """Test the flattened branching script."""

    def test_key_story_script(self, key_story: StoryGraph) -> None:
        """The script nests each target under the choice that leads to it."""
        expected = (
            "start\n"
            "You wake in a quiet room.\n"
            "A door stands closed.\n"
            "\n"
            "→ Search the room → search [inventory.key = true]\n"
            "  search\n"
            "  Under the pillow you find a brass key.\n"
            "\n"
            "  → Go back → start\n"
            "\n"
            "→ Open the door → outside [if inventory.key]\n"
            "  outside\n"
            "  The door swings open onto a bright morning.\n"
            "\n"
            "\n"
            "\n"
        )

        assert generate_script(key_story, "start") == expected

    def test_cycle_terminates(self) -> None:
        """Each passage of a cycle prints once."""
        script = generate_script(make_cycle_graph(), "a")

        assert script == (
            "a\nPassage A\n\n→ to b → b\n  b\n  Passage B\n\n  → to a → a\n\n\n"
        )

    def test_each_passage_printed_once(self) -> None:
        """A passage reachable by two routes prints under the first only."""
        graph = StoryGraph.empty()
        graph.create_passage(
            "start",
            "Fork",
            [Choice(text="left", target="end"), Choice(text="right", target="end")],
        )
        graph.create_passage("end", "Fin")

        script = generate_script(graph, "start")

        assert script.count("  end\n") == 1
        assert "→ right → end\n" in script

    def test_dangling_choice_has_no_expansion(self) -> None:
        """A missing target prints the choice line only."""
        script = generate_script(make_dangling_graph(), "start")

        assert script == "start\nHello\n\n→ Leave → missing\n\n"

    def test_missing_entry_is_empty(self, key_story: StoryGraph) -> None:
        """An unknown entry produces no output."""
        assert generate_script(key_story, "nowhere") == ""

    def test_custom_indent(self) -> None:
        """The indent unit repeats per level."""
        script = generate_script(make_chain_graph(3), "p0", indent="\t")

        assert "\t\tp2\n\t\tPassage 2\n" in script

    def test_multiline_body_indented_per_line(self) -> None:
        """Every body line of a nested passage carries its depth indent."""
        graph = StoryGraph.empty()
        graph.create_passage("start", "Hi", [Choice(text="On", target="hall")])
        graph.create_passage("hall", "  Long hall.\nPortraits stare.\n")

        assert generate_script(graph) == (
            "start\nHi\n\n→ On → hall\n  hall\n  Long hall.\n  Portraits stare.\n\n\n\n"
        )

    def test_deep_chain_does_not_recurse(self) -> None:
        """A very long chain is walked without hitting the recursion limit."""
        script = generate_script(make_chain_graph(1500), "p0")

        assert script.count("→ next →") == 1499
        assert f"{'  ' * 1499}p1499\n" in script

    def test_graph_not_modified(self, key_story: StoryGraph) -> None:
        """Generating a script is read-only."""
        before = key_story.snapshot()

        generate_script(key_story, "start")

        assert key_story.snapshot() == before


class TestReachability:
    """Test the reachability helpers."""

    def test_reachable_from_start(self, key_story: StoryGraph) -> None:
        """Gated choices still count as paths."""
        assert set(reachable_passages(key_story, "start")) == {"start", "search", "outside"}

    def test_unreachable(self, key_story: StoryGraph) -> None:
        """Orphans are reported in graph order."""
        key_story.create_passage("orphan", "Nobody comes here.")

        assert unreachable_passages(key_story, "start") == ["orphan"]

    def test_missing_entry_reaches_nothing(self, key_story: StoryGraph) -> None:
        """With no entry, every passage is unreachable."""
        assert reachable_passages(key_story, "nowhere") == []
        assert unreachable_passages(key_story, "nowhere") == ["start", "search", "outside"]

    def test_dangling_choices(self) -> None:
        """Choices to missing passages are listed with their position."""
        found = dangling_choices(make_dangling_graph())

        assert [(pid, i, c.target) for pid, i, c in found] == [("start", 0, "missing")]

    def test_endings(self, key_story: StoryGraph) -> None:
        """Passages without a live outgoing choice are endings."""
        assert ending_passages(key_story) == ["outside"]
        assert ending_passages(make_dangling_graph()) == ["start"]
        assert ending_passages(make_cycle_graph()) == []
