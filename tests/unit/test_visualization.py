"""Tests for story map extraction and rendering."""

from __future__ import annotations

from storyloom.graph import StoryGraph
from storyloom.models import Choice
from storyloom.visualization import build_story_map, render_dot, render_mermaid
from tests.fixtures.story_fixtures import make_dangling_graph


class TestBuildStoryMap:
    """Test map extraction."""

    def test_nodes_and_edges(self, key_story: StoryGraph) -> None:
        """Every passage is a node and every choice an edge."""
        story_map = build_story_map(key_story, "start")

        assert [n.id for n in story_map.nodes] == ["start", "search", "outside"]
        assert [(e.from_id, e.to_id) for e in story_map.edges] == [
            ("start", "search"),
            ("start", "outside"),
            ("search", "start"),
        ]

    def test_node_flags_and_labels(self, key_story: StoryGraph) -> None:
        """Entry and ending nodes are marked; labels use the first line."""
        nodes = {n.id: n for n in build_story_map(key_story, "start").nodes}

        assert nodes["start"].is_entry
        assert nodes["start"].label == "start: You wake in a quiet room."
        assert nodes["outside"].is_ending
        assert nodes["outside"].label == "outside: The door swings open onto a bright mo..."

    def test_missing_target_node(self) -> None:
        """Dangling choices get a placeholder node."""
        story_map = build_story_map(make_dangling_graph())

        missing = story_map.nodes[-1]
        assert missing.id == "missing"
        assert missing.is_missing
        assert story_map.edges[0].is_dangling

    def test_reachable_only(self, key_story: StoryGraph) -> None:
        """Unreachable passages can be left out."""
        key_story.create_passage("orphan", "Lost.", [Choice(text="Back", target="start")])

        full = build_story_map(key_story)
        trimmed = build_story_map(key_story, reachable_only=True)

        assert any(n.id == "orphan" and n.is_unreachable for n in full.nodes)
        assert all(n.id != "orphan" for n in trimmed.nodes)
        assert all(e.from_id != "orphan" for e in trimmed.edges)


class TestRenderers:
    """Test DOT and Mermaid output."""

    def test_dot(self, key_story: StoryGraph) -> None:
        """DOT output has a node per passage and styled gated edges."""
        dot = render_dot(build_story_map(key_story))

        assert dot.startswith("digraph story {")
        assert dot.endswith("}")
        assert '"start" -> "outside" [label="Open the door" color="#FF8C00" penwidth="2"];' in dot
        assert "shape=doubleoctagon" in dot

    def test_dot_dangling_and_no_labels(self) -> None:
        """Dangling edges are dashed; labels can be dropped."""
        dot = render_dot(build_story_map(make_dangling_graph()), no_labels=True)

        assert '"start" -> "missing" [style="dashed"];' in dot
        assert "Leave" not in dot

    def test_dot_escapes_quotes(self) -> None:
        """Quotes in labels are escaped."""
        graph = StoryGraph.empty()
        graph.create_passage("start", 'She said "hi"')

        assert 'She said \\"hi\\"' in render_dot(build_story_map(graph))

    def test_mermaid(self, key_story: StoryGraph) -> None:
        """Mermaid output uses prefixed ids and highlights gated links."""
        mermaid = render_mermaid(build_story_map(key_story))

        assert mermaid.startswith("graph LR")
        assert '  p_start["start: You wake in a quiet room."]:::entry' in mermaid
        assert '  p_start -->|"Open the door"| p_outside' in mermaid
        assert "linkStyle 1 stroke:#FF8C00" in mermaid

    def test_mermaid_sanitizes_ids(self) -> None:
        """Ids with punctuation become safe identifiers."""
        graph = StoryGraph.empty()
        graph.create_passage("the-end", "Bye", [Choice(text="Again", target="gone away")])

        mermaid = render_mermaid(build_story_map(graph, "the-end"))

        assert "p_the_end -.->" in mermaid
        assert 'p_gone_away(["gone away (missing)"]):::missing' in mermaid
