"""Story map visualization.

Extracts passage/choice structure from a StoryGraph and renders it as
DOT (Graphviz) or Mermaid markup, for reviewing a story's shape outside
an editor.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from storyloom.graph.algorithms import DEFAULT_ENTRY, ending_passages, reachable_passages
from storyloom.observability.logging import get_logger

if TYPE_CHECKING:
    from storyloom.graph.graph import StoryGraph

log = get_logger(__name__)

_PASSAGE_COLOR = "#ADD8E6"  # light blue
_ENTRY_COLOR = "#90EE90"  # light green
_ENDING_COLOR = "#FFB6C1"  # light pink
_UNREACHABLE_COLOR = "#D3D3D3"  # light grey
_MISSING_COLOR = "#FFFFFF"
_CONDITION_COLOR = "#FF8C00"  # dark orange for gated choices
_EFFECT_COLOR = "#6A5ACD"  # slate blue for state-changing choices


@dataclass
class MapNode:
    """A passage node on the map."""

    id: str
    label: str
    is_entry: bool = False
    is_ending: bool = False
    is_unreachable: bool = False
    is_missing: bool = False


@dataclass
class MapEdge:
    """A choice edge on the map."""

    from_id: str
    to_id: str
    label: str = ""
    condition: str | None = None
    effect: str | None = None
    is_dangling: bool = False


@dataclass
class StoryMap:
    """Complete visualization data extracted from a story graph."""

    nodes: list[MapNode]
    edges: list[MapEdge] = field(default_factory=list)
    entry_id: str = DEFAULT_ENTRY


def build_story_map(
    graph: StoryGraph,
    entry_id: str = DEFAULT_ENTRY,
    *,
    reachable_only: bool = False,
) -> StoryMap:
    """Extract visualization data from a story graph.

    Choices whose target does not exist get a placeholder node marked
    ``is_missing`` so the dead end is visible.

    Args:
        graph: Story to map.
        entry_id: Passage marked as the entry point.
        reachable_only: If True, include only passages reachable from *entry_id*.

    Returns:
        StoryMap with nodes and edges in graph order.
    """
    reachable = set(reachable_passages(graph, entry_id))
    endings = set(ending_passages(graph))
    visible = reachable if reachable_only else set(graph.passage_ids())

    nodes: list[MapNode] = []
    edges: list[MapEdge] = []
    missing: list[str] = []

    for pid, passage in graph.passages():
        if pid not in visible:
            continue
        first_line = passage.text.strip().split("\n", 1)[0]
        label = f"{pid}: {_truncate(first_line, 40)}" if first_line else pid
        nodes.append(
            MapNode(
                id=pid,
                label=label,
                is_entry=pid == entry_id,
                is_ending=pid in endings,
                is_unreachable=pid not in reachable,
            )
        )
        for choice in passage.choices:
            dangling = not graph.has_passage(choice.target)
            if not dangling and choice.target not in visible:
                continue
            if dangling and choice.target not in missing:
                missing.append(choice.target)
            edges.append(
                MapEdge(
                    from_id=pid,
                    to_id=choice.target,
                    label=choice.text,
                    condition=choice.condition,
                    effect=choice.effect,
                    is_dangling=dangling,
                )
            )

    nodes.extend(
        MapNode(id=target, label=f"{target} (missing)", is_missing=True) for target in missing
    )

    log.info(
        "story_map_built",
        nodes=len(nodes),
        edges=len(edges),
        missing=len(missing),
        reachable_only=reachable_only,
    )
    return StoryMap(nodes=nodes, edges=edges, entry_id=entry_id)


def render_dot(story_map: StoryMap, *, no_labels: bool = False) -> str:
    """Render a StoryMap as DOT (Graphviz) markup.

    Args:
        story_map: Map data.
        no_labels: If True, omit choice labels on edges.

    Returns:
        DOT format string.
    """
    lines = [
        "digraph story {",
        "  rankdir=LR;",
        '  node [fontname="Helvetica" fontsize=10 style="filled,solid"];',
        '  edge [fontname="Helvetica" fontsize=8];',
        "",
    ]

    for node in story_map.nodes:
        attrs = _dot_node_attrs(node)
        attr_str = " ".join(f"{k}={v}" for k, v in attrs.items())
        lines.append(f'  "{_dot_escape(node.id)}" [{attr_str}];')

    lines.append("")

    for edge in story_map.edges:
        edge_attrs: dict[str, str] = {}
        if not no_labels and edge.label:
            edge_attrs["label"] = f'"{_dot_escape(edge.label)}"'
        # A condition takes precedence over an effect for the edge color.
        if edge.condition:
            edge_attrs["color"] = f'"{_CONDITION_COLOR}"'
            edge_attrs["penwidth"] = '"2"'
        elif edge.effect:
            edge_attrs["color"] = f'"{_EFFECT_COLOR}"'
            edge_attrs["penwidth"] = '"2"'
        if edge.is_dangling:
            edge_attrs["style"] = '"dashed"'
        edge_attr_str = " ".join(f"{k}={v}" for k, v in edge_attrs.items())
        suffix = f" [{edge_attr_str}]" if edge_attr_str else ""
        lines.append(f'  "{_dot_escape(edge.from_id)}" -> "{_dot_escape(edge.to_id)}"{suffix};')

    lines.append("}")
    return "\n".join(lines)


def render_mermaid(story_map: StoryMap, *, no_labels: bool = False) -> str:
    """Render a StoryMap as Mermaid markup.

    Args:
        story_map: Map data.
        no_labels: If True, omit choice labels on edges.

    Returns:
        Mermaid format string.
    """
    lines = ["graph LR"]

    for node in story_map.nodes:
        safe_id = _mermaid_id(node.id)
        label = _mermaid_escape(node.label)
        if node.is_missing:
            lines.append(f'  {safe_id}(["{label}"]):::missing')
        elif node.is_entry:
            lines.append(f'  {safe_id}["{label}"]:::entry')
        elif node.is_unreachable:
            lines.append(f'  {safe_id}["{label}"]:::unreachable')
        elif node.is_ending:
            lines.append(f'  {safe_id}["{label}"]:::ending')
        else:
            lines.append(f'  {safe_id}["{label}"]')

    lines.append("")

    for edge in story_map.edges:
        src = _mermaid_id(edge.from_id)
        dst = _mermaid_id(edge.to_id)
        arrow = "-.->" if edge.is_dangling else "-->"
        if not no_labels and edge.label:
            label = _mermaid_escape(edge.label)
            lines.append(f'  {src} {arrow}|"{label}"| {dst}')
        else:
            lines.append(f"  {src} {arrow} {dst}")

    lines.append("")
    lines.append(f"  classDef entry fill:{_ENTRY_COLOR},stroke:#333")
    lines.append(f"  classDef ending fill:{_ENDING_COLOR},stroke:#333")
    lines.append(f"  classDef unreachable fill:{_UNREACHABLE_COLOR},stroke:#999")
    lines.append(f"  classDef missing fill:{_MISSING_COLOR},stroke:#999,stroke-dasharray:4")
    gated = [i for i, e in enumerate(story_map.edges) if e.condition]
    if gated:
        indexes = ",".join(str(i) for i in gated)
        lines.append(f"  linkStyle {indexes} stroke:{_CONDITION_COLOR},stroke-width:2px")

    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _truncate(text: str, max_len: int) -> str:
    """Truncate text with ellipsis if too long."""
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def _dot_node_attrs(node: MapNode) -> dict[str, str]:
    """Build DOT attribute dict for a node."""
    attrs: dict[str, str] = {}

    if node.is_missing:
        attrs["shape"] = "box"
        attrs["style"] = '"dashed"'
        attrs["fillcolor"] = f'"{_MISSING_COLOR}"'
    elif node.is_entry:
        attrs["shape"] = "doubleoctagon"
        attrs["fillcolor"] = f'"{_ENTRY_COLOR}"'
    elif node.is_unreachable:
        attrs["shape"] = "box"
        attrs["fillcolor"] = f'"{_UNREACHABLE_COLOR}"'
    elif node.is_ending:
        attrs["shape"] = "octagon"
        attrs["fillcolor"] = f'"{_ENDING_COLOR}"'
    else:
        attrs["shape"] = "box"
        attrs["fillcolor"] = f'"{_PASSAGE_COLOR}"'

    attrs["label"] = f'"{_dot_escape(node.label)}"'
    return attrs


def _dot_escape(text: str) -> str:
    """Escape special characters for DOT labels."""
    return text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


def _mermaid_id(passage_id: str) -> str:
    """Convert a passage id to a Mermaid-safe identifier.

    The prefix keeps ids such as ``end`` from colliding with Mermaid keywords.
    """
    return "p_" + re.sub(r"\W", "_", passage_id)


def _mermaid_escape(text: str) -> str:
    """Escape special characters for Mermaid labels."""
    return text.replace('"', "&quot;").replace("\n", " ")
