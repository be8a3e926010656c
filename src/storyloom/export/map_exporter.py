"""Story map exports (Graphviz DOT and Mermaid)."""

from __future__ import annotations

from typing import TYPE_CHECKING

from storyloom.export.base import output_path
from storyloom.visualization import build_story_map, render_dot, render_mermaid

if TYPE_CHECKING:
    from pathlib import Path

    from storyloom.export.base import ExportOptions
    from storyloom.graph.graph import StoryGraph


class DotExporter:
    """Export the passage graph as Graphviz DOT."""

    format_name = "dot"
    suffix = ".dot"

    def export(self, graph: StoryGraph, output_dir: Path, options: ExportOptions) -> Path:
        story_map = build_story_map(graph, options.entry_id, reachable_only=options.reachable_only)
        path = output_path(output_dir, options, self.suffix)
        path.write_text(render_dot(story_map, no_labels=options.no_labels) + "\n", encoding="utf-8")
        return path


class MermaidExporter:
    """Export the passage graph as a Mermaid flowchart."""

    format_name = "mermaid"
    suffix = ".mmd"

    def export(self, graph: StoryGraph, output_dir: Path, options: ExportOptions) -> Path:
        story_map = build_story_map(graph, options.entry_id, reachable_only=options.reachable_only)
        path = output_path(output_dir, options, self.suffix)
        path.write_text(
            render_mermaid(story_map, no_labels=options.no_labels) + "\n", encoding="utf-8"
        )
        return path
