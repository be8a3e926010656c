"""JSON export format.

Writes the story document as formatted JSON, suitable for other tools or
for re-importing with ``loom``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from storyloom.export.base import output_path
from storyloom.graph.document import save_story

if TYPE_CHECKING:
    from pathlib import Path

    from storyloom.export.base import ExportOptions
    from storyloom.graph.graph import StoryGraph


class JsonExporter:
    """Export story as a JSON story document."""

    format_name = "json"
    suffix = ".json"

    def export(self, graph: StoryGraph, output_dir: Path, options: ExportOptions) -> Path:
        return save_story(graph, output_path(output_dir, options, self.suffix))
