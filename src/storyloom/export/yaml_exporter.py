"""YAML export format, the native story document format."""

from __future__ import annotations

from typing import TYPE_CHECKING

from storyloom.export.base import output_path
from storyloom.graph.document import save_story

if TYPE_CHECKING:
    from pathlib import Path

    from storyloom.export.base import ExportOptions
    from storyloom.graph.graph import StoryGraph


class YamlExporter:
    """Export story as a YAML story document."""

    format_name = "yaml"
    suffix = ".yaml"

    def export(self, graph: StoryGraph, output_dir: Path, options: ExportOptions) -> Path:
        return save_story(graph, output_path(output_dir, options, self.suffix))
