"""Flattened branching script export.

Plain text for reading or proofing a story end to end. It is not meant to
be imported again.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from storyloom.export.base import output_path
from storyloom.graph.algorithms import generate_script

if TYPE_CHECKING:
    from pathlib import Path

    from storyloom.export.base import ExportOptions
    from storyloom.graph.graph import StoryGraph


class ScriptExporter:
    """Export story as an indented branching script."""

    format_name = "script"
    suffix = ".txt"

    def export(self, graph: StoryGraph, output_dir: Path, options: ExportOptions) -> Path:
        """Write the script generated from the entry passage.

        Returns:
            Path to the generated text file.
        """
        path = output_path(output_dir, options, self.suffix)
        script = generate_script(graph, options.entry_id, indent=options.indent)
        path.write_text(script, encoding="utf-8")
        return path
