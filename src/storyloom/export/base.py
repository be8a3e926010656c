"""Export options and the Exporter protocol.

Every exporter reads a StoryGraph and writes one file into an output
directory. Exporters never modify the graph.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from storyloom.graph.algorithms import DEFAULT_ENTRY

if TYPE_CHECKING:
    from pathlib import Path

    from storyloom.graph.graph import StoryGraph


@dataclass
class ExportOptions:
    """Settings shared by all exporters.

    Attributes:
        entry_id: Passage where the story starts.
        indent: Indentation unit for the flattened script.
        stem: File name (without suffix) of the written file.
        no_labels: Omit choice labels from map renderings.
        reachable_only: Map only passages reachable from *entry_id*.
    """

    entry_id: str = DEFAULT_ENTRY
    indent: str = "  "
    stem: str = "story"
    no_labels: bool = False
    reachable_only: bool = False


class Exporter(Protocol):
    """Protocol for story export format handlers."""

    format_name: str
    suffix: str

    def export(self, graph: StoryGraph, output_dir: Path, options: ExportOptions) -> Path:
        """Export the story to the given output directory.

        Args:
            graph: Story to export.
            output_dir: Directory to write the output file into.
            options: Shared export settings.

        Returns:
            Path to the written file.
        """
        ...


def output_path(output_dir: Path, options: ExportOptions, suffix: str) -> Path:
    """Create *output_dir* if needed and return the target file path."""
    output_dir.mkdir(parents=True, exist_ok=True)
    return output_dir / f"{options.stem}{suffix}"
