"""Tests for the export formats."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from storyloom.export import EXPORT_FORMATS, ExportOptions, get_exporter
from storyloom.graph import StoryGraph, generate_script, load_story

if TYPE_CHECKING:
    from pathlib import Path


class TestGetExporter:
    """Test the exporter registry."""

    @pytest.mark.parametrize("name", EXPORT_FORMATS)
    def test_known_formats(self, name: str) -> None:
        """Every listed format resolves to an exporter."""
        assert get_exporter(name).format_name == name

    def test_unknown_format(self) -> None:
        """Unknown formats raise ValueError listing the supported ones."""
        with pytest.raises(ValueError, match="Supported: dot, json, mermaid, script, yaml"):
            get_exporter("epub")


class TestExporters:
    """Test writing each format."""

    def test_script(self, tmp_path: Path, key_story: StoryGraph) -> None:
        """The script export matches generate_script."""
        path = get_exporter("script").export(key_story, tmp_path, ExportOptions(indent="\t"))

        assert path == tmp_path / "story.txt"
        assert path.read_text(encoding="utf-8") == generate_script(
            key_story, "start", indent="\t"
        )

    @pytest.mark.parametrize("name", ["yaml", "json"])
    def test_documents_reload(self, tmp_path: Path, key_story: StoryGraph, name: str) -> None:
        """Document exports load back into an equal graph."""
        path = get_exporter(name).export(key_story, tmp_path / "out", ExportOptions(stem="tale"))

        assert path.stem == "tale"
        assert load_story(path).snapshot() == key_story.snapshot()

    def test_json_is_valid(self, tmp_path: Path, key_story: StoryGraph) -> None:
        """The JSON export parses as JSON."""
        path = get_exporter("json").export(key_story, tmp_path, ExportOptions())

        assert json.loads(path.read_text(encoding="utf-8"))["title"] == "The Locked Door"

    def test_maps(self, tmp_path: Path, key_story: StoryGraph) -> None:
        """Map exports write DOT and Mermaid files."""
        dot = get_exporter("dot").export(key_story, tmp_path, ExportOptions())
        mermaid = get_exporter("mermaid").export(key_story, tmp_path, ExportOptions())

        assert dot.suffix == ".dot"
        assert dot.read_text(encoding="utf-8").startswith("digraph story {")
        assert mermaid.suffix == ".mmd"
        assert mermaid.read_text(encoding="utf-8").startswith("graph LR")

    def test_export_does_not_modify(self, tmp_path: Path, key_story: StoryGraph) -> None:
        """Exporting leaves the graph alone."""
        before = key_story.snapshot()

        for name in EXPORT_FORMATS:
            get_exporter(name).export(key_story, tmp_path, ExportOptions())

        assert key_story.snapshot() == before
