"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from storyloom.graph.graph import StoryGraph
from tests.fixtures.story_fixtures import key_story_data, make_key_story


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep user config and environment overrides out of test runs."""
    monkeypatch.delenv("LOOM_ENTRY_PASSAGE", raising=False)
    monkeypatch.delenv("LOOM_HISTORY_DEPTH", raising=False)
    monkeypatch.delenv("LOOM_CONFIG", raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def story_data() -> dict[str, Any]:
    """Raw document data for the key story."""
    return key_story_data()


@pytest.fixture
def key_story() -> StoryGraph:
    """The key story as a graph."""
    return make_key_story()


@pytest.fixture
def story_file(tmp_path: Path, story_data: dict[str, Any]) -> Path:
    """The key story written to a JSON file."""
    path = tmp_path / "story.json"
    path.write_text(json.dumps(story_data), encoding="utf-8")
    return path
