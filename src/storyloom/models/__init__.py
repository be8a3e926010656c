"""Pydantic models for story documents and saved progress."""

from storyloom.models.progress import HistoryEntry, PlayerState
from storyloom.models.story import Choice, Passage, StoryDocument, Variables

__all__ = [
    "Choice",
    "HistoryEntry",
    "Passage",
    "PlayerState",
    "StoryDocument",
    "Variables",
]
