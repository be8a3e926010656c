"""Runtime package - playing a story."""

from storyloom.runtime.player import (
    DEFAULT_END_TEXT,
    ChoiceUnavailableError,
    ChoiceView,
    InvalidProgressError,
    PassageView,
    Player,
    decode_progress,
)

__all__ = [
    "DEFAULT_END_TEXT",
    "ChoiceUnavailableError",
    "ChoiceView",
    "InvalidProgressError",
    "PassageView",
    "Player",
    "decode_progress",
]
