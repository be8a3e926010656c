"""Pydantic models for saved player progress.

Field names serialize in camelCase (``currentPassageId``, ``variablesState``,
``choiceText``) so that saved blobs stay readable by other tools. The older
``currentPassage`` key is accepted when loading.
"""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class HistoryEntry(BaseModel):
    """One step of a playthrough: where the player was and what they picked."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    passage: str
    choice_text: str = Field(alias="choiceText")


class PlayerState(BaseModel):
    """The full state triple of the player state machine."""

    model_config = ConfigDict(populate_by_name=True)

    current_passage_id: str = Field(
        alias="currentPassageId",
        validation_alias=AliasChoices("currentPassageId", "currentPassage", "current_passage_id"),
    )
    variables_state: dict[str, Any] = Field(
        default_factory=dict,
        alias="variablesState",
        validation_alias=AliasChoices("variablesState", "variables_state"),
    )
    history: list[HistoryEntry] = Field(default_factory=list)
