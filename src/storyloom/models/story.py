"""Pydantic models for the story document.

A story document has a ``variables`` section (the three variable categories
plus an optional numeric ``health``) and a ``passages`` section mapping each
passage identifier to its text and ordered choices. These models validate
documents on import and define the shape written back on export.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

Number = int | float


class Choice(BaseModel):
    """A link from one passage to another, optionally gated and with an effect."""

    text: str = Field(default="", description="Label shown to the player")
    target: str = Field(min_length=1, description="Identifier of the destination passage")
    condition: str | None = Field(
        default=None, description="Boolean expression; the choice is hidden when false"
    )
    effect: str | None = Field(
        default=None, description="Statement(s) applied to the variables when chosen"
    )

    @field_validator("condition", "effect", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @model_validator(mode="after")
    def _default_label(self) -> Choice:
        if not self.text:
            self.text = f"Go to {self.target}"
        return self


class Passage(BaseModel):
    """A node of the story graph."""

    text: str = Field(default="", description="Body text, may span several lines")
    choices: list[Choice] = Field(default_factory=list)
    position: tuple[float, float] | None = Field(
        default=None, description="Editor placement; carried through but never interpreted"
    )

    @field_validator("choices", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class Variables(BaseModel):
    """Declared initial values of the story variables.

    Unknown top-level keys are kept so that a document round-trips, but only
    the fields below are addressable from expressions.
    """

    model_config = ConfigDict(extra="allow")

    inventory: dict[str, bool] = Field(default_factory=dict)
    relationships: dict[str, Number] = Field(default_factory=dict)
    flags: dict[str, bool] = Field(default_factory=dict)
    health: Number | None = None

    @field_validator("inventory", "relationships", "flags", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return {} if value is None else value


class StoryDocument(BaseModel):
    """The authoring/interchange format of a whole story."""

    title: str | None = None
    variables: Variables = Field(default_factory=Variables)
    passages: dict[str, Passage]

    @field_validator("variables", mode="before")
    @classmethod
    def _none_to_default(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("passages", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return {} if value is None else value
