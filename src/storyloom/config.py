"""Project configuration loading."""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from ruamel.yaml import YAML

from storyloom.graph.algorithms import DEFAULT_ENTRY
from storyloom.graph.history import MAX_HISTORY
from storyloom.runtime.player import DEFAULT_END_TEXT

CONFIG_FILENAME = "loom.yaml"

# Default configuration values
DEFAULT_SCRIPT_INDENT = 2

ENV_ENTRY_PASSAGE = "LOOM_ENTRY_PASSAGE"
ENV_HISTORY_DEPTH = "LOOM_HISTORY_DEPTH"


class ConfigError(Exception):
    """Raised when configuration cannot be loaded."""

    def __init__(self, path: Path | str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to load config at {path}: {reason}")


@dataclass
class LoomConfig:
    """Configuration for authoring and playing a story.

    Resolution order for each field:
    1. Environment variable (LOOM_ENTRY_PASSAGE, LOOM_HISTORY_DEPTH)
    2. ``loom.yaml`` in the working directory (or the file given with --config)
    3. Built-in default

    Attributes:
        entry_passage: Passage where play and the script start.
        history_depth: Number of undo steps kept by an editing session.
        script_indent: Spaces per depth level in the flattened script.
        end_text: Text shown when play reaches a missing passage.
    """

    entry_passage: str = DEFAULT_ENTRY
    history_depth: int = MAX_HISTORY
    script_indent: int = DEFAULT_SCRIPT_INDENT
    end_text: str = DEFAULT_END_TEXT

    @property
    def indent(self) -> str:
        return " " * self.script_indent

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LoomConfig:
        """Create config from dictionary.

        Args:
            data: Dictionary containing any of the config fields. Unknown
                keys are ignored.

        Returns:
            LoomConfig instance.

        Raises:
            ValueError: If a numeric field is not a positive integer.
        """
        return cls(
            entry_passage=str(data.get("entry_passage", DEFAULT_ENTRY)),
            history_depth=_positive_int("history_depth", data.get("history_depth", MAX_HISTORY)),
            script_indent=_non_negative_int(
                "script_indent", data.get("script_indent", DEFAULT_SCRIPT_INDENT)
            ),
            end_text=str(data.get("end_text", DEFAULT_END_TEXT)),
        )

    def with_env_overrides(self) -> LoomConfig:
        """Return a copy with environment variable overrides applied.

        Raises:
            ValueError: If LOOM_HISTORY_DEPTH is not a positive integer.
        """
        data = self.to_dict()
        entry = os.getenv(ENV_ENTRY_PASSAGE)
        if entry:
            data["entry_passage"] = entry
        depth = os.getenv(ENV_HISTORY_DEPTH)
        if depth:
            data["history_depth"] = depth
        return LoomConfig.from_dict(data)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _positive_int(name: str, value: Any) -> int:
    number = _non_negative_int(name, value)
    if number < 1:
        raise ValueError(f"{name} must be at least 1, got {number}")
    return number


def _non_negative_int(name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    try:
        number = int(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"{name} must be an integer, got {value!r}") from e
    if number < 0:
        raise ValueError(f"{name} must not be negative, got {number}")
    return number


def load_config(path: Path | None = None) -> LoomConfig:
    """Load configuration, applying environment overrides.

    Args:
        path: Explicit config file. When None, ``loom.yaml`` in the working
            directory is used if it exists, otherwise defaults.

    Returns:
        LoomConfig instance.

    Raises:
        ConfigError: If the config cannot be loaded.
    """
    if path is None:
        default_path = Path.cwd() / CONFIG_FILENAME
        if not default_path.exists():
            return _apply_env(LoomConfig(), default_path)
        path = default_path
    elif not path.exists():
        raise ConfigError(path, "File not found")

    yaml = YAML()
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.load(f)

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(path, "Top level must be a mapping")

        config = LoomConfig.from_dict(dict(data))
    except Exception as e:
        if isinstance(e, ConfigError):
            raise
        raise ConfigError(path, str(e)) from e

    return _apply_env(config, path)


def _apply_env(config: LoomConfig, path: Path) -> LoomConfig:
    try:
        return config.with_env_overrides()
    except ValueError as e:
        raise ConfigError(path, f"environment override: {e}") from e


def write_default_config(directory: Path) -> Path:
    """Write a ``loom.yaml`` with default values into *directory*."""
    path = directory / CONFIG_FILENAME
    yaml = YAML()
    yaml.default_flow_style = False
    with path.open("w", encoding="utf-8") as f:
        yaml.dump(LoomConfig().to_dict(), f)
    return path
