"""Story document reading and writing.

Documents are YAML (``.yaml``/``.yml``) or JSON (``.json``), chosen by file
suffix. Both validate through :class:`StoryDocument`; a document that fails
to read or validate raises InvalidDocumentError and nothing is returned.
"""

from __future__ import annotations

import json
from pathlib import Path  # noqa: TC003 - used at runtime
from typing import TYPE_CHECKING, Any

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from storyloom.graph.errors import InvalidDocumentError
from storyloom.graph.graph import StoryGraph
from storyloom.observability.logging import get_logger

if TYPE_CHECKING:
    from storyloom.models.story import StoryDocument

log = get_logger(__name__)

YAML_SUFFIXES = (".yaml", ".yml")
JSON_SUFFIXES = (".json",)


def _yaml() -> YAML:
    yaml = YAML()
    yaml.default_flow_style = False
    yaml.preserve_quotes = True
    yaml.indent(mapping=2, sequence=4, offset=2)
    yaml.width = 4096
    return yaml


def document_to_data(document: StoryDocument) -> dict[str, Any]:
    """Return the JSON-compatible dict written for a story document."""
    return document.model_dump(mode="json", exclude_none=True)


def read_story_data(path: Path) -> Any:
    """Read the raw content of a story file.

    Raises:
        InvalidDocumentError: If the file is missing, has an unknown suffix
            or cannot be parsed.
    """
    suffix = path.suffix.lower()
    if suffix not in YAML_SUFFIXES + JSON_SUFFIXES:
        raise InvalidDocumentError(str(path), f"unsupported file type '{path.suffix}'")
    if not path.exists():
        raise InvalidDocumentError(str(path), "file not found")

    try:
        with path.open("r", encoding="utf-8") as f:
            if suffix in JSON_SUFFIXES:
                return json.load(f)
            return _yaml().load(f)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError, YAMLError) as e:
        raise InvalidDocumentError(str(path), str(e)) from e


def load_story(path: Path) -> StoryGraph:
    """Load a story graph from a YAML or JSON document.

    Raises:
        InvalidDocumentError: If the document cannot be read or is invalid.
    """
    data = read_story_data(path)
    graph = StoryGraph.from_dict(data, source=str(path))
    log.debug("story_loaded", path=str(path), passages=len(graph))
    return graph


def save_story(graph: StoryGraph, path: Path) -> Path:
    """Write a story graph to *path*, as YAML or JSON by suffix.

    Returns:
        The written path.

    Raises:
        ValueError: If the suffix is neither YAML nor JSON.
    """
    suffix = path.suffix.lower()
    if suffix not in YAML_SUFFIXES + JSON_SUFFIXES:
        raise ValueError(f"Unsupported story file type: {path.suffix}")

    data = document_to_data(graph.to_document())
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        if suffix in JSON_SUFFIXES:
            json.dump(data, f, indent=2, ensure_ascii=False)
            f.write("\n")
        else:
            _yaml().dump(data, f)

    log.debug("story_saved", path=str(path), passages=len(graph))
    return path
