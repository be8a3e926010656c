"""Graph package - passages, choices and the operations over them.

StoryGraph is the single source of truth for a story's passages and declared
variables. The helpers here load and save story documents, walk the graph
and keep a bounded undo/redo history of edits.
"""

from storyloom.graph.algorithms import (
    DEFAULT_ENTRY,
    dangling_choices,
    ending_passages,
    generate_script,
    reachable_passages,
    unreachable_passages,
)
from storyloom.graph.document import load_story, save_story
from storyloom.graph.errors import (
    DuplicateIdentifierError,
    InvalidDocumentError,
    PassageNotFoundError,
    StoryGraphError,
    VariableNotFoundError,
)
from storyloom.graph.graph import Snapshot, StoryGraph
from storyloom.graph.history import MAX_HISTORY, HistoryBuffer
from storyloom.graph.store import DictPassageStore, PassageStore

__all__ = [
    "DEFAULT_ENTRY",
    "MAX_HISTORY",
    "DictPassageStore",
    "DuplicateIdentifierError",
    "HistoryBuffer",
    "InvalidDocumentError",
    "PassageNotFoundError",
    "PassageStore",
    "Snapshot",
    "StoryGraph",
    "StoryGraphError",
    "VariableNotFoundError",
    "dangling_choices",
    "ending_passages",
    "generate_script",
    "load_story",
    "reachable_passages",
    "save_story",
    "unreachable_passages",
]
