"""Graph walks over a story.

Pure functions that read the graph without modifying it: the flattened
branching script and the reachability helpers used by inspection and the
map renderers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from storyloom.observability.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterator

    from storyloom.graph.graph import StoryGraph
    from storyloom.models.story import Choice

log = get_logger(__name__)

DEFAULT_ENTRY = "start"


@dataclass
class _Frame:
    depth: int
    choices: Iterator[Choice]


def generate_script(
    graph: StoryGraph,
    entry_id: str = DEFAULT_ENTRY,
    *,
    indent: str = "  ",
) -> str:
    """Flatten the story into an indented, human-readable script.

    Depth-first pre-order walk from *entry_id*. Each passage prints its id,
    its trimmed text and a blank line, then one line per choice::

        → <text> → <target> [if <condition>] [<effect>]

    with the choice's target expanded underneath, one level deeper. The
    indent applies to every line of a multi-line passage body, not only its
    first line, so continuation lines stay inside their branch. Every
    passage prints at most once: a target that was already printed, or that
    does not exist, ends that branch without output. The walk keeps its own
    stack, so story depth is not limited by the interpreter recursion limit.

    Args:
        graph: Story to flatten.
        entry_id: Passage to start from.
        indent: Indentation unit, repeated once per level of depth.

    Returns:
        The script text. Empty if *entry_id* does not exist.
    """
    out: list[str] = []
    visited: set[str] = set()
    stack: list[_Frame] = []

    def enter(passage_id: str, depth: int) -> None:
        passage = graph.get_passage(passage_id)
        if passage is None or passage_id in visited:
            return
        visited.add(passage_id)
        prefix = indent * depth
        out.append(f"{prefix}{passage_id}\n")
        body = "\n".join(f"{prefix}{line}" for line in passage.text.strip().split("\n"))
        out.append(f"{body}\n\n")
        stack.append(_Frame(depth, iter(passage.choices)))

    enter(entry_id, 0)
    while stack:
        frame = stack[-1]
        choice = next(frame.choices, None)
        if choice is None:
            out.append("\n")
            stack.pop()
            continue
        line = f"{indent * frame.depth}→ {choice.text} → {choice.target}"
        if choice.condition:
            line += f" [if {choice.condition}]"
        if choice.effect:
            line += f" [{choice.effect}]"
        out.append(line + "\n")
        enter(choice.target, frame.depth + 1)

    log.debug("script_generated", entry=entry_id, passages=len(visited))
    return "".join(out)


def reachable_passages(graph: StoryGraph, entry_id: str = DEFAULT_ENTRY) -> list[str]:
    """Return existing passages reachable from *entry_id*, depth-first.

    Conditions are ignored: a gated choice still counts as a path.
    """
    if not graph.has_passage(entry_id):
        return []
    order: list[str] = []
    seen = {entry_id}
    stack = [entry_id]
    while stack:
        current = stack.pop()
        order.append(current)
        passage = graph.get_passage(current)
        if passage is None:
            continue
        # Reverse so the first choice is explored first
        for choice in reversed(passage.choices):
            if choice.target not in seen and graph.has_passage(choice.target):
                seen.add(choice.target)
                stack.append(choice.target)
    return order


def unreachable_passages(graph: StoryGraph, entry_id: str = DEFAULT_ENTRY) -> list[str]:
    """Return passages that cannot be reached from *entry_id*, in graph order."""
    reachable = set(reachable_passages(graph, entry_id))
    return [pid for pid in graph.passage_ids() if pid not in reachable]


def dangling_choices(graph: StoryGraph) -> list[tuple[str, int, Choice]]:
    """Return (source id, index, choice) for every choice whose target is missing."""
    return [
        (pid, i, choice)
        for pid, passage in graph.passages()
        for i, choice in enumerate(passage.choices)
        if not graph.has_passage(choice.target)
    ]


def ending_passages(graph: StoryGraph) -> list[str]:
    """Return passages with no choice leading to an existing passage."""
    return [
        pid
        for pid, passage in graph.passages()
        if not any(graph.has_passage(c.target) for c in passage.choices)
    ]
