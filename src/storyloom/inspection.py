"""Story inspection and quality analysis.

Automates the checks an author would otherwise do by hand before sharing a
story: dangling choices, passages nobody can reach, missing endings and
expressions that would silently fail during play.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from storyloom.expressions import (
    CATEGORIES,
    MalformedExpressionError,
    VariableStore,
    check_condition,
    execute_effect,
)
from storyloom.graph.algorithms import (
    DEFAULT_ENTRY,
    dangling_choices,
    ending_passages,
    reachable_passages,
    unreachable_passages,
)
from storyloom.observability.logging import get_logger

if TYPE_CHECKING:
    from storyloom.graph.graph import StoryGraph

log = get_logger(__name__)


@dataclass
class StorySummary:
    """High-level story statistics."""

    title: str | None
    entry_id: str
    total_passages: int
    total_choices: int
    conditional_choices: int = 0
    effect_choices: int = 0
    variable_counts: dict[str, int] = field(default_factory=dict)


@dataclass
class ProseStats:
    """Word counts across all passages."""

    total_words: int = 0
    avg_words: float = 0.0
    min_words: int = 0
    max_words: int = 0
    empty_passages: list[str] = field(default_factory=list)


@dataclass
class StructureStats:
    """Reachability and branching structure."""

    entry_exists: bool
    reachable: int = 0
    unreachable: list[str] = field(default_factory=list)
    endings: list[str] = field(default_factory=list)
    dangling: list[dict[str, str]] = field(default_factory=list)


@dataclass
class ExpressionIssue:
    """A condition or effect that fails when checked strictly."""

    passage_id: str
    index: int
    kind: str  # "condition" or "effect"
    expression: str
    message: str


@dataclass
class InspectionReport:
    """Complete story inspection report."""

    summary: StorySummary
    prose: ProseStats
    structure: StructureStats
    expression_issues: list[ExpressionIssue] = field(default_factory=list)

    @property
    def checks(self) -> list[dict[str, str]]:
        """Flatten the findings into name/severity/message rows."""
        rows: list[dict[str, str]] = []
        if not self.structure.entry_exists:
            rows.append(
                {
                    "name": "entry",
                    "severity": "fail",
                    "message": f"Entry passage '{self.summary.entry_id}' does not exist",
                }
            )
        for issue in self.expression_issues:
            rows.append(
                {
                    "name": issue.kind,
                    "severity": "fail",
                    "message": f"{issue.passage_id}[{issue.index}]: {issue.message}",
                }
            )
        for item in self.structure.dangling:
            target = item["target"]
            rows.append(
                {
                    "name": "dangling",
                    "severity": "warn",
                    "message": f"{item['from']}[{item['index']}] -> '{target}' does not exist",
                }
            )
        for pid in self.structure.unreachable:
            rows.append(
                {
                    "name": "unreachable",
                    "severity": "warn",
                    "message": f"'{pid}' cannot be reached from '{self.summary.entry_id}'",
                }
            )
        if self.structure.entry_exists and not self.structure.endings:
            rows.append(
                {"name": "endings", "severity": "warn", "message": "Story has no ending passage"}
            )
        return rows

    @property
    def has_failures(self) -> bool:
        return any(row["severity"] == "fail" for row in self.checks)

    @property
    def has_warnings(self) -> bool:
        return any(row["severity"] == "warn" for row in self.checks)


def inspect_story(graph: StoryGraph, entry_id: str = DEFAULT_ENTRY) -> InspectionReport:
    """Run all inspection checks on a story.

    Args:
        graph: Story to inspect. Not modified.
        entry_id: Passage where play starts.

    Returns:
        InspectionReport with all analysis results.
    """
    summary = _story_summary(graph, entry_id)
    prose = _prose_stats(graph)
    structure = _structure_stats(graph, entry_id)
    issues = find_expression_issues(graph)

    log.info(
        "inspection_complete",
        passages=summary.total_passages,
        choices=summary.total_choices,
        issues=len(issues),
        dangling=len(structure.dangling),
    )

    return InspectionReport(
        summary=summary,
        prose=prose,
        structure=structure,
        expression_issues=issues,
    )


def find_expression_issues(graph: StoryGraph) -> list[ExpressionIssue]:
    """Check every condition and effect strictly against the declared variables.

    Effects are applied to a throwaway copy, so the graph's variables are
    never touched.
    """
    declared = VariableStore.from_variables(graph.variables)
    issues: list[ExpressionIssue] = []
    for pid, passage in graph.passages():
        for i, choice in enumerate(passage.choices):
            if choice.condition is not None:
                try:
                    check_condition(choice.condition, declared)
                except MalformedExpressionError as e:
                    issues.append(ExpressionIssue(pid, i, "condition", choice.condition, str(e)))
            if choice.effect is not None:
                try:
                    execute_effect(choice.effect, declared.copy())
                except MalformedExpressionError as e:
                    issues.append(ExpressionIssue(pid, i, "effect", choice.effect, str(e)))
    return issues


def _story_summary(graph: StoryGraph, entry_id: str) -> StorySummary:
    """Extract high-level story statistics."""
    choices = [c for _pid, p in graph.passages() for c in p.choices]
    variable_counts = {cat: len(getattr(graph.variables, cat)) for cat in CATEGORIES}
    return StorySummary(
        title=graph.title,
        entry_id=entry_id,
        total_passages=len(graph),
        total_choices=len(choices),
        conditional_choices=sum(1 for c in choices if c.condition),
        effect_choices=sum(1 for c in choices if c.effect),
        variable_counts=variable_counts,
    )


def _prose_stats(graph: StoryGraph) -> ProseStats:
    """Count words per passage."""
    word_counts: list[int] = []
    empty: list[str] = []
    for pid, passage in graph.passages():
        text = passage.text.strip()
        if not text:
            empty.append(pid)
            continue
        word_counts.append(len(text.split()))

    return ProseStats(
        total_words=sum(word_counts),
        avg_words=round(sum(word_counts) / len(word_counts), 1) if word_counts else 0.0,
        min_words=min(word_counts) if word_counts else 0,
        max_words=max(word_counts) if word_counts else 0,
        empty_passages=empty,
    )


def _structure_stats(graph: StoryGraph, entry_id: str) -> StructureStats:
    """Analyze reachability from the entry passage."""
    return StructureStats(
        entry_exists=graph.has_passage(entry_id),
        reachable=len(reachable_passages(graph, entry_id)),
        unreachable=unreachable_passages(graph, entry_id),
        endings=ending_passages(graph),
        dangling=[
            {"from": pid, "index": str(i), "target": choice.target}
            for pid, i, choice in dangling_choices(graph)
        ],
    )
