"""Story graph error types.

These errors are raised when an edit would break the graph's identifier
invariants or when a story document cannot be imported. Each error can
format itself as author-facing feedback for the CLI.

Dangling choices (a choice whose target passage does not exist) are *not*
errors: they are valid, inert dead ends reported by inspection.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from difflib import get_close_matches


class StoryGraphError(Exception):
    """Base class for story graph errors.

    Subclasses implement to_feedback() to explain what went wrong and how to
    fix it.
    """

    def to_feedback(self) -> str:
        """Format the error as author-facing feedback.

        Returns:
            Human-readable message explaining the problem and a fix.
        """
        raise NotImplementedError


@dataclass
class PassageNotFoundError(StoryGraphError):
    """Raised when editing a passage that does not exist.

    Attributes:
        passage_id: The identifier that was referenced.
        available: Identifiers that do exist, used for suggestions.
        context: Description of the operation that failed.
    """

    passage_id: str
    available: list[str] = field(default_factory=list)
    context: str = ""

    def __post_init__(self) -> None:
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        msg = f"Passage '{self.passage_id}' not found"
        if self.context:
            msg += f" ({self.context})"
        return msg

    def suggestions(self) -> list[str]:
        """Return existing identifiers that look like typos of passage_id."""
        return get_close_matches(self.passage_id, self.available, n=3, cutoff=0.6)

    def to_feedback(self) -> str:
        """Format as author-facing feedback."""
        lines = [self._format_message()]
        suggestions = self.suggestions()
        if suggestions:
            lines.append("Did you mean: " + ", ".join(suggestions) + "?")
        elif self.available:
            shown = sorted(self.available)[:10]
            more = len(self.available) - len(shown)
            listing = ", ".join(shown) + (f" (and {more} more)" if more > 0 else "")
            lines.append(f"Existing passages: {listing}")
        return "\n".join(lines)


@dataclass
class DuplicateIdentifierError(StoryGraphError):
    """Raised when a create, rename or declaration would reuse an identifier.

    The graph is left unchanged.

    Attributes:
        passage_id: The identifier that already exists. For variables this
            is the dotted ``category.name``.
        kind: What the identifier names, "Passage" or "Variable".
    """

    passage_id: str
    kind: str = "Passage"

    def __post_init__(self) -> None:
        super().__init__(f"{self.kind} '{self.passage_id}' already exists")

    def to_feedback(self) -> str:
        """Format as author-facing feedback."""
        if self.kind == "Variable":
            hint = "Pick a different name, or remove the existing variable first."
        else:
            hint = "Pick a different identifier, or delete the existing passage first."
        return f"{self.kind} '{self.passage_id}' already exists.\n{hint}"


@dataclass
class VariableNotFoundError(StoryGraphError):
    """Raised when updating or removing a variable that was never declared.

    Attributes:
        category: Variable category (inventory, relationships, flags).
        name: The name that was referenced.
        available: Names declared in that category, used for suggestions.
    """

    category: str
    name: str
    available: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        super().__init__(f"Variable '{self.category}.{self.name}' is not declared")

    def to_feedback(self) -> str:
        """Format as author-facing feedback."""
        lines = [str(self)]
        suggestions = get_close_matches(self.name, self.available, n=3, cutoff=0.6)
        if suggestions:
            lines.append("Did you mean: " + ", ".join(suggestions) + "?")
        elif self.available:
            lines.append(f"Declared {self.category}: " + ", ".join(sorted(self.available)))
        else:
            lines.append(f"No {self.category} variables are declared yet.")
        return "\n".join(lines)


@dataclass
class InvalidDocumentError(StoryGraphError):
    """Raised when a story document cannot be imported.

    Nothing is installed when this is raised.

    Attributes:
        source: File path or other description of the document.
        reason: What is wrong with it.
    """

    source: str
    reason: str

    def __post_init__(self) -> None:
        super().__init__(f"Invalid story document {self.source}: {self.reason}")

    def to_feedback(self) -> str:
        """Format as author-facing feedback."""
        return (
            f"Could not import {self.source}.\n"
            f"{self.reason}\n"
            "A story document needs a 'passages' mapping of id -> "
            "{text, choices: [{text, target, condition?, effect?}]}."
        )
