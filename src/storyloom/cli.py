"""storyloom CLI - typer application entry point."""

from __future__ import annotations

import atexit
import math
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from storyloom.observability import close_file_logging, configure_logging, get_logger

if TYPE_CHECKING:
    from storyloom.config import LoomConfig
    from storyloom.graph.graph import StoryGraph
    from storyloom.inspection import InspectionReport
    from storyloom.runtime.player import Player

# Load environment variables from .env file
load_dotenv()

app = typer.Typer(
    name="loom",
    help="storyloom: author, check and play branching interactive fiction.",
    no_args_is_help=True,
)
console = Console()
log = get_logger(__name__)

STARTER_STORY = {
    "title": "Untitled story",
    "variables": {
        "inventory": {"key": False},
        "relationships": {},
        "flags": {},
        "health": 10,
    },
    "passages": {
        "start": {
            "text": "You wake in a quiet room. A door stands closed before you.",
            "choices": [
                {"text": "Search the room", "target": "search", "effect": "inventory.key = true"},
                {"text": "Open the door", "target": "outside", "condition": "inventory.key"},
            ],
        },
        "search": {
            "text": "Under the pillow you find a small brass key.",
            "choices": [{"text": "Go back", "target": "start"}],
        },
        "outside": {"text": "The door swings open onto a bright morning.", "choices": []},
    },
}

# Global state set by the callback, used by commands
_config_path: Path | None = None


@app.callback()
def main(
    verbose: Annotated[
        int,
        typer.Option(
            "-v",
            "--verbose",
            count=True,
            help="Increase verbosity: -v for INFO, -vv for DEBUG.",
        ),
    ] = 0,
    log_file: Annotated[
        Path | None,
        typer.Option(
            "--log-file",
            help="Also write structured logs to this JSONL file.",
        ),
    ] = None,
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Config file (default: ./loom.yaml if present).",
            envvar="LOOM_CONFIG",
        ),
    ] = None,
) -> None:
    """storyloom: author, check and play branching interactive fiction."""
    global _config_path
    _config_path = config

    configure_logging(verbosity=verbose, log_file=log_file)
    if log_file is not None:
        atexit.register(close_file_logging)


# =============================================================================
# Helpers
# =============================================================================


def _fail(message: str) -> typer.Exit:
    """Print an error line and return the exit to raise."""
    console.print(f"[red]Error:[/red] {escape(message)}")
    return typer.Exit(1)


def _load_config() -> LoomConfig:
    from storyloom.config import ConfigError, load_config

    try:
        return load_config(_config_path)
    except ConfigError as e:
        raise _fail(str(e)) from None


def _load_graph(story: Path) -> StoryGraph:
    from storyloom.graph import InvalidDocumentError, load_story

    try:
        return load_story(story)
    except InvalidDocumentError as e:
        raise _fail(str(e)) from None


StoryArg = Annotated[Path, typer.Argument(help="Story document (.yaml, .yml or .json).")]
EntryOption = Annotated[
    str | None,
    typer.Option("--entry", "-e", help="Entry passage (default: from config, 'start')."),
]


# =============================================================================
# Commands
# =============================================================================


@app.command()
def version() -> None:
    """Show version information."""
    from storyloom import __version__

    console.print(f"storyloom v{__version__}")


@app.command()
def init(
    story: Annotated[Path, typer.Argument(help="Story file to create (.yaml or .json).")],
    with_config: Annotated[
        bool,
        typer.Option("--config/--no-config", help="Also write loom.yaml next to the story."),
    ] = True,
) -> None:
    """Create a starter story document.

    Writes a three-passage example story and, unless --no-config is given,
    a loom.yaml with default settings in the same directory.
    """
    from storyloom.config import CONFIG_FILENAME, write_default_config
    from storyloom.graph import StoryGraph, save_story

    if story.exists():
        raise _fail(f"'{story}' already exists")

    graph = StoryGraph.from_dict(STARTER_STORY)
    try:
        save_story(graph, story)
    except ValueError as e:
        raise _fail(str(e)) from None

    console.print(f"[green]✓[/green] Created story: [bold]{escape(str(story))}[/bold]")
    if with_config and not (story.parent / CONFIG_FILENAME).exists():
        config_path = write_default_config(story.parent)
        console.print(f"[green]✓[/green] Created config: {escape(str(config_path))}")
    console.print()
    console.print("Next steps:")
    console.print(f"  loom play {escape(str(story))}")
    console.print(f"  loom inspect {escape(str(story))}")


@app.command()
def script(
    story: StoryArg,
    entry: EntryOption = None,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write the script to a file instead of stdout."),
    ] = None,
) -> None:
    """Print the story as an indented branching script."""
    from storyloom.graph import generate_script

    config = _load_config()
    graph = _load_graph(story)
    entry_id = entry or config.entry_passage
    if not graph.has_passage(entry_id):
        raise _fail(f"Entry passage '{entry_id}' not found in {story}")

    text = generate_script(graph, entry_id, indent=config.indent)
    if output is None:
        typer.echo(text, nl=False)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text, encoding="utf-8")
    console.print(f"[green]✓[/green] Script written to {escape(str(output))}")


def _show_passage(player: Player) -> None:
    view = player.view()
    title = "The end" if view.is_terminal else view.passage_id
    console.print(Panel(escape(view.text), title=escape(title), expand=False))
    for number, choice in enumerate(view.choices, start=1):
        console.print(f"  [cyan]{number}[/cyan]. {escape(choice.text)}")


@app.command()
def play(
    story: StoryArg,
    entry: EntryOption = None,
    load: Annotated[
        Path | None,
        typer.Option("--load", help="Resume from a saved progress file."),
    ] = None,
    save: Annotated[
        Path | None,
        typer.Option("--save", help="Write progress to this file when you stop."),
    ] = None,
    novel: Annotated[
        Path | None,
        typer.Option("--novel", help="Write the playthrough as prose to this file."),
    ] = None,
) -> None:
    """Play a story in the terminal.

    Enter a choice number to continue, 'r' to restart or 'q' to stop.
    """
    from storyloom.runtime import InvalidProgressError, Player

    config = _load_config()
    graph = _load_graph(story)
    player = Player(graph, entry_id=entry or config.entry_passage, end_text=config.end_text)

    if load is not None:
        if not load.exists():
            raise _fail(f"Progress file '{load}' not found")
        try:
            player.load_progress(load.read_text(encoding="utf-8"))
        except InvalidProgressError as e:
            raise _fail(str(e)) from None

    while True:
        _show_passage(player)
        view = player.view()
        if view.is_terminal or not view.choices:
            break
        answer = typer.prompt("Choose", default="q", show_default=False).strip().lower()
        if answer in ("q", "quit"):
            break
        if answer in ("r", "restart"):
            player.restart()
            continue
        if not answer.isdigit() or not 1 <= int(answer) <= len(view.choices):
            console.print(f"[yellow]Enter a number from 1 to {len(view.choices)}.[/yellow]")
            continue
        player.select_choice(view.choices[int(answer) - 1].index)
        console.print()

    if save is not None:
        save.write_text(player.save_progress(), encoding="utf-8")
        console.print(f"[green]✓[/green] Progress saved to {escape(str(save))}")
    if novel is not None:
        novel.write_text(player.transcript(), encoding="utf-8")
        console.print(f"[green]✓[/green] Story written to {escape(str(novel))}")


def _print_report(report: InspectionReport) -> None:
    summary = report.summary
    table = Table(title=f"Story: {escape(summary.title or 'untitled')}", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="bold")
    table.add_row("Entry passage", escape(summary.entry_id))
    table.add_row("Passages", str(summary.total_passages))
    table.add_row("Choices", str(summary.total_choices))
    table.add_row("Conditional choices", str(summary.conditional_choices))
    table.add_row("Choices with effects", str(summary.effect_choices))
    table.add_row("Reachable passages", str(report.structure.reachable))
    table.add_row("Endings", str(len(report.structure.endings)))
    table.add_row("Words", f"{report.prose.total_words} (avg {report.prose.avg_words})")
    for category, count in summary.variable_counts.items():
        table.add_row(f"Variables: {category}", str(count))
    console.print()
    console.print(table)

    checks = report.checks
    if not checks:
        console.print()
        console.print("[green]✓[/green] No problems found")
        return

    issues = Table(title="Checks")
    issues.add_column("Check", style="cyan")
    issues.add_column("Severity")
    issues.add_column("Message")
    icons = {"fail": "[red]✗ fail[/red]", "warn": "[yellow]⚠ warn[/yellow]"}
    for row in checks:
        issues.add_row(
            row["name"], icons.get(row["severity"], row["severity"]), escape(row["message"])
        )
    console.print()
    console.print(issues)


@app.command()
def inspect(
    story: StoryArg,
    entry: EntryOption = None,
    strict: Annotated[
        bool,
        typer.Option("--strict", help="Exit with an error on warnings as well as failures."),
    ] = False,
) -> None:
    """Report story statistics, dead ends and broken expressions."""
    from storyloom.inspection import inspect_story

    config = _load_config()
    graph = _load_graph(story)
    report = inspect_story(graph, entry or config.entry_passage)
    _print_report(report)

    if report.has_failures or (strict and report.has_warnings):
        raise typer.Exit(1)


@app.command()
def check(story: StoryArg) -> None:
    """Validate every condition and effect in a story."""
    from storyloom.inspection import find_expression_issues

    graph = _load_graph(story)
    issues = find_expression_issues(graph)
    if not issues:
        console.print("[green]✓[/green] All expressions are valid")
        return

    for issue in issues:
        console.print(
            f"[red]✗[/red] {escape(issue.passage_id)}[{issue.index}] {issue.kind}: "
            f"{escape(issue.message)}"
        )
    console.print(f"[red]{len(issues)} invalid expression(s)[/red]")
    raise typer.Exit(1)


@app.command()
def export(
    story: StoryArg,
    format_name: Annotated[
        str,
        typer.Option("--format", "-f", help="script, yaml, json, dot or mermaid."),
    ] = "script",
    output_dir: Annotated[
        Path,
        typer.Option("--output-dir", "-o", help="Directory to write into."),
    ] = Path("export"),
    entry: EntryOption = None,
) -> None:
    """Export a story to another format."""
    from storyloom.export import ExportOptions, get_exporter

    try:
        exporter = get_exporter(format_name)
    except ValueError as e:
        raise _fail(str(e)) from None

    config = _load_config()
    graph = _load_graph(story)
    options = ExportOptions(
        entry_id=entry or config.entry_passage,
        indent=config.indent,
        stem=story.stem,
    )
    path = exporter.export(graph, output_dir, options)
    console.print(f"[green]✓[/green] Exported {format_name} to {escape(str(path))}")


@app.command()
def visualize(
    story: StoryArg,
    format_name: Annotated[
        str,
        typer.Option("--format", "-f", help="dot or mermaid."),
    ] = "dot",
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write to a file instead of stdout."),
    ] = None,
    entry: EntryOption = None,
    no_labels: Annotated[
        bool,
        typer.Option("--no-labels", help="Omit choice labels on edges."),
    ] = False,
    reachable_only: Annotated[
        bool,
        typer.Option("--reachable-only", help="Only show passages reachable from the entry."),
    ] = False,
) -> None:
    """Render the passage graph as DOT or Mermaid."""
    from storyloom.visualization import build_story_map, render_dot, render_mermaid

    renderers = {"dot": render_dot, "mermaid": render_mermaid}
    renderer = renderers.get(format_name)
    if renderer is None:
        raise _fail(f"Unknown format '{format_name}'. Supported: dot, mermaid")

    config = _load_config()
    graph = _load_graph(story)
    story_map = build_story_map(
        graph, entry or config.entry_passage, reachable_only=reachable_only
    )
    text = renderer(story_map, no_labels=no_labels)
    if output is None:
        typer.echo(text)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text + "\n", encoding="utf-8")
    console.print(f"[green]✓[/green] Map written to {escape(str(output))}")


@app.command()
def rename(
    story: StoryArg,
    old_id: Annotated[str, typer.Argument(help="Current passage id.")],
    new_id: Annotated[str, typer.Argument(help="New passage id.")],
    retarget: Annotated[
        bool,
        typer.Option("--retarget", help="Also point choices at the new id."),
    ] = False,
) -> None:
    """Rename a passage in place.

    Choices that pointed at the old id are left dangling unless --retarget
    is given.
    """
    from storyloom.graph import DuplicateIdentifierError, PassageNotFoundError, save_story
    from storyloom.session import StorySession

    graph = _load_graph(story)
    session = StorySession(graph)
    try:
        rewritten = session.rename_passage(old_id, new_id, retarget=retarget)
    except PassageNotFoundError as e:
        raise _fail(e.to_feedback()) from None
    except DuplicateIdentifierError as e:
        raise _fail(str(e)) from None

    save_story(session.graph, story)
    console.print(f"[green]✓[/green] Renamed '{escape(old_id)}' to '{escape(new_id)}'")
    dangling = len(session.graph.choices_targeting(old_id))
    if retarget:
        console.print(f"  {rewritten} choice(s) retargeted")
    elif dangling:
        console.print(
            f"  [yellow]{dangling} choice(s) still point at '{escape(old_id)}'[/yellow]"
            " (use --retarget to update them)"
        )


@app.command()
def delete(
    story: StoryArg,
    passage_id: Annotated[str, typer.Argument(help="Passage to delete.")],
) -> None:
    """Delete a passage and every choice leading to it."""
    from storyloom.graph import save_story
    from storyloom.session import StorySession

    graph = _load_graph(story)
    existed = graph.has_passage(passage_id)
    session = StorySession(graph)
    removed = session.delete_passage(passage_id)
    if not existed and not removed:
        raise _fail(f"Passage '{passage_id}' not found in {story}")

    save_story(session.graph, story)
    if existed:
        console.print(f"[green]✓[/green] Deleted '{escape(passage_id)}'")
    console.print(f"  {removed} choice(s) removed")


def _parse_variable_value(category: str, raw: str | None) -> bool | int | float | None:
    if raw is None:
        return None
    text = raw.strip()
    if category == "relationships":
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            raise _fail(f"relationships values must be numbers, got '{raw}'") from None
        if not math.isfinite(number):
            raise _fail(f"relationships values must be finite, got '{raw}'")
        return number
    if text.lower() in ("true", "false"):
        return text.lower() == "true"
    raise _fail(f"{category} values must be true or false, got '{raw}'")


def _format_value(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _require_category(category: str) -> None:
    from storyloom.expressions import CATEGORIES

    if category not in CATEGORIES:
        raise _fail(
            f"Unknown variable category '{category}'. Expected one of: {', '.join(CATEGORIES)}"
        )


CategoryArg = Annotated[str, typer.Argument(help="inventory, relationships or flags.")]
VariableArg = Annotated[str, typer.Argument(help="Variable name.")]


@app.command()
def declare(
    story: StoryArg,
    category: CategoryArg,
    name: VariableArg,
    value: Annotated[
        str | None,
        typer.Argument(help="Initial value (default: 0 for relationships, else false)."),
    ] = None,
    update: Annotated[
        bool,
        typer.Option("--update", help="Change the value of an already declared variable."),
    ] = False,
) -> None:
    """Declare an initial story variable, or change one with --update."""
    from storyloom.graph import DuplicateIdentifierError, VariableNotFoundError, save_story
    from storyloom.session import StorySession

    _require_category(category)
    parsed = _parse_variable_value(category, value)
    if update and parsed is None:
        raise _fail("--update needs a value")

    session = StorySession(_load_graph(story))
    try:
        if update:
            session.set_variable(category, name, parsed)
            declared = parsed
        else:
            declared = session.declare_variable(category, name, parsed)
    except DuplicateIdentifierError as e:
        raise _fail(f"{e} (use --update to change its value)") from None
    except VariableNotFoundError as e:
        raise _fail(e.to_feedback()) from None
    except ValueError as e:
        raise _fail(str(e)) from None

    save_story(session.graph, story)
    verb = "Updated" if update else "Declared"
    console.print(
        f"[green]✓[/green] {verb} {escape(category)}.{escape(name)} = {_format_value(declared)}"
    )


@app.command()
def undeclare(story: StoryArg, category: CategoryArg, name: VariableArg) -> None:
    """Remove a declared story variable."""
    from storyloom.graph import VariableNotFoundError, save_story
    from storyloom.session import StorySession

    _require_category(category)
    session = StorySession(_load_graph(story))
    try:
        session.remove_variable(category, name)
    except VariableNotFoundError as e:
        raise _fail(e.to_feedback()) from None

    save_story(session.graph, story)
    console.print(f"[green]✓[/green] Removed {escape(category)}.{escape(name)}")
