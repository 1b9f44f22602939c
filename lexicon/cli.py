"""
Lexicon CLI - vocabulary review from the terminal.

Usage:
    lexicon init-db                        # Create the tables
    lexicon add "der Hund" "the dog" -s "hound" -t animals
    lexicon review                         # Daily recognition review
    lexicon review -m translation_input    # Type answers, both directions
    lexicon review --training -t animals   # Practice without rescheduling
    lexicon training-words -t animals      # What a training session would contain
    lexicon stats                          # Progress by mastery level
"""

from __future__ import annotations

import time
from typing import Annotated

import typer
from rich.console import Console
from rich.panel import Panel
from rich.prompt import IntPrompt, Prompt
from rich.table import Table

from config import get_settings
from lexicon.core.errors import LexiconError
from lexicon.core.evaluator import EvaluationReason, input_accuracy, validate_input_realtime
from lexicon.core.hints import HintType
from lexicon.core.scheduler import MASTERY_INTERVALS, RETIRED_LEVEL, progress_stats
from lexicon.db.database import init_db
from lexicon.db.item_store import SqlItemStore
from lexicon.logging_setup import configure_logging
from lexicon.review.manager import ReviewSessionManager
from lexicon.review.models import (
    Advanced,
    ItemPresented,
    NoItemsDue,
    ReviewMode,
    SessionCompleted,
    SessionCreated,
    SessionStats,
    SessionType,
)
from lexicon.review.ports import ItemFilter

# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="lexicon",
    help="Lexicon - spaced-repetition vocabulary review",
    add_completion=False,
    rich_markup_mode="rich",
)

console = Console()

HINT_ORDER = (HintType.LENGTH, HintType.FIRST_LETTER)
QUIT_INPUTS = {"q", ":q", "quit"}
DONT_KNOW_INPUTS = {"?", "idk"}

REASON_STYLES = {
    EvaluationReason.EXACT: ("green", "Exact!"),
    EvaluationReason.SYNONYM: ("green", "Accepted synonym"),
    EvaluationReason.TYPO: ("yellow", "Almost - watch the spelling"),
    EvaluationReason.HINT_USED: ("yellow", "Correct, with a hint"),
    EvaluationReason.WRONG: ("red", "Not quite"),
}


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
) -> None:
    """Configure logging before any command runs."""
    configure_logging(verbose=verbose)


def _learner(learner: str | None) -> str:
    return learner or get_settings().default_learner_id


# =============================================================================
# Item Commands
# =============================================================================


@app.command("init-db")
def init_database() -> None:
    """Create the words and reviews tables."""
    init_db()
    console.print("[green]✓ Database ready[/]")


@app.command()
def add(
    primary: Annotated[str, typer.Argument(help="Word or phrase in the language you learn")],
    translation: Annotated[str, typer.Argument(help="Translation in your language")],
    synonym: Annotated[
        list[str] | None, typer.Option("--synonym", "-s", help="Accepted alternative answer")
    ] = None,
    tag: Annotated[list[str] | None, typer.Option("--tag", "-t", help="Tag")] = None,
    learner: Annotated[str | None, typer.Option("--learner", help="Learner id")] = None,
) -> None:
    """Add a word; it becomes due tomorrow."""
    init_db()
    store = SqlItemStore()
    item = store.add_word(_learner(learner), primary, translation, synonym, tag)
    console.print(
        f"[green]✓ Added[/] [bold]{item.primary_text}[/] → {item.translated_text} "
        f"[dim](due {item.next_review_date:%Y-%m-%d})[/]"
    )


@app.command()
def stats(
    learner: Annotated[str | None, typer.Option("--learner", help="Learner id")] = None,
) -> None:
    """Show progress by mastery level."""
    init_db()
    items = SqlItemStore().list_items(_learner(learner))
    progress = progress_stats(items)

    table = Table(title="Vocabulary Progress")
    table.add_column("Level", style="cyan")
    table.add_column("Interval", style="dim")
    table.add_column("Words", style="green", justify="right")
    for level, interval in MASTERY_INTERVALS.items():
        label = "mastered" if level == RETIRED_LEVEL else f"{interval} d"
        table.add_row(str(level), label, str(progress.by_mastery_level.get(level, 0)))
    console.print(table)

    correct = sum(i.input_history.correct_count for i in items if i.input_history)
    attempts = sum(i.input_history.attempt_count for i in items if i.input_history)
    accuracy, band = input_accuracy(correct, attempts)

    console.print(
        f"Total: [bold]{progress.total}[/]  "
        f"Due today: [bold yellow]{progress.due_today}[/]  "
        f"Mastered: [bold green]{progress.mastered}[/]  "
        f"Typing accuracy: [bold]{accuracy:.0%}[/] [dim]({band.value})[/]"
    )


# =============================================================================
# Review Commands
# =============================================================================


@app.command("training-words")
def training_words(
    tag: Annotated[list[str] | None, typer.Option("--tag", "-t", help="Tag filter")] = None,
    level: Annotated[
        list[int] | None, typer.Option("--level", "-l", help="Mastery level filter")
    ] = None,
    limit: Annotated[int | None, typer.Option("--limit", "-n", help="Item count")] = None,
    learner: Annotated[str | None, typer.Option("--learner", help="Learner id")] = None,
) -> None:
    """List the words a training session would contain."""
    init_db()
    manager = ReviewSessionManager(SqlItemStore())

    try:
        item_filter = ItemFilter(tags=tag or [], mastery_levels=level or [], limit=limit)
        preview = manager.training_preview(_learner(learner), item_filter)
    except (LexiconError, ValueError) as e:
        console.print(f"[red]{e}[/]")
        raise typer.Exit(1)

    if not preview.count:
        console.print("[yellow]No items found for training[/]")
        return

    table = Table(title=f"Training Words ({preview.count})")
    table.add_column("Word", style="bold")
    table.add_column("Translation")
    table.add_column("Level", style="cyan", justify="right")
    table.add_column("Tags", style="dim")
    for item in preview.items:
        table.add_row(
            item.primary_text, item.translated_text, str(item.mastery_level), ", ".join(item.tags)
        )
    console.print(table)

    if preview.by_tags:
        counts = "  ".join(f"{name}: [bold]{n}[/]" for name, n in preview.by_tags.items())
        console.print(f"By tag: {counts}")


@app.command()
def review(
    mode: Annotated[
        ReviewMode, typer.Option("--mode", "-m", help="Review mode")
    ] = ReviewMode.RECOGNITION,
    training: Annotated[
        bool, typer.Option("--training", "-T", help="Practice without changing the schedule")
    ] = False,
    tag: Annotated[list[str] | None, typer.Option("--tag", "-t", help="Training: tag filter")] = None,
    level: Annotated[
        list[int] | None, typer.Option("--level", "-l", help="Training: mastery level filter")
    ] = None,
    limit: Annotated[int | None, typer.Option("--limit", "-n", help="Training: item count")] = None,
    learner: Annotated[str | None, typer.Option("--learner", help="Learner id")] = None,
) -> None:
    """
    Run an interactive review session.

    Examples:
        lexicon review                          # Daily recognition
        lexicon review -m reverse_input         # Type the word from its translation
        lexicon review -T -t verbs -n 10        # Ten verbs, no rescheduling
    """
    init_db()
    learner_id = _learner(learner)
    manager = ReviewSessionManager(SqlItemStore())
    session_type = SessionType.TRAINING if training else SessionType.DAILY

    try:
        item_filter = ItemFilter(tags=tag or [], mastery_levels=level or [], limit=limit)
        created = manager.create_session(learner_id, mode, session_type, item_filter)
    except (LexiconError, ValueError) as e:
        console.print(f"[red]{e}[/]")
        raise typer.Exit(1)

    if isinstance(created, NoItemsDue):
        console.print(f"[yellow]{created.message}. Come back later! 🎉[/]")
        return

    console.print(
        Panel(
            f"[bold cyan]{session_type.value.upper()} REVIEW[/]\n"
            f"Mode: {mode.value}\n"
            f"Items: {created.total_items}",
            border_style="cyan",
        )
    )

    try:
        final = _run_session(manager, learner_id, created)
    except LexiconError as e:
        console.print(f"[red]{e}[/]")
        raise typer.Exit(1)

    _print_summary(final)


def _run_session(
    manager: ReviewSessionManager,
    learner_id: str,
    created: SessionCreated,
) -> SessionStats:
    """Loop until the session completes or the learner quits."""
    session_id = created.session_id
    step: ItemPresented | SessionCompleted = manager.current_item(session_id, learner_id)
    shown_round = 1

    while isinstance(step, ItemPresented):
        if step.current_round != shown_round:
            shown_round = step.current_round
            console.rule(f"[bold magenta]Round {shown_round}[/]")

        if created.mode.is_input:
            outcome = _ask_typed(manager, learner_id, session_id, step)
        else:
            outcome = _ask_rating(manager, learner_id, session_id, step)

        if outcome is None:
            return manager.end_session(session_id, learner_id)
        if isinstance(outcome, SessionCompleted):
            return outcome.stats
        step = manager.current_item(session_id, learner_id)

    return step.stats


def _ask_rating(
    manager: ReviewSessionManager,
    learner_id: str,
    session_id: str,
    step: ItemPresented,
) -> Advanced | SessionCompleted | None:
    item = step.item
    started = time.monotonic()
    console.print(Panel(item.prompt, title=f"[cyan]{step.remaining + 1} left[/]", border_style="cyan"))

    reveal = Prompt.ask("[dim]Enter to reveal, q to quit[/]", default="", show_default=False)
    if reveal.strip().lower() in QUIT_INPUTS:
        return None
    console.print(f"[bold green]{item.expected_answer}[/]")

    rating = IntPrompt.ask(
        "1 again · 2 hard · 3 good · 4 easy",
        choices=["1", "2", "3", "4"],
        show_choices=False,
    )
    return manager.submit_rating(
        session_id,
        learner_id,
        item.item_id,
        rating,
        time_spent=time.monotonic() - started,
        direction=item.direction,
    )


def _ask_typed(
    manager: ReviewSessionManager,
    learner_id: str,
    session_id: str,
    step: ItemPresented,
) -> Advanced | SessionCompleted | None:
    item = step.item
    started = time.monotonic()
    hints_taken = 0
    penalised = 0
    console.print(Panel(item.prompt, title=f"[cyan]{step.remaining + 1} left[/]", border_style="cyan"))
    console.print("[dim]Type the answer. 'h'=hint, '?'=I don't know, 'q'=quit[/]")

    while True:
        answer = Prompt.ask("›", default="", show_default=False)
        command = answer.strip().lower()

        if command in QUIT_INPUTS:
            return None
        if command in DONT_KNOW_INPUTS:
            console.print(f"Answer: [bold]{item.expected_answer}[/]")
            return manager.submit_rating(
                session_id,
                learner_id,
                item.item_id,
                1,
                time_spent=time.monotonic() - started,
                direction=item.direction,
            )
        if command == "h":
            if hints_taken >= len(HINT_ORDER):
                console.print("[dim]No more hints available[/]")
                continue
            hint = manager.request_hint(
                learner_id, item.item_id, HINT_ORDER[hints_taken], hints_taken, item.direction
            )
            hints_taken += 1
            if hint.penalty_applied:
                penalised += 1
            console.print(f"[yellow]Hint {hints_taken}:[/] {hint.content}")
            continue

        check = validate_input_realtime(answer, item.expected_answer)
        for error in check.errors:
            console.print(f"[red]{error}[/]")
        for warning in check.warnings:
            console.print(f"[dim]{warning}[/]")

        result = manager.submit_input(
            session_id,
            learner_id,
            item.item_id,
            answer,
            hints_used=penalised,
            time_spent=time.monotonic() - started,
            direction=item.direction,
        )
        evaluation = result.evaluation
        if evaluation is not None:
            style, label = REASON_STYLES[evaluation.reason]
            console.print(f"[{style}]{label}[/] [dim](score {evaluation.score})[/]")
            if evaluation.suggestions:
                console.print(f"[dim]Expected:[/] {', '.join(evaluation.suggestions)}")
        return result


def _print_summary(stats: SessionStats) -> None:
    table = Table(title="Session Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Answered", f"{stats.completed_count}/{stats.total_items}")
    table.add_row("Correct", str(stats.correct_count))
    table.add_row("Accuracy", f"{stats.accuracy:.0%}")
    table.add_row("Average rating", f"{stats.average_rating:.2f}")
    table.add_row("Time", f"{stats.sum_response_seconds:.0f}s")
    console.print(table)


def run() -> None:
    """Console script entry point."""
    app()


if __name__ == "__main__":
    run()
