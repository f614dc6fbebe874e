"""
Typer CLI for the spacing engine.

Commands:
    spacing db init                      - Create the pairs/associations tables
    spacing pair add <deck> <q> <a>      - Add a pair (both directions, unseen)
    spacing plan <deck>                  - Show the due list and weighted pool
    spacing grade <expected> <received>  - Score a typed answer
    spacing mark <association> <decision>- Commit RIGHT / WRONG / SKIP
    spacing undo <association>           - Write a captured snapshot back
    spacing serve                        - Run the HTTP API

Usage:
    spacing --help
    spacing plan deck-1 --count 20 --m 1
    spacing grade "the house" "house the" --mode fuzzy
"""

from __future__ import annotations

from datetime import datetime

import typer
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from config import get_settings
from spacing.engine import marking
from spacing.engine.errors import InvalidDecisionError, StoreUnavailableError
from spacing.engine.models import Decision, SessionCard
from spacing.engine.planner import PlannerConfig, SelectionPlanner
from spacing.engine.similarity import compute_correctness, is_exact_like, normalize_answer_display
from spacing.logging_setup import configure_logging

console = Console()

app = typer.Typer(
    help="spacing: spaced-repetition selection and scheduling",
    no_args_is_help=True,
)
db_app = typer.Typer(help="Database commands", no_args_is_help=True)
pair_app = typer.Typer(help="Pair commands", no_args_is_help=True)
app.add_typer(db_app, name="db")
app.add_typer(pair_app, name="pair")


def _get_store():
    """Lazy load the store so --help works without a database."""
    from spacing.db.association_store import SqlAssociationStore

    return SqlAssociationStore()


def _format_due(value: datetime | None) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S") if value else "-"


def _cards_table(title: str, cards: list[SessionCard]) -> Table:
    table = Table(title=title)
    table.add_column("ID", style="dim")
    table.add_column("Cue")
    table.add_column("Response")
    table.add_column("Score", justify="right")
    table.add_column("Due at")
    for card in cards:
        table.add_row(
            card.id,
            card.cue,
            card.response,
            "-" if card.score is None else str(card.score),
            _format_due(card.due_at),
        )
    return table


# ========================================
# Database
# ========================================


@db_app.command("init")
def db_init() -> None:
    """Create the database tables."""
    from spacing.db.database import init_db

    init_db()
    rprint("[green]Database initialized[/green]")


# ========================================
# Pairs
# ========================================


@pair_app.command("add")
def pair_add(
    deck_id: str = typer.Argument(..., help="Deck the pair belongs to"),
    question: str = typer.Argument(..., help="Question side"),
    answer: str = typer.Argument(..., help="Answer side"),
) -> None:
    """Add a question/answer pair with both study directions."""
    try:
        created = _get_store().add_pair(deck_id, question, answer)
    except StoreUnavailableError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    rprint(f"[green]Added pair[/green] {created.pair_id}")
    rprint(f"  AB: {created.ab_id}")
    rprint(f"  BA: {created.ba_id}")


# ========================================
# Planning & Grading
# ========================================


@app.command("plan")
def plan(
    deck_id: str = typer.Argument(..., help="Deck to plan"),
    count: int = typer.Option(None, "--count", "-n", help="Cards wanted"),
    minimum_score: float = typer.Option(None, "--min", help="Lowest score admitted"),
    m_value: float = typer.Option(None, "--m", help="Score the weighting is centered on"),
) -> None:
    """Show the due list and the weighted pool for a deck."""
    settings = get_settings()
    planner = SelectionPlanner(
        _get_store(),
        PlannerConfig(sigma=settings.weight_sigma, unseen_weight=settings.unseen_weight),
    )
    try:
        session_plan = planner.plan_session(
            deck_id,
            count=count if count is not None else settings.session_count,
            minimum_score=minimum_score if minimum_score is not None else settings.minimum_score,
            m_value=m_value if m_value is not None else settings.m_value,
        )
    except StoreUnavailableError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    console.print(_cards_table("Due", session_plan.due))
    console.print(_cards_table("Pool", session_plan.pool))
    rprint(
        f"[cyan]available[/cyan] {session_plan.available}  "
        f"[cyan]requested[/cyan] {session_plan.requested}"
    )


@app.command("grade")
def grade(
    expected: str = typer.Argument(..., help="Expected answer"),
    received: str = typer.Argument(..., help="Typed answer"),
    mode: str = typer.Option(None, "--mode", "-m", help="exact, case or fuzzy"),
) -> None:
    """Score a typed answer against the expected one."""
    mode = mode or get_settings().matching_mode
    score = compute_correctness(expected, received, mode)
    rprint(f"correctness: [bold]{score:.3f}[/bold]")
    rprint(f"exact-like:  {'yes' if is_exact_like(expected, received) else 'no'}")
    rprint(f"normalized:  {normalize_answer_display(received)}")


# ========================================
# Marking
# ========================================


@app.command("mark")
def mark(
    association_id: str = typer.Argument(..., help="Association to grade"),
    decision: str = typer.Argument(..., help="RIGHT, WRONG or SKIP"),
) -> None:
    """Commit one grading decision directly to the store."""
    try:
        parsed = Decision.parse(decision)
    except InvalidDecisionError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(2)

    store = _get_store()
    try:
        before = store.snapshot(association_id)
        deck_id = None
        if before is not None:
            deck_id = marking.apply_decision(
                store, association_id, parsed, backoff_base=get_settings().backoff_base
            )
        after = store.snapshot(association_id) if deck_id is not None else None
    except StoreUnavailableError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if deck_id is None:
        rprint(f"[yellow]Association not found:[/yellow] {association_id}")
        raise typer.Exit(1)

    rprint(f"[green]{parsed.value}[/green] recorded in deck {deck_id}")
    rprint(f"  score {before.score} -> {after.score}, due {_format_due(after.due_at)}")
    due_arg = f" --due-at {before.due_at.isoformat()}" if before.due_at else ""
    score_arg = f" --score {before.score}" if before.score is not None else ""
    first_arg = " --first-time" if before.first_time else " --not-first-time"
    rprint(f"[dim]undo: spacing undo {association_id}{score_arg}{due_arg}{first_arg}[/dim]")


@app.command("undo")
def undo(
    association_id: str = typer.Argument(..., help="Association to restore"),
    score: int = typer.Option(None, "--score", help="Score to restore (omit for unset)"),
    due_at: str = typer.Option(None, "--due-at", help="ISO due date to restore (omit for none)"),
    first_time: bool = typer.Option(True, "--first-time/--not-first-time"),
) -> None:
    """Write a previously captured snapshot back onto an association."""
    try:
        deck_id = marking.restore_association(
            _get_store(), association_id, score=score, due_at=due_at, first_time=first_time
        )
    except StoreUnavailableError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if deck_id is None:
        rprint(f"[yellow]Association not found:[/yellow] {association_id}")
        raise typer.Exit(1)
    rprint(f"[green]Restored[/green] {association_id} in deck {deck_id}")


# ========================================
# Server
# ========================================


@app.command("serve")
def serve(
    host: str = typer.Option(None, "--host"),
    port: int = typer.Option(None, "--port"),
) -> None:
    """Run the HTTP API under uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "spacing.api.main:create_app",
        factory=True,
        host=host or settings.api_host,
        port=port or settings.api_port,
        log_level=settings.log_level.lower(),
    )


def run() -> None:
    """CLI entry point."""
    configure_logging(get_settings(), level="WARNING")
    app()


if __name__ == "__main__":
    run()
