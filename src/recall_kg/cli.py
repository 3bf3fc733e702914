"""CLI interface for recall-kg.

Operates on a snapshot file (see recall_kg.store.io) holding users'
entities, relationships and merge suggestions.
"""

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from recall_kg.config import RecallConfig

app = typer.Typer(
    name="recall",
    help="Entity resolution and relationship scoring for personal knowledge graphs",
    add_completion=True,
    rich_markup_mode="rich",
)

console = Console()


def _setup_logging(verbose: bool = False) -> None:
    """Configure logging level."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
    )


def _load_config(data: str | None) -> RecallConfig:
    config = RecallConfig()
    if data:
        config.data_path = Path(data)
    return config


def _load_snapshot(config: RecallConfig):
    from recall_kg.store.io import read_snapshot

    if not config.data_path.exists():
        console.print(f"[red]Error:[/red] Snapshot not found: {config.data_path}")
        raise typer.Exit(1)
    return read_snapshot(config.data_path)


def _load_nicknames(config: RecallConfig):
    try:
        return config.nickname_table()
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None


def _confidence(value: float) -> str:
    style = "green" if value >= 0.9 else "yellow" if value >= 0.7 else "red"
    return f"[{style}]{value:.0%}[/{style}]"


# ============================================================================
# Resolution Commands
# ============================================================================


@app.command()
def duplicates(
    user: str = typer.Argument(..., help="User whose entities to scan"),
    entity_type: str | None = typer.Option(None, "--type", "-t", help="Only scan this entity type"),
    min_confidence: float = typer.Option(0.5, "--min-confidence", help="Hide matches below this confidence"),
    blocking: bool = typer.Option(False, "--blocking", help="Only compare entities sharing a blocking key"),
    data: str | None = typer.Option(None, "--data", help="Snapshot file"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose logging"),
) -> None:
    """List likely duplicate entities without changing anything."""
    _setup_logging(verbose)
    config = _load_config(data)
    snapshot = _load_snapshot(config)

    from recall_kg.pipeline import run_find_duplicates

    matches = run_find_duplicates(
        snapshot,
        user,
        entity_type,
        min_confidence=min_confidence,
        entity_types=config.entity_types,
        limit=config.scan_limit,
        use_blocking=config.use_blocking or blocking,
        nicknames=_load_nicknames(config),
    )

    if not matches:
        console.print("[green]No duplicates found![/green]")
        return

    table = Table(title=f"Potential duplicates for {user}", show_header=True, header_style="bold cyan")
    table.add_column("Type", style="dim")
    table.add_column("Entity 1")
    table.add_column("Entity 2")
    table.add_column("Confidence", justify="right")
    table.add_column("Factors", style="dim")
    for match in matches:
        table.add_row(
            match.entity_type,
            match.entity1_value,
            match.entity2_value,
            _confidence(match.confidence),
            ", ".join(match.match_factors),
        )
    console.print(table)
    console.print()
    console.print("Next: [cyan]recall suggest[/cyan] to record merge suggestions")


@app.command()
def suggest(
    user: str = typer.Argument(..., help="User whose entities to scan"),
    min_confidence: float | None = typer.Option(None, "--min-confidence", help="Only suggest matches at or above this confidence"),
    auto_apply: float | None = typer.Option(
        None, "--auto-apply",
        help="Merge suggestions at or above this confidence immediately (0-1)",
    ),
    data: str | None = typer.Option(None, "--data", help="Snapshot file"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose logging"),
) -> None:
    """Record merge suggestions, auto-applying the confident ones."""
    _setup_logging(verbose)
    config = _load_config(data)
    snapshot = _load_snapshot(config)

    from recall_kg.pipeline import run_suggest_merges
    from recall_kg.resolve.merge import SuggestionRollbackError
    from recall_kg.store.io import write_snapshot

    try:
        updated, suggestions = run_suggest_merges(
            snapshot,
            user,
            min_confidence=config.min_suggestion_confidence if min_confidence is None else min_confidence,
            auto_apply_threshold=config.auto_apply_threshold if auto_apply is None else auto_apply,
            entity_types=config.entity_types,
            limit=config.scan_limit,
            use_blocking=config.use_blocking,
            nicknames=_load_nicknames(config),
        )
    except (ValueError, SuggestionRollbackError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None

    if not suggestions:
        console.print("[green]No merge suggestions to record.[/green]")
        return

    write_snapshot(updated, config.data_path)

    auto_applied = [s for s in suggestions if s.status == "auto_applied"]
    console.print()
    console.print(f"[green]Recorded {len(suggestions)} merge suggestions[/green]")
    console.print(f"  Auto-applied: {len(auto_applied)}")
    console.print(f"  Pending review: {len(suggestions) - len(auto_applied)}")
    console.print(f"  Output: {config.data_path}")
    console.print()
    console.print("Next: [cyan]recall review[/cyan] to accept/reject pending suggestions")


@app.command()
def review(
    user: str = typer.Argument(..., help="User whose suggestions to review"),
    data: str | None = typer.Option(None, "--data", help="Snapshot file"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose logging"),
) -> None:
    """Interactively accept or reject pending merge suggestions."""
    _setup_logging(verbose)
    config = _load_config(data)
    snapshot = _load_snapshot(config)

    from recall_kg.pipeline import run_list_suggestions, run_review
    from recall_kg.resolve.merge import MAX_LIST_LIMIT
    from recall_kg.resolve.reviewer import review_suggestions
    from recall_kg.store.io import write_snapshot

    pending = run_list_suggestions(snapshot, user, "pending", limit=MAX_LIST_LIMIT)
    if not pending:
        console.print("[yellow]Nothing to review.[/yellow]")
        console.print("Run [cyan]recall suggest[/cyan] first.")
        raise typer.Exit(0)

    decisions, _ = review_suggestions(pending)
    if not decisions:
        return

    updated, stats = run_review(snapshot, user, decisions)
    write_snapshot(updated, config.data_path)

    console.print()
    console.print(
        f"Applied: [green]{stats['accepted']} merged[/green]  "
        f"[red]{stats['rejected']} rejected[/red]"
        + (f"  [yellow]{stats['failed']} failed[/yellow]" if stats["failed"] else "")
    )


@app.command()
def stats(
    user: str = typer.Argument(..., help="User whose merge suggestions to count"),
    data: str | None = typer.Option(None, "--data", help="Snapshot file"),
) -> None:
    """Show merge suggestion counts by status."""
    config = _load_config(data)
    snapshot = _load_snapshot(config)

    from recall_kg.pipeline import run_merge_stats

    merge_stats = run_merge_stats(snapshot, user)

    table = Table(title=f"Merge suggestions for {user}", show_header=True, header_style="bold cyan")
    table.add_column("Metric", style="dim")
    table.add_column("Value", justify="right")
    table.add_row("Total", str(merge_stats.total_suggestions))
    table.add_row("Pending", str(merge_stats.pending_suggestions))
    table.add_row("Auto-applied", str(merge_stats.auto_applied))
    table.add_row("Accepted", str(merge_stats.manually_accepted))
    table.add_row("Rejected", str(merge_stats.rejected))
    table.add_row("Auto-apply rate", f"{merge_stats.auto_apply_rate:.0%}")
    console.print(table)


# ============================================================================
# Relationship Commands
# ============================================================================


@app.command()
def scores(
    user: str = typer.Argument(..., help="User whose relationships to score"),
    limit: int = typer.Option(10, "--limit", "-n", help="How many relationships to show"),
    entity_type: str | None = typer.Option(None, "--type", "-t", help="Only entities of this type"),
    summary: bool = typer.Option(False, "--summary", help="Show strength distribution instead"),
    data: str | None = typer.Option(None, "--data", help="Snapshot file"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose logging"),
) -> None:
    """Rank a user's relationships by strength."""
    _setup_logging(verbose)
    config = _load_config(data)
    snapshot = _load_snapshot(config)

    try:
        scoring = config.scoring_config()
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None

    from recall_kg.pipeline import run_score_stats, run_top_relationships

    if summary:
        score_stats = run_score_stats(snapshot, user, scoring)
        table = Table(title=f"Relationship strength for {user}", show_header=True, header_style="bold cyan")
        table.add_column("Metric", style="dim")
        table.add_column("Value", justify="right")
        table.add_row("Entities", str(score_stats.total_entities))
        table.add_row("Average strength", f"{score_stats.avg_strength:.2f}")
        table.add_row("Strong (> 0.7)", str(score_stats.strong_relationships))
        table.add_row("Medium (0.3-0.7)", str(score_stats.medium_relationships))
        table.add_row("Weak (< 0.3)", str(score_stats.weak_relationships))
        for etype, count in sorted(score_stats.top_entity_types.items()):
            table.add_row(f"  {etype}", str(count))
        console.print(table)
        return

    top = run_top_relationships(snapshot, user, limit, entity_type, scoring)
    if not top:
        console.print("[yellow]No relationships found.[/yellow]")
        return

    table = Table(title=f"Top relationships for {user}", show_header=True, header_style="bold cyan")
    table.add_column("Entity")
    table.add_column("Type", style="dim")
    table.add_column("Strength", justify="right")
    table.add_column("Interactions", justify="right")
    table.add_column("Email/mo", justify="right")
    table.add_column("Calendar/mo", justify="right")
    table.add_column("Days since", justify="right")
    for score in top:
        table.add_row(
            score.entity_value,
            score.entity_type,
            f"{score.strength:.2f}",
            str(score.interaction_count),
            f"{score.factors.email_frequency:.1f}",
            f"{score.factors.calendar_frequency:.1f}",
            f"{score.factors.recency:.0f}",
        )
    console.print(table)


# ============================================================================
# Utility Commands
# ============================================================================


@app.command()
def info(
    data: str | None = typer.Option(None, "--data", help="Snapshot file"),
) -> None:
    """Display configuration and snapshot contents."""
    config = _load_config(data)

    table = Table(title="recall-kg Project Info", show_header=True, header_style="bold cyan")
    table.add_column("Metric", style="dim")
    table.add_column("Value")

    table.add_row("Snapshot", str(config.data_path))
    table.add_row("Entity Types", ", ".join(config.entity_types))
    table.add_row("Auto-apply Threshold", f"{config.auto_apply_threshold:.2f}")
    table.add_row("Suggestion Floor", f"{config.min_suggestion_confidence:.2f}")
    table.add_row("Blocking", "On" if config.use_blocking else "Off")
    table.add_row("Nickname Table", str(config.nicknames_path or "bundled"))

    if config.data_path.exists():
        from recall_kg.store.io import read_snapshot

        snapshot = read_snapshot(config.data_path)
        for user_id, user_data in snapshot.users.items():
            pending = sum(1 for s in user_data.suggestions if s.status == "pending")
            table.add_row(
                f"User {user_id}",
                f"{len(user_data.entities)} entities, {len(user_data.relationships)} relationships, "
                f"{len(user_data.suggestions)} suggestions ({pending} pending)",
            )
    else:
        table.add_row("Users", "No snapshot yet")

    console.print(table)
    raise typer.Exit(0)


if __name__ == "__main__":
    app()
