"""Interactive terminal review for pending merge suggestions.

Presents suggestions one-by-one with Rich panels. The user accepts,
rejects, or skips each one. Decisions are returned, not applied: the
caller hands them to MergeService so accepted merges actually run.
"""

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from recall_kg.resolve.merge import ReviewDecision
from recall_kg.resolve.models import MergeSuggestion

console = Console()


def _read_key(prompt: str, valid: str = "arsq") -> str:
    """Read a single valid key from stdin.

    Args:
        prompt: Prompt text to display
        valid: String of valid key characters

    Returns:
        The key pressed (lowercase)
    """
    console.print(prompt, end="")
    while True:
        try:
            line = input().strip().lower()
        except (EOFError, KeyboardInterrupt):
            return "q"
        if line and line[0] in valid:
            return line[0]
        console.print(f"  [dim]Press one of: {', '.join(valid)}[/dim] ", end="")


def _confidence_style(confidence: float) -> str:
    if confidence >= 0.9:
        return "green"
    if confidence >= 0.7:
        return "yellow"
    return "red"


def _suggestion_panel(suggestion: MergeSuggestion, index: int, total: int) -> Panel:
    header = Text()
    header.append("Keep:  ", style="bold")
    header.append(suggestion.entity1_value, style="green")
    header.append(f"  ({suggestion.entity1_type})", style="dim")
    header.append("\nMerge: ", style="bold")
    header.append(suggestion.entity2_value, style="yellow")
    header.append(f"  ({suggestion.entity2_type})", style="dim")

    details = Table(show_header=False, box=None, padding=(0, 2))
    details.add_column("Field", style="bold")
    details.add_column("Value")
    style = _confidence_style(suggestion.confidence)
    details.add_row("Confidence", f"[{style}]{suggestion.confidence:.0%}[/{style}]")
    if suggestion.match_reason:
        details.add_row("Reason", Text(suggestion.match_reason, style="dim"))
    details.add_row("ID", Text(suggestion.id, style="dim"))

    return Panel(
        Group(header, Text(""), details),
        title=f"[bold]Suggestion {index + 1}/{total}[/bold]",
        border_style="cyan",
        padding=(1, 2),
    )


def review_suggestions(
    suggestions: list[MergeSuggestion],
) -> tuple[dict[str, ReviewDecision], dict[str, int]]:
    """Interactively review pending merge suggestions.

    Args:
        suggestions: Suggestions to walk through; only pending ones are shown

    Returns:
        Tuple of (suggestion id -> decision, stats dict with counts of
        accepted, rejected, skipped)
    """
    pending = [s for s in suggestions if s.status == "pending"]
    decisions: dict[str, ReviewDecision] = {}
    stats = {"accepted": 0, "rejected": 0, "skipped": 0}

    if not pending:
        console.print("[dim]No merge suggestions to review.[/dim]")
        return decisions, stats

    total = len(pending)
    console.print()
    console.print(f"[bold cyan]Merge Suggestion Review[/bold cyan]  —  {total} to review")
    console.print("[dim]Accepting deletes the merged entity; the kept entity stays.[/dim]")
    console.print()

    for i, suggestion in enumerate(pending):
        console.print(_suggestion_panel(suggestion, i, total))

        choice = _read_key(r"  \[a]ccept  \[r]eject  \[s]kip  \[q]uit → ")
        console.print()

        if choice == "a":
            decisions[suggestion.id] = "accepted"
            stats["accepted"] += 1
            console.print("  [green]✓ Accepted[/green]")
        elif choice == "r":
            decisions[suggestion.id] = "rejected"
            stats["rejected"] += 1
            console.print("  [red]✗ Rejected[/red]")
        elif choice == "s":
            stats["skipped"] += 1
            console.print("  [dim]⏭ Skipped[/dim]")
        elif choice == "q":
            stats["skipped"] += total - i
            console.print(f"  [dim]Quit — skipping remaining {total - i} suggestions[/dim]")
            break

        console.print()

    console.print(
        f"[bold]Review complete:[/bold]  "
        f"[green]{stats['accepted']} accepted[/green]  "
        f"[red]{stats['rejected']} rejected[/red]  "
        f"[dim]{stats['skipped']} skipped[/dim]"
    )
    return decisions, stats
