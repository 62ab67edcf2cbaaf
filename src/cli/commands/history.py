"""Audit trail CLI commands."""

import click
from rich.console import Console
from rich.table import Table

from cli.utils import get_components, handle_errors, parse_ref
from shared_types import HistoryAction

console = Console()


def _history_table(entries) -> Table:
    table = Table(show_header=True)
    table.add_column("When", style="cyan")
    table.add_column("Entity")
    table.add_column("Action", style="green")
    table.add_column("Actor", style="dim")
    table.add_column("Summary")
    for e in entries:
        table.add_row(
            e.created_at.strftime("%Y-%m-%d %H:%M:%S"),
            str(e.entity_ref),
            e.action.value,
            e.actor,
            e.summary,
        )
    return table


@click.group()
def history():
    """Audit trail of board changes."""
    pass


@history.command("show")
@click.argument("ref", required=False)
@click.option("-a", "--action", type=click.Choice([a.value for a in HistoryAction]), help="Filter by action")
@click.option("-n", "--limit", default=20, help="Max entries to show")
@click.option("--changes", is_flag=True, help="Print field changes under each entry")
@handle_errors
def history_show(ref: str, action: str, limit: int, changes: bool):
    """Show history for REF (kind:id) or the most recent entries."""
    c = get_components()
    store = c["history"]

    if ref:
        entries = store.find_by_entity(parse_ref(ref))
        if action:
            entries = [e for e in entries if e.action.value == action]
        entries = entries[:limit]
    elif action:
        entries = store.find_by_action(action, limit=limit)
    else:
        entries = store.find_recent(limit)

    if not entries:
        console.print("[yellow]No history found.[/]")
        return

    console.print(_history_table(entries))
    if changes:
        for e in entries:
            if not e.changes:
                continue
            console.print(f"\n[bold]{e.summary}[/]")
            for name in e.changed_fields:
                change = e.changes[name]
                console.print(f"  {name}: [red]{change.from_!r}[/] → [green]{change.to!r}[/]")


@history.command("session")
@click.argument("session_id", required=False)
@handle_errors
def history_session(session_id: str):
    """Entries recorded during a session (default: the active one)."""
    c = get_components()
    if not session_id:
        active = c["sessions"].find_active()
        if active is None:
            console.print("[yellow]No active session. Pass a SESSION_ID.[/]")
            return
        session_id = active.id

    entries = c["history"].find_by_session(session_id)
    if not entries:
        console.print(f"[yellow]No history for session {session_id}.[/]")
        return
    console.print(_history_table(entries))


@history.command("actor")
@click.argument("actor")
@click.option("--stats", is_flag=True, help="Show action counts instead of entries")
@click.option("-n", "--limit", default=20, help="Max entries to show")
@handle_errors
def history_actor(actor: str, stats: bool, limit: int):
    """Entries (or action counts) for one actor."""
    c = get_components()

    if stats:
        counts = c["history"].actor_stats(actor)
        if not counts:
            console.print(f"[yellow]No history for {actor}.[/]")
            return
        table = Table(show_header=True, title=actor)
        table.add_column("Action", style="green")
        table.add_column("Count", justify="right")
        for name, count in sorted(counts.items()):
            table.add_row(name, str(count))
        console.print(table)
        return

    entries = c["history"].find_by_actor(actor)[:limit]
    if not entries:
        console.print(f"[yellow]No history for {actor}.[/]")
        return
    console.print(_history_table(entries))
