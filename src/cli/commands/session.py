"""Work session CLI commands."""

import click
from rich.console import Console

from cli.utils import default_actor, get_components, handle_errors, parse_ref
from errors import StateError

console = Console()


def _format_duration(seconds: float) -> str:
    minutes, secs = divmod(int(seconds), 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}h {minutes}m"
    if minutes:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def _require_active(c):
    active = c["sessions"].find_active()
    if active is None:
        raise StateError("No active session")
    return active


@click.group()
def session():
    """Start, inspect and end work sessions."""
    pass


@session.command("start")
@click.option("--actor", default=None, help="Who is working (default: current user)")
@click.option("--entity", "entity_ref", help="Entity to focus on (kind:id)")
@click.option("--phase", help="Workflow phase label")
@handle_errors
def session_start(actor: str, entity_ref: str, phase: str):
    """Begin a session. Fails if one is already active."""
    c = get_components()
    entity = parse_ref(entity_ref) if entity_ref else None
    s = c["sessions"].start(actor or default_actor(), active_entity=entity, phase=phase)
    console.print(f"[green]Started:[/] session {s.id} for {s.actor}")


@session.command("end")
@click.argument("session_id", required=False)
@handle_errors
def session_end(session_id: str):
    """End the active session."""
    c = get_components()
    if not session_id:
        session_id = _require_active(c).id
    s = c["sessions"].end(session_id)
    console.print(
        f"[green]Ended:[/] session {s.id} after {_format_duration(s.duration().total_seconds())}"
    )


@session.command("status")
@handle_errors
def session_status():
    """Show the active session."""
    c = get_components()
    s = c["sessions"].find_active()
    if s is None:
        console.print("[yellow]No active session.[/]")
        return

    console.print(f"[cyan bold]Session {s.id}[/]")
    console.print(f"Actor: {s.actor}")
    console.print(f"Started: {s.started_at.strftime('%Y-%m-%d %H:%M:%S')}")
    console.print(f"Duration: {_format_duration(s.duration().total_seconds())}")
    console.print(f"Entity: {s.active_entity or '-'}")
    console.print(f"Phase: {s.phase or '-'}")
    if s.compaction_count:
        console.print(f"Compactions: {s.compaction_count}")


@session.command("switch")
@click.argument("entity_ref", required=False)
@handle_errors
def session_switch(entity_ref: str):
    """Point the active session at ENTITY_REF (omit to clear)."""
    c = get_components()
    active = _require_active(c)
    entity = parse_ref(entity_ref) if entity_ref else None
    s = c["sessions"].switch_entity(active.id, entity)
    console.print(f"[green]Switched:[/] {s.active_entity or 'no entity'}")


@session.command("phase")
@click.argument("phase", required=False)
@handle_errors
def session_phase(phase: str):
    """Set the active session's phase (omit to clear)."""
    c = get_components()
    active = _require_active(c)
    s = c["sessions"].set_phase(active.id, phase)
    console.print(f"[green]Phase:[/] {s.phase or '-'}")


@session.command("compact")
@handle_errors
def session_compact():
    """Count a context compaction in the active session."""
    c = get_components()
    active = _require_active(c)
    s = c["sessions"].record_compaction(active.id)
    console.print(f"[green]Compactions:[/] {s.compaction_count}")
