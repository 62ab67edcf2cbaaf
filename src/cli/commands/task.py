"""Task CLI commands: create, change status, list ready work."""

import click
from rich.console import Console
from rich.table import Table

from cli.utils import default_actor, get_components, handle_errors
from errors import NotFoundError
from shared_types import EntityKind, EntityRef, HistoryAction, TaskStatus

console = Console()


def _audit_context(c, actor: str | None):
    """Explicit context for history entries: active session if any."""
    active = c["sessions"].find_active()
    if actor is None:
        actor = active.actor if active else default_actor()
    return c["sessions"].context(actor)


def _resolve_task(c, id_or_code: str) -> dict:
    task = c["entities"].resolve(EntityKind.TASK, id_or_code)
    if task is None:
        raise NotFoundError(f"task not found: {id_or_code}")
    return task


@click.group()
def task():
    """Create tasks and find ready work."""
    pass


@task.command("add")
@click.argument("title")
@click.option("--code", help="Human-readable code (e.g. T-1)")
@click.option("--story", "story_id", help="Owning story id")
@click.option("--depends-on", "depends_on", multiple=True, help="Task id/code this depends on (repeatable)")
@click.option("--actor", default=None, help="Actor recorded in history")
@handle_errors
def task_add(title: str, code: str, story_id: str, depends_on: tuple[str, ...], actor: str):
    """Create a pending task."""
    c = get_components()
    deps = [_resolve_task(c, d)["id"] for d in depends_on]
    data = {"title": title, "dependencies": deps}
    if code:
        data["code"] = code
    if story_id:
        data["story_id"] = story_id

    snapshot = c["entities"].create(EntityKind.TASK, data)
    c["history"].record(
        _audit_context(c, actor),
        EntityRef(EntityKind.TASK, snapshot["id"]),
        HistoryAction.CREATED,
        after=snapshot,
    )
    console.print(f"[green]Created:[/] task {snapshot.get('code') or snapshot['id']} ({snapshot['id']})")


@task.command("status")
@click.argument("task_id")
@click.argument("status", type=click.Choice([s.value for s in TaskStatus]))
@click.option("--actor", default=None, help="Actor recorded in history")
@handle_errors
def task_status(task_id: str, status: str, actor: str):
    """Change a task's status."""
    c = get_components()
    before = _resolve_task(c, task_id)
    if before.get("status") == status:
        console.print(f"[yellow]Task already {status}.[/]")
        return

    after = c["entities"].update(EntityKind.TASK, before["id"], {"status": status})
    entry = c["history"].record(
        _audit_context(c, actor),
        EntityRef(EntityKind.TASK, before["id"]),
        HistoryAction.STATUS_CHANGED,
        before=before,
        after=after,
    )
    console.print(f"[green]{entry.summary}[/]")


@task.command("ready")
@click.option("--story", "story_id", help="Only tasks of this story")
@click.option("--explain", is_flag=True, help="Also list blocked pending tasks and why")
@handle_errors
def task_ready(story_id: str, explain: bool):
    """List pending tasks whose dependencies are all completed."""
    c = get_components()
    engine = c["readiness"]
    ready = engine.list_ready(story_id=story_id)

    if ready:
        table = Table(show_header=True, title="Ready")
        table.add_column("ID", style="dim")
        table.add_column("Code", style="cyan")
        table.add_column("Title")
        table.add_column("Story", style="dim")
        for t in ready:
            table.add_row(t["id"], t.get("code") or "", t.get("title", ""), t.get("story_id") or "")
        console.print(table)
    else:
        console.print("[yellow]No ready tasks.[/]")

    if not explain:
        return
    ready_ids = {t["id"] for t in ready}
    filters = {"status": TaskStatus.PENDING.value}
    if story_id:
        filters["story_id"] = story_id
    for t in c["entities"].find_all(EntityKind.TASK, **filters):
        if t["id"] in ready_ids:
            continue
        waiting = ", ".join(engine.blocking_dependencies(t))
        console.print(f"[dim]{t.get('code') or t['id']}[/] waiting on: {waiting}")
