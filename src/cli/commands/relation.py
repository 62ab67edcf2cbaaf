"""Relation CLI commands."""

import click
from rich.console import Console
from rich.table import Table

from cli.utils import get_components, handle_errors, parse_ref
from shared_types import RelationType

console = Console()

RELATION_CHOICES = [t.value for t in RelationType]


def _relation_table(relations, title: str | None = None) -> Table:
    table = Table(show_header=True, title=title)
    table.add_column("ID", style="dim")
    table.add_column("Source", style="cyan")
    table.add_column("Type", style="green")
    table.add_column("Target", style="cyan")
    table.add_column("Description")
    for r in relations:
        table.add_row(
            r.id,
            str(r.source),
            r.relation_type.value,
            str(r.target),
            (r.description or "")[:50],
        )
    return table


@click.group()
def relation():
    """Typed links between board entities."""
    pass


@relation.command("add")
@click.argument("source")
@click.argument("relation_type", type=click.Choice(RELATION_CHOICES))
@click.argument("target")
@click.option("-d", "--description", help="Free-text description")
@click.option("--one-way", is_flag=True, help="Do not create the inverse edge")
@handle_errors
def relation_add(source: str, relation_type: str, target: str, description: str, one_way: bool):
    """Link SOURCE to TARGET (refs as kind:id)."""
    c = get_components()
    src, dst = parse_ref(source), parse_ref(target)

    if one_way:
        rel = c["relations"].create(src, dst, relation_type, description)
        console.print(f"[green]Linked:[/] {src} {rel.relation_type.value} {dst} ({rel.id})")
        return

    pair = c["relations"].create_bidirectional(src, dst, relation_type, description)
    console.print(f"[green]Linked:[/] {src} {pair.forward.relation_type.value} {dst} ({pair.forward.id})")
    console.print(f"[dim]Inverse:[/] {dst} {pair.inverse.relation_type.value} {src} ({pair.inverse.id})")


@relation.command("list")
@click.argument("ref", required=False)
@click.option("-t", "--type", "relation_type", type=click.Choice(RELATION_CHOICES), help="Filter by type")
@click.option("--outgoing", is_flag=True, help="Only edges leaving REF")
@click.option("--incoming", is_flag=True, help="Only edges arriving at REF")
@handle_errors
def relation_list(ref: str, relation_type: str, outgoing: bool, incoming: bool):
    """List relations, optionally for one entity."""
    c = get_components()
    store = c["relations"]

    if ref:
        entity = parse_ref(ref)
        if outgoing and not incoming:
            relations = store.find_from_source(entity)
        elif incoming and not outgoing:
            relations = store.find_to_target(entity)
        else:
            relations = store.find_for_entity(entity)
        if relation_type:
            relations = [r for r in relations if r.relation_type.value == relation_type]
    elif relation_type:
        relations = store.find_by_type(relation_type)
    else:
        relations = store.find_all()

    if not relations:
        console.print("[yellow]No relations found.[/]")
        return
    console.print(_relation_table(relations))


@relation.command("blockers")
@click.argument("ref")
@handle_errors
def relation_blockers(ref: str):
    """Show what blocks REF and what REF blocks."""
    c = get_components()
    entity = parse_ref(ref)
    blockers = c["relations"].find_blockers(entity)
    blocked = c["relations"].find_blocked(entity)

    if not blockers and not blocked:
        console.print(f"[green]{entity} has no blocking relations.[/]")
        return
    if blockers:
        console.print(_relation_table(blockers, title=f"Blocking {entity}"))
    if blocked:
        console.print(_relation_table(blocked, title=f"Blocked by {entity}"))


@relation.command("rm")
@click.argument("relation_id", required=False)
@click.option("--entity", "entity_ref", help="Remove every relation touching this kind:id")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@handle_errors
def relation_rm(relation_id: str, entity_ref: str, yes: bool):
    """Delete one relation by id (its inverse is kept)."""
    c = get_components()

    if entity_ref:
        entity = parse_ref(entity_ref)
        if not yes and not click.confirm(f"Delete all relations of {entity}?"):
            return
        count = c["relations"].delete_for_entity(entity)
        console.print(f"[green]Deleted:[/] {count} relation(s)")
        return

    if not relation_id:
        raise click.UsageError("Give a RELATION_ID or --entity")
    c["relations"].delete(relation_id)
    console.print(f"[green]Deleted:[/] {relation_id}")
