"""Knowledge annotation CLI commands."""

import click
from rich.console import Console
from rich.table import Table

from cli.utils import get_components, handle_errors, parse_ref
from shared_types import KnowledgeDimension

console = Console()

DIMENSION_CHOICES = [d.value for d in KnowledgeDimension]


@click.group()
def knowledge():
    """Confidence-weighted annotations (Q/E/O/M)."""
    pass


@knowledge.command("add")
@click.argument("ref")
@click.argument("dimension", type=click.Choice(DIMENSION_CHOICES, case_sensitive=False))
@click.argument("category")
@click.argument("content")
@click.option("-c", "--confidence", type=float, default=None, help="Initial confidence 0-1")
@click.option("-e", "--evidence", help="Supporting evidence text")
@handle_errors
def knowledge_add(ref: str, dimension: str, category: str, content: str, confidence: float, evidence: str):
    """Attach an annotation to REF (kind:id)."""
    c = get_components()
    ann = c["knowledge"].create(
        parse_ref(ref),
        dimension.upper(),
        category,
        content,
        confidence=confidence,
        evidence=evidence,
    )
    console.print(f"[green]Added:[/] {ann.id} ({ann.dimension.value}/{ann.category}, conf={ann.confidence:.2f})")


@knowledge.command("list")
@click.argument("ref", required=False)
@click.option("-d", "--dimension", type=click.Choice(DIMENSION_CHOICES, case_sensitive=False), help="Filter by dimension")
@click.option("--category", help="Filter by category")
@click.option("--high", is_flag=True, help="Only high-confidence annotations")
@click.option("-s", "--search", "term", help="Substring search in content/category")
@click.option("--summary", is_flag=True, help="Per-dimension counts for REF")
@handle_errors
def knowledge_list(ref: str, dimension: str, category: str, high: bool, term: str, summary: bool):
    """List annotations."""
    c = get_components()
    store = c["knowledge"]
    dim = dimension.upper() if dimension else None

    if summary:
        if not ref:
            raise click.UsageError("--summary needs a REF")
        counts = store.dimension_summary(parse_ref(ref))
        for d, count in counts.items():
            console.print(f"  {d.value} ({d.name.lower()}): {count}")
        return

    if ref:
        annotations = store.find_by_entity(parse_ref(ref), dimension=dim)
    elif term:
        annotations = store.search(term)
    elif high:
        annotations = store.find_high_confidence()
    elif dim:
        annotations = store.find_by_dimension(dim)
    elif category:
        annotations = store.find_by_category(category)
    else:
        annotations = store.find_all()

    if dim:
        annotations = [a for a in annotations if a.dimension.value == dim]
    if category:
        annotations = [a for a in annotations if a.category == category]
    if high:
        annotations = [a for a in annotations if a.confidence >= store.high_confidence_threshold]

    if not annotations:
        console.print("[yellow]No annotations found.[/]")
        return

    table = Table(show_header=True)
    table.add_column("ID", style="dim")
    table.add_column("Entity", style="cyan")
    table.add_column("Dim", width=3)
    table.add_column("Category", style="green")
    table.add_column("Content")
    table.add_column("Conf", justify="right")
    for a in annotations:
        table.add_row(
            a.id,
            str(a.entity_ref),
            a.dimension.value,
            a.category,
            a.content[:60],
            f"{a.confidence:.2f}",
        )
    console.print(table)


@knowledge.command("evidence")
@click.argument("annotation_id")
@click.argument("evidence", type=float)
@click.option("-w", "--weight", type=float, default=None, help="Weight of the prior confidence")
@handle_errors
def knowledge_evidence(annotation_id: str, evidence: float, weight: float):
    """Blend EVIDENCE (0-1) into an annotation's confidence."""
    c = get_components()
    if weight is None:
        weight = c["config"].knowledge.default_weight
    before = c["knowledge"].get(annotation_id)
    ann = c["knowledge"].update_confidence(annotation_id, evidence, weight=weight)
    prior = f"{before.confidence:.2f}" if before else "?"
    console.print(f"[green]Confidence:[/] {prior} → {ann.confidence:.2f}")


@knowledge.command("rm")
@click.argument("annotation_id", required=False)
@click.option("--entity", "entity_ref", help="Remove every annotation on this kind:id")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@handle_errors
def knowledge_rm(annotation_id: str, entity_ref: str, yes: bool):
    """Delete an annotation."""
    c = get_components()

    if entity_ref:
        entity = parse_ref(entity_ref)
        if not yes and not click.confirm(f"Delete all annotations on {entity}?"):
            return
        count = c["knowledge"].delete_for_entity(entity)
        console.print(f"[green]Deleted:[/] {count} annotation(s)")
        return

    if not annotation_id:
        raise click.UsageError("Give an ANNOTATION_ID or --entity")
    c["knowledge"].delete(annotation_id)
    console.print(f"[green]Deleted:[/] {annotation_id}")
