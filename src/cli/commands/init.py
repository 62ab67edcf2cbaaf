"""Init CLI command."""

from pathlib import Path

import click
from rich.console import Console

from cli.utils import get_components

console = Console()

DEFAULT_CONFIG_PATH = Path("~/.board/config.yaml")


@click.command()
@click.option(
    "--config-path",
    type=click.Path(path_type=Path),
    default=DEFAULT_CONFIG_PATH,
    show_default=True,
    help="Where to write the config file",
)
def init(config_path: Path):
    """Create the config file and the board database."""
    from cli.config import write_default_config

    c = get_components()
    db = c["paths"]["db"]
    console.print(f"[green]✓[/] database: {db}")

    path = config_path.expanduser()
    existed = path.exists()
    write_default_config(path, db=db)
    if existed:
        console.print(f"[dim]Config already exists:[/] {path}")
    else:
        console.print(f"[green]✓[/] Created config: {path}")

    console.print("\n[bold]Ready![/] Start with: board session start")
