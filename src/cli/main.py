"""CLI entry point for the board."""

import sys
from pathlib import Path

import click

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from cli.commands import history, init, knowledge, relation, session, task
from cli.config import find_config, load_config_model
from cli.logging_config import setup_logging
from observability import log_run_summary


@click.group()
@click.version_option(version="0.1.0")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.option("--json-logs", is_flag=True, help="Emit logs as JSON on stderr")
@click.option("--config", "config_path", type=click.Path(dir_okay=False), help="Config file path")
@click.option("--db", type=click.Path(dir_okay=False), help="SQLite database path (overrides config)")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, json_logs: bool, config_path: str, db: str):
    """Board - relations, sessions, audit trail and knowledge for task tracking."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["db"] = db
    ctx.obj["verbose"] = verbose

    level, json_mode = "WARNING", False
    try:
        path = Path(config_path) if config_path else find_config()
        config = load_config_model(path)
        level, json_mode = config.logging.level, config.logging.json_mode
    except ValueError:
        # Reported by the command when it loads components
        pass
    if verbose:
        level = "DEBUG"
    setup_logging(json_mode=json_mode or json_logs, level=level)


@cli.result_callback()
@click.pass_context
def _after_command(ctx: click.Context, *args, **kwargs):
    if ctx.obj.get("verbose"):
        log_run_summary()


cli.add_command(relation)
cli.add_command(history)
cli.add_command(session)
cli.add_command(knowledge)
cli.add_command(task)
cli.add_command(init)


if __name__ == "__main__":
    cli()
