"""Shared CLI utilities."""

import functools
import getpass
import sys
from pathlib import Path

import click
import structlog
from rich.console import Console

from errors import BoardError, InvalidInputError

console = Console()
logger = structlog.get_logger()


def _root_options() -> dict:
    """Options stored on the root click context by the `board` group."""
    ctx = click.get_current_context(silent=True)
    if ctx is None:
        return {}
    return ctx.find_root().obj or {}


def get_components():
    """Initialize all stores from config.

    The ``--config`` and ``--db`` options of the root group take precedence
    over the config file search.
    """
    from cli.config import get_paths, load_config_model
    from entities import SqliteEntityStore
    from events import get_channel
    from history import HistoryStore
    from knowledge import KnowledgeStore
    from readiness import ReadinessEngine
    from relations import RelationStore
    from sessions import SessionManager

    opts = _root_options()
    config_path = opts.get("config_path")
    try:
        config = load_config_model(Path(config_path) if config_path else None)
    except ValueError as e:
        console.print(f"[red]Config error:[/] {e}")
        sys.exit(1)

    paths = get_paths(config, opts.get("db"))
    channel = get_channel()
    entities = SqliteEntityStore(paths["db"], channel)

    return {
        "config": config,
        "paths": paths,
        "channel": channel,
        "entities": entities,
        "relations": RelationStore(paths["db"], channel),
        "history": HistoryStore(paths["db"], channel),
        "sessions": SessionManager(paths["db"], channel),
        "knowledge": KnowledgeStore(
            paths["db"],
            channel,
            default_confidence=config.knowledge.default_confidence,
            high_confidence_threshold=config.knowledge.high_confidence_threshold,
        ),
        "readiness": ReadinessEngine(
            entities, missing_dependency_blocks=config.readiness.missing_dependency_blocks
        ),
    }


def default_actor() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return "cli"


def parse_ref(value: str):
    """Parse a ``kind:id`` argument into an EntityRef."""
    from shared_types import EntityRef

    return EntityRef.parse(value)


def handle_errors(func):
    """Print domain errors in red and exit with status 1."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except InvalidInputError as e:
            console.print(f"[red]Invalid input:[/] {e}")
            sys.exit(1)
        except BoardError as e:
            logger.debug("cli.command_failed", error=str(e), error_type=type(e).__name__)
            console.print(f"[red]Error:[/] {e}")
            sys.exit(1)

    return wrapper
