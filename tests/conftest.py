"""Shared test fixtures for the board."""

import logging
import sys
from pathlib import Path

import pytest
import structlog

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from events import EventChannel, reset_channel  # noqa: E402
from observability import metrics  # noqa: E402
from shared_types import EntityKind, EntityRef  # noqa: E402


@pytest.fixture(autouse=True)
def _fresh_globals():
    """Isolate the module-level channel and metrics between tests."""
    reset_channel()
    metrics.reset()
    yield
    reset_channel()
    metrics.reset()
    # Drop handlers installed by setup_logging; their streams may be closed
    root = logging.getLogger()
    for handler in list(root.handlers):
        if isinstance(handler.formatter, structlog.stdlib.ProcessorFormatter):
            root.removeHandler(handler)


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "board.db"


@pytest.fixture
def channel():
    return EventChannel()


@pytest.fixture
def recorded_events(channel):
    """Every event published on ``channel``."""
    events = []
    channel.subscribe(events.append)
    return events


@pytest.fixture
def task_ref():
    return EntityRef(EntityKind.TASK, "t1")


@pytest.fixture
def story_ref():
    return EntityRef(EntityKind.STORY, "s1")
