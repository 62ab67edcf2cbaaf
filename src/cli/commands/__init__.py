"""CLI command modules."""

from .history import history
from .init import init
from .knowledge import knowledge
from .relation import relation
from .session import session
from .task import task

__all__ = [
    "history",
    "init",
    "knowledge",
    "relation",
    "session",
    "task",
]
