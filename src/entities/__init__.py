"""Entity store: features, stories, tasks, acceptance criteria."""

from .store import EntityStore, SqliteEntityStore

__all__ = ["EntityStore", "SqliteEntityStore"]
