"""Audit trail: immutable, session-tagged records of entity changes."""

from .diff import compute_changes, summarize
from .models import FieldChange, HistoryEntry
from .store import HistoryStore

__all__ = [
    "FieldChange",
    "HistoryEntry",
    "HistoryStore",
    "compute_changes",
    "summarize",
]
