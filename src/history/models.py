"""Data models for the audit trail."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from shared_types import EntityRef, HistoryAction


@dataclass(frozen=True)
class FieldChange:
    """One field's transition. ``from_`` because ``from`` is reserved."""

    from_: Any
    to: Any

    def to_dict(self) -> dict:
        return {"from": self.from_, "to": self.to}

    @classmethod
    def from_dict(cls, data: dict) -> "FieldChange":
        return cls(from_=data.get("from"), to=data.get("to"))


@dataclass(frozen=True)
class HistoryEntry:
    id: str
    entity_ref: EntityRef
    action: HistoryAction
    actor: str
    summary: str
    changes: dict[str, FieldChange] = field(default_factory=dict)
    previous_state: dict | None = None
    session_id: str | None = None
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def changed_fields(self) -> list[str]:
        return sorted(self.changes)
