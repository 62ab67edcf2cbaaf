"""Data models for work sessions."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from shared_types import EntityRef


@dataclass
class Session:
    id: str
    actor: str
    active_entity: EntityRef | None = None
    phase: str | None = None
    compaction_count: int = 0
    started_at: datetime = field(default_factory=datetime.now)
    ended_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.ended_at is None

    def duration(self, now: datetime | None = None) -> timedelta:
        """Elapsed time; open sessions are measured up to now."""
        end = self.ended_at or now or datetime.now()
        return end - self.started_at


@dataclass(frozen=True)
class SessionContext:
    """Who is acting and under which session, passed explicitly to the audit trail."""

    actor: str
    session_id: str | None = None
