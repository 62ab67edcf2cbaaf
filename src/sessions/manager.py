"""Session lifecycle: start, switch, phase, end. One active session per database."""

import sqlite3
import uuid
from datetime import datetime, timedelta
from pathlib import Path

import structlog

from db import ensure_db_path, execute_write, wal_connect
from errors import AlreadyActiveError, ConflictError, NotFoundError, StateError
from events import CREATED, UPDATED, EventChannel, get_channel
from observability import metrics
from shared_types import EntityRef

from .models import Session, SessionContext

logger = structlog.get_logger()

TABLE = "sessions"


def duration(session: Session, now: datetime | None = None) -> timedelta:
    """(ended_at or now) - started_at."""
    return session.duration(now)


class SessionManager:
    """SQLite-backed sessions.

    "Active" is global: at most one session without ended_at exists,
    whichever actor started it.
    """

    def __init__(self, db_path: str | Path, channel: EventChannel | None = None):
        self.db_path = ensure_db_path(db_path)
        self.channel = channel or get_channel()
        self._init_db()

    def _init_db(self):
        with wal_connect(self.db_path) as conn:
            conn.execute(f"""
                CREATE TABLE IF NOT EXISTS {TABLE} (
                    id TEXT PRIMARY KEY,
                    actor TEXT NOT NULL,
                    active_entity_type TEXT,
                    active_entity_id TEXT,
                    phase TEXT,
                    compaction_count INTEGER NOT NULL DEFAULT 0,
                    started_at TIMESTAMP NOT NULL,
                    ended_at TIMESTAMP
                )
            """)
            conn.execute(f"CREATE INDEX IF NOT EXISTS idx_sessions_ended ON {TABLE}(ended_at)")
            conn.execute(f"CREATE INDEX IF NOT EXISTS idx_sessions_actor ON {TABLE}(actor)")
            conn.execute(
                f"""CREATE UNIQUE INDEX IF NOT EXISTS idx_sessions_one_active
                    ON {TABLE}((ended_at IS NULL)) WHERE ended_at IS NULL"""
            )

    def start(
        self,
        actor: str,
        active_entity: EntityRef | None = None,
        phase: str | None = None,
    ) -> Session:
        active = self.find_active()
        if active is not None:
            raise AlreadyActiveError(
                f"Session {active.id} for {active.actor} is already active"
            )

        session = Session(
            id=uuid.uuid4().hex[:16],
            actor=actor,
            active_entity=active_entity,
            phase=phase,
            started_at=datetime.now(),
        )
        try:
            execute_write(
                self.db_path,
                f"""INSERT INTO {TABLE}
                   (id, actor, active_entity_type, active_entity_id, phase,
                    compaction_count, started_at, ended_at)
                   VALUES (?, ?, ?, ?, ?, 0, ?, NULL)""",
                (
                    session.id,
                    actor,
                    active_entity.kind.value if active_entity else None,
                    active_entity.id if active_entity else None,
                    phase,
                    session.started_at.isoformat(),
                ),
            )
        except ConflictError as e:
            # Another writer opened a session between the check and the insert
            logger.warning("session.start_conflict", actor=actor)
            raise AlreadyActiveError("Another session became active while starting") from e
        metrics.counter("sessions.started")
        logger.info("session.started", session_id=session.id, actor=actor, phase=phase)
        self.channel.emit(TABLE, CREATED, session.id)
        return session

    def end(self, session_id: str) -> Session:
        active = self.find_active()
        if active is None:
            raise StateError("No active session to end")
        if active.id != session_id:
            raise StateError(f"Session {session_id} is not the active session ({active.id})")

        ended_at = datetime.now()
        execute_write(
            self.db_path,
            f"UPDATE {TABLE} SET ended_at = ? WHERE id = ?",
            (ended_at.isoformat(), session_id),
        )
        active.ended_at = ended_at
        metrics.counter("sessions.ended")
        logger.info(
            "session.ended",
            session_id=session_id,
            duration_seconds=active.duration().total_seconds(),
        )
        self.channel.emit(TABLE, UPDATED, session_id)
        return active

    def switch_entity(self, session_id: str, entity: EntityRef | None) -> Session:
        """Point the session at a different story/task (None clears it)."""
        return self._update_open(
            session_id,
            active_entity_type=entity.kind.value if entity else None,
            active_entity_id=entity.id if entity else None,
        )

    def set_phase(self, session_id: str, phase: str | None) -> Session:
        return self._update_open(session_id, phase=phase)

    def record_compaction(self, session_id: str) -> Session:
        """Count a context compaction within the session."""
        session = self._require_open(session_id)
        return self._update_open(session_id, compaction_count=session.compaction_count + 1)

    def get(self, session_id: str) -> Session | None:
        rows = self._query(f"SELECT * FROM {TABLE} WHERE id = ?", (session_id,))
        return rows[0] if rows else None

    def find_active(self) -> Session | None:
        rows = self._query(
            f"SELECT * FROM {TABLE} WHERE ended_at IS NULL ORDER BY started_at DESC LIMIT 1"
        )
        return rows[0] if rows else None

    def find_by_actor(self, actor: str) -> list[Session]:
        return self._query(
            f"SELECT * FROM {TABLE} WHERE actor = ? ORDER BY started_at DESC, rowid DESC", (actor,)
        )

    def find_recent(self, limit: int = 20) -> list[Session]:
        return self._query(
            f"SELECT * FROM {TABLE} ORDER BY started_at DESC, rowid DESC LIMIT ?", (limit,)
        )

    def context(self, actor: str | None = None) -> SessionContext:
        """Build the explicit audit context from the active session.

        Without an actor, the active session's actor is used.
        """
        active = self.find_active()
        if actor is None:
            if active is None:
                raise StateError("No active session and no actor given")
            actor = active.actor
        return SessionContext(actor=actor, session_id=active.id if active else None)

    def _require_open(self, session_id: str) -> Session:
        session = self.get(session_id)
        if session is None:
            raise NotFoundError(f"Session not found: {session_id}")
        if not session.is_active:
            raise StateError(f"Session {session_id} has already ended")
        return session

    def _update_open(self, session_id: str, **columns) -> Session:
        self._require_open(session_id)
        sets = ", ".join(f"{col} = ?" for col in columns)
        execute_write(
            self.db_path,
            f"UPDATE {TABLE} SET {sets} WHERE id = ?",
            (*columns.values(), session_id),
        )
        self.channel.emit(TABLE, UPDATED, session_id)
        return self.get(session_id)

    def _query(self, sql: str, params: tuple = ()) -> list[Session]:
        with wal_connect(self.db_path, row_factory=True) as conn:
            rows = conn.execute(sql, params).fetchall()
        return [self._row_to_session(r) for r in rows]

    @staticmethod
    def _row_to_session(row: sqlite3.Row) -> Session:
        d = dict(row)
        entity = None
        if d["active_entity_type"] and d["active_entity_id"]:
            entity = EntityRef(d["active_entity_type"], d["active_entity_id"])
        return Session(
            id=d["id"],
            actor=d["actor"],
            active_entity=entity,
            phase=d["phase"],
            compaction_count=d["compaction_count"],
            started_at=datetime.fromisoformat(d["started_at"]),
            ended_at=datetime.fromisoformat(d["ended_at"]) if d["ended_at"] else None,
        )
