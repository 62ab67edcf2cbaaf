"""Append-only audit trail in SQLite.

Entries are written once and never updated or deleted; the class exposes no
method that could do either.
"""

import copy
import sqlite3
import uuid
from datetime import date, datetime, time
from pathlib import Path
from typing import Any

import structlog

from db import decode_blob, encode_blob, ensure_db_path, execute_write, wal_connect
from errors import InvalidInputError
from events import CREATED, EventChannel, get_channel
from observability import metrics
from sessions.models import SessionContext
from shared_types import EntityKind, EntityRef, HistoryAction, coerce_enum

from .diff import compute_changes, summarize
from .models import FieldChange, HistoryEntry

logger = structlog.get_logger()

TABLE = "history"

# Actions whose entry carries a field diff
DIFF_ACTIONS = frozenset({HistoryAction.UPDATED, HistoryAction.STATUS_CHANGED})


def _bound(value: datetime | date | str, end: bool = False) -> str:
    """Normalise a range bound to the naive local ISO form created_at uses.

    A bare date covers the whole day: start of day for ``start``, last
    microsecond for ``end``. Aware datetimes are converted to local time.
    """
    if isinstance(value, str):
        try:
            value = date.fromisoformat(value)
        except ValueError:
            try:
                value = datetime.fromisoformat(value)
            except ValueError as e:
                raise InvalidInputError(f"Invalid timestamp: {value!r}") from e
    if not isinstance(value, datetime):
        value = datetime.combine(value, time.max if end else time.min)
    if value.tzinfo is not None:
        value = value.astimezone().replace(tzinfo=None)
    return value.isoformat()


class HistoryStore:
    """Audit trail engine: diffs snapshots and appends immutable entries."""

    def __init__(self, db_path: str | Path, channel: EventChannel | None = None):
        self.db_path = ensure_db_path(db_path)
        self.channel = channel or get_channel()
        self._init_db()

    def _init_db(self):
        with wal_connect(self.db_path) as conn:
            conn.execute(f"""
                CREATE TABLE IF NOT EXISTS {TABLE} (
                    id TEXT PRIMARY KEY,
                    entity_type TEXT NOT NULL,
                    entity_id TEXT NOT NULL,
                    action TEXT NOT NULL,
                    actor TEXT NOT NULL,
                    changes TEXT NOT NULL DEFAULT '{{}}',
                    previous_state TEXT,
                    summary TEXT NOT NULL,
                    session_id TEXT,
                    created_at TIMESTAMP NOT NULL
                )
            """)
            conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_history_entity ON {TABLE}(entity_type, entity_id)"
            )
            conn.execute(f"CREATE INDEX IF NOT EXISTS idx_history_actor ON {TABLE}(actor)")
            conn.execute(f"CREATE INDEX IF NOT EXISTS idx_history_session ON {TABLE}(session_id)")
            conn.execute(f"CREATE INDEX IF NOT EXISTS idx_history_created ON {TABLE}(created_at)")

    def append(
        self,
        entity_ref: EntityRef,
        action: HistoryAction | str,
        actor: str,
        before: dict[str, Any] | None = None,
        after: dict[str, Any] | None = None,
        session_id: str | None = None,
        summary: str | None = None,
    ) -> HistoryEntry:
        """Record one state transition.

        - updated / status_changed: ``changes`` is the shallow diff of
          before vs after.
        - created: ``after`` is kept as the snapshot, changes empty.
        - deleted: ``before`` is kept as previous_state, changes empty.
        - verified / assigned / commented: diffed when both snapshots exist.

        Args:
            summary: Override the generated summary text.
        """
        action = coerce_enum(HistoryAction, action, "history action")
        # The entry must not share mutable values with the caller's snapshots
        before = copy.deepcopy(before)
        after = copy.deepcopy(after)

        changes: dict[str, FieldChange] = {}
        previous_state = None
        if action == HistoryAction.CREATED:
            previous_state = after
        elif action == HistoryAction.DELETED:
            previous_state = before
        elif action in DIFF_ACTIONS or (before is not None and after is not None):
            changes = compute_changes(before, after)

        entry = HistoryEntry(
            id=uuid.uuid4().hex[:16],
            entity_ref=entity_ref,
            action=action,
            actor=actor,
            summary=summary or summarize(action, entity_ref, before, after, changes),
            changes=changes,
            previous_state=previous_state,
            session_id=session_id,
            created_at=datetime.now(),
        )
        execute_write(
            self.db_path,
            f"""INSERT INTO {TABLE}
               (id, entity_type, entity_id, action, actor, changes, previous_state,
                summary, session_id, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                entry.id,
                entity_ref.kind.value,
                entity_ref.id,
                action.value,
                actor,
                encode_blob({k: c.to_dict() for k, c in changes.items()}),
                encode_blob(entry.previous_state),
                entry.summary,
                session_id,
                entry.created_at.isoformat(),
            ),
        )
        metrics.counter("history.appended")
        logger.debug(
            "history.appended",
            entry_id=entry.id,
            entity=str(entity_ref),
            action=action.value,
            actor=actor,
            session_id=session_id,
            changed=entry.changed_fields,
        )
        self.channel.emit(TABLE, CREATED, entry.id)
        return entry

    def record(
        self,
        ctx: SessionContext,
        entity_ref: EntityRef,
        action: HistoryAction | str,
        before: dict[str, Any] | None = None,
        after: dict[str, Any] | None = None,
        summary: str | None = None,
    ) -> HistoryEntry:
        """append() with actor and session taken from an explicit context."""
        return self.append(
            entity_ref,
            action,
            ctx.actor,
            before=before,
            after=after,
            session_id=ctx.session_id,
            summary=summary,
        )

    def get(self, entry_id: str) -> HistoryEntry | None:
        rows = self._query(f"SELECT * FROM {TABLE} WHERE id = ?", (entry_id,))
        return rows[0] if rows else None

    def find_by_entity(self, entity_ref: EntityRef) -> list[HistoryEntry]:
        """Entries for one entity, newest first."""
        return self._query(
            f"""SELECT * FROM {TABLE}
               WHERE entity_type = ? AND entity_id = ?
               ORDER BY created_at DESC, rowid DESC""",
            (entity_ref.kind.value, entity_ref.id),
        )

    def find_by_actor(self, actor: str) -> list[HistoryEntry]:
        return self._query(
            f"SELECT * FROM {TABLE} WHERE actor = ? ORDER BY created_at DESC, rowid DESC", (actor,)
        )

    def find_by_action(
        self, action: HistoryAction | str, limit: int | None = None
    ) -> list[HistoryEntry]:
        action = coerce_enum(HistoryAction, action, "history action")
        sql = f"SELECT * FROM {TABLE} WHERE action = ? ORDER BY created_at DESC, rowid DESC"
        params: list = [action.value]
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)
        return self._query(sql, tuple(params))

    def find_by_entity_kind(
        self, kind: EntityKind | str, limit: int | None = None
    ) -> list[HistoryEntry]:
        kind = coerce_enum(EntityKind, kind, "entity kind")
        sql = f"SELECT * FROM {TABLE} WHERE entity_type = ? ORDER BY created_at DESC, rowid DESC"
        params: list = [kind.value]
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)
        return self._query(sql, tuple(params))

    def find_by_time_range(
        self, start: datetime | date | str, end: datetime | date | str
    ) -> list[HistoryEntry]:
        """Entries with start <= created_at <= end, newest first.

        Bounds may be datetimes (naive local or aware), dates, or ISO strings.
        """
        return self._query(
            f"""SELECT * FROM {TABLE}
               WHERE created_at >= ? AND created_at <= ?
               ORDER BY created_at DESC, rowid DESC""",
            (_bound(start), _bound(end, end=True)),
        )

    def find_by_session(self, session_id: str) -> list[HistoryEntry]:
        """Entries tagged with a session, in the order they happened."""
        return self._query(
            f"SELECT * FROM {TABLE} WHERE session_id = ? ORDER BY created_at ASC, rowid ASC",
            (session_id,),
        )

    def find_recent(self, limit: int = 20) -> list[HistoryEntry]:
        return self._query(f"SELECT * FROM {TABLE} ORDER BY created_at DESC, rowid DESC LIMIT ?", (limit,))

    def count_by_entity(self, entity_ref: EntityRef) -> int:
        with wal_connect(self.db_path) as conn:
            return conn.execute(
                f"SELECT COUNT(*) FROM {TABLE} WHERE entity_type = ? AND entity_id = ?",
                (entity_ref.kind.value, entity_ref.id),
            ).fetchone()[0]

    def actor_stats(self, actor: str) -> dict[str, int]:
        """Action -> count for one actor."""
        with wal_connect(self.db_path) as conn:
            rows = conn.execute(
                f"SELECT action, COUNT(*) FROM {TABLE} WHERE actor = ? GROUP BY action",
                (actor,),
            ).fetchall()
        return {action: count for action, count in rows}

    def _query(self, sql: str, params: tuple = ()) -> list[HistoryEntry]:
        with wal_connect(self.db_path, row_factory=True) as conn:
            rows = conn.execute(sql, params).fetchall()
        return [self._row_to_entry(r) for r in rows]

    @staticmethod
    def _row_to_entry(row: sqlite3.Row) -> HistoryEntry:
        d = dict(row)
        raw_changes = decode_blob(d["changes"], {})
        return HistoryEntry(
            id=d["id"],
            entity_ref=EntityRef(d["entity_type"], d["entity_id"]),
            action=HistoryAction(d["action"]),
            actor=d["actor"],
            summary=d["summary"],
            changes={k: FieldChange.from_dict(v) for k, v in raw_changes.items()},
            previous_state=decode_blob(d["previous_state"]),
            session_id=d["session_id"],
            created_at=datetime.fromisoformat(d["created_at"]),
        )
