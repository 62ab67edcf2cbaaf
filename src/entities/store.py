"""Entity store contract plus a SQLite implementation.

Features, stories, tasks and acceptance criteria are kept as full JSON
snapshots keyed by (kind, id). Every call returns the complete current state
so callers can diff before/after for the audit trail.
"""

import sqlite3
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Protocol

import structlog

from db import decode_blob, encode_blob, ensure_db_path, execute_write, wal_connect
from errors import NotFoundError
from events import CREATED, DELETED, UPDATED, EventChannel, get_channel
from shared_types import EntityKind, TaskStatus, coerce_enum

logger = structlog.get_logger()

TABLE = "entities"


class EntityStore(Protocol):
    def find_by_id(self, kind: EntityKind, entity_id: str) -> dict | None: ...

    def find_by_code(self, kind: EntityKind, code: str) -> dict | None: ...

    def create(self, kind: EntityKind, data: dict[str, Any]) -> dict: ...

    def update(self, kind: EntityKind, entity_id: str, data: dict[str, Any]) -> dict: ...

    def delete(self, kind: EntityKind, entity_id: str) -> dict: ...

    def find_all(self, kind: EntityKind, **filters: Any) -> list[dict]: ...


class SqliteEntityStore:
    """Snapshot store for work items, one row per entity."""

    def __init__(self, db_path: str | Path, channel: EventChannel | None = None):
        self.db_path = ensure_db_path(db_path)
        self.channel = channel or get_channel()
        self._init_db()

    def _init_db(self):
        with wal_connect(self.db_path) as conn:
            conn.execute(f"""
                CREATE TABLE IF NOT EXISTS {TABLE} (
                    kind TEXT NOT NULL,
                    id TEXT NOT NULL,
                    code TEXT,
                    data TEXT NOT NULL,
                    created_at TIMESTAMP NOT NULL,
                    updated_at TIMESTAMP NOT NULL,
                    PRIMARY KEY (kind, id)
                )
            """)
            conn.execute(
                f"CREATE UNIQUE INDEX IF NOT EXISTS idx_entities_code ON {TABLE}(kind, code)"
            )

    def find_by_id(self, kind: EntityKind | str, entity_id: str) -> dict | None:
        kind = self._kind(kind)
        with wal_connect(self.db_path, row_factory=True) as conn:
            row = conn.execute(
                f"SELECT * FROM {TABLE} WHERE kind = ? AND id = ?", (kind.value, entity_id)
            ).fetchone()
        return self._row_to_snapshot(row) if row else None

    def find_by_code(self, kind: EntityKind | str, code: str) -> dict | None:
        kind = self._kind(kind)
        with wal_connect(self.db_path, row_factory=True) as conn:
            row = conn.execute(
                f"SELECT * FROM {TABLE} WHERE kind = ? AND code = ?", (kind.value, code)
            ).fetchone()
        return self._row_to_snapshot(row) if row else None

    def resolve(self, kind: EntityKind | str, id_or_code: str) -> dict | None:
        """Look up by id first, then by code."""
        return self.find_by_id(kind, id_or_code) or self.find_by_code(kind, id_or_code)

    def create(self, kind: EntityKind | str, data: dict[str, Any]) -> dict:
        kind = self._kind(kind)
        now = datetime.now().isoformat()
        snapshot = {**self._defaults(kind), **data}
        snapshot.setdefault("id", uuid.uuid4().hex[:16])
        snapshot["created_at"] = now
        snapshot["updated_at"] = now
        execute_write(
            self.db_path,
            f"""INSERT INTO {TABLE} (kind, id, code, data, created_at, updated_at)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (kind.value, snapshot["id"], snapshot.get("code"), encode_blob(snapshot), now, now),
        )
        logger.debug("entity.created", kind=kind.value, entity_id=snapshot["id"], code=snapshot.get("code"))
        self.channel.emit(kind.value, CREATED, snapshot["id"])
        return snapshot

    def update(self, kind: EntityKind | str, entity_id: str, data: dict[str, Any]) -> dict:
        """Merge data into the stored snapshot and return the new state."""
        kind = self._kind(kind)
        current = self.find_by_id(kind, entity_id)
        if current is None:
            raise NotFoundError(f"{kind.value} not found: {entity_id}")
        now = datetime.now().isoformat()
        snapshot = {**current, **data, "id": entity_id, "updated_at": now}
        execute_write(
            self.db_path,
            f"UPDATE {TABLE} SET code = ?, data = ?, updated_at = ? WHERE kind = ? AND id = ?",
            (snapshot.get("code"), encode_blob(snapshot), now, kind.value, entity_id),
        )
        self.channel.emit(kind.value, UPDATED, entity_id)
        return snapshot

    def delete(self, kind: EntityKind | str, entity_id: str) -> dict:
        """Delete and return the final snapshot."""
        kind = self._kind(kind)
        current = self.find_by_id(kind, entity_id)
        if current is None:
            raise NotFoundError(f"{kind.value} not found: {entity_id}")
        execute_write(
            self.db_path,
            f"DELETE FROM {TABLE} WHERE kind = ? AND id = ?",
            (kind.value, entity_id),
        )
        logger.debug("entity.deleted", kind=kind.value, entity_id=entity_id)
        self.channel.emit(kind.value, DELETED, entity_id)
        return current

    def find_all(self, kind: EntityKind | str, **filters: Any) -> list[dict]:
        """All snapshots of a kind, filtered by exact field equality."""
        kind = self._kind(kind)
        with wal_connect(self.db_path, row_factory=True) as conn:
            rows = conn.execute(
                f"SELECT * FROM {TABLE} WHERE kind = ? ORDER BY created_at, id", (kind.value,)
            ).fetchall()
        snapshots = [self._row_to_snapshot(r) for r in rows]
        if filters:
            snapshots = [
                s for s in snapshots if all(s.get(k) == v for k, v in filters.items())
            ]
        return snapshots

    @staticmethod
    def _kind(kind) -> EntityKind:
        return coerce_enum(EntityKind, kind, "entity kind")

    @staticmethod
    def _defaults(kind: EntityKind) -> dict:
        if kind == EntityKind.TASK:
            return {"status": TaskStatus.PENDING.value, "dependencies": []}
        return {}

    @staticmethod
    def _row_to_snapshot(row: sqlite3.Row) -> dict:
        return decode_blob(row["data"], {})
