"""SQLite persistence for typed relations between entities."""

import sqlite3
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any

import structlog

from capsule import Extensions
from db import decode_blob, encode_blob, ensure_db_path, execute_write, wal_connect
from errors import NotFoundError
from events import CREATED, DELETED, UPDATED, EventChannel, get_channel
from observability import metrics
from shared_types import EntityRef, RelationType, coerce_enum

from .models import BidirectionalRelation, Relation, inverse_of

logger = structlog.get_logger()

TABLE = "relations"


class RelationStore:
    """Directed, typed edges between entity references.

    No uniqueness is enforced: the same edge may be stored twice, and
    self-loops are accepted. Inverse edges are ordinary rows with no link back
    to their partner.
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
                    source_type TEXT NOT NULL,
                    source_id TEXT NOT NULL,
                    target_type TEXT NOT NULL,
                    target_id TEXT NOT NULL,
                    relation_type TEXT NOT NULL
                        CHECK(relation_type IN ('blocks','blocked_by','parent_of',
                                                'child_of','relates_to','duplicates')),
                    description TEXT,
                    extensions TEXT NOT NULL DEFAULT '{{}}',
                    created_at TIMESTAMP NOT NULL,
                    updated_at TIMESTAMP NOT NULL
                )
            """)
            conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_rel_source ON {TABLE}(source_type, source_id)"
            )
            conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_rel_target ON {TABLE}(target_type, target_id)"
            )
            conn.execute(f"CREATE INDEX IF NOT EXISTS idx_rel_type ON {TABLE}(relation_type)")

    def create(
        self,
        source: EntityRef,
        target: EntityRef,
        relation_type: RelationType | str,
        description: str | None = None,
        extensions: dict[str, Any] | None = None,
    ) -> Relation:
        """Insert one directed edge."""
        rtype = coerce_enum(RelationType, relation_type, "relation type")
        now = datetime.now()
        relation = Relation(
            id=uuid.uuid4().hex[:16],
            source=source,
            target=target,
            relation_type=rtype,
            description=description,
            extensions=Extensions(extensions),
            created_at=now,
            updated_at=now,
        )
        execute_write(
            self.db_path,
            f"""INSERT INTO {TABLE}
               (id, source_type, source_id, target_type, target_id, relation_type,
                description, extensions, created_at, updated_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                relation.id,
                source.kind.value,
                source.id,
                target.kind.value,
                target.id,
                rtype.value,
                description,
                encode_blob(relation.extensions.to_dict()),
                now.isoformat(),
                now.isoformat(),
            ),
        )
        metrics.counter("relations.created")
        logger.debug(
            "relation.created",
            relation_id=relation.id,
            source=str(source),
            target=str(target),
            relation_type=rtype.value,
        )
        self.channel.emit(TABLE, CREATED, relation.id)
        return relation

    def create_bidirectional(
        self,
        source: EntityRef,
        target: EntityRef,
        relation_type: RelationType | str,
        description: str | None = None,
        extensions: dict[str, Any] | None = None,
    ) -> BidirectionalRelation:
        """Create source->target plus the inverse edge target->source.

        The two inserts are separate writes. If the inverse fails the forward
        edge stays stored and the error propagates to the caller.
        """
        rtype = coerce_enum(RelationType, relation_type, "relation type")
        forward = self.create(source, target, rtype, description, extensions)
        try:
            inverse = self.create(target, source, inverse_of(rtype), description, extensions)
        except Exception as e:
            logger.error(
                "relation.bidirectional_partial",
                forward_id=forward.id,
                relation_type=rtype.value,
                error=str(e),
            )
            raise
        return BidirectionalRelation(forward=forward, inverse=inverse)

    def get(self, relation_id: str) -> Relation | None:
        rows = self._query(f"SELECT * FROM {TABLE} WHERE id = ?", (relation_id,))
        return rows[0] if rows else None

    def find_from_source(self, source: EntityRef) -> list[Relation]:
        """Edges leaving an entity."""
        return self._query(
            f"""SELECT * FROM {TABLE}
               WHERE source_type = ? AND source_id = ?
               ORDER BY relation_type, created_at, rowid""",
            (source.kind.value, source.id),
        )

    def find_to_target(self, target: EntityRef) -> list[Relation]:
        """Edges arriving at an entity."""
        return self._query(
            f"""SELECT * FROM {TABLE}
               WHERE target_type = ? AND target_id = ?
               ORDER BY relation_type, created_at, rowid""",
            (target.kind.value, target.id),
        )

    def find_for_entity(self, ref: EntityRef) -> list[Relation]:
        """Edges where the entity is either endpoint."""
        return self._query(
            f"""SELECT * FROM {TABLE}
               WHERE (source_type = ? AND source_id = ?)
                  OR (target_type = ? AND target_id = ?)
               ORDER BY relation_type, created_at, rowid""",
            (ref.kind.value, ref.id, ref.kind.value, ref.id),
        )

    def find_by_type(self, relation_type: RelationType | str) -> list[Relation]:
        rtype = coerce_enum(RelationType, relation_type, "relation type")
        return self._query(
            f"SELECT * FROM {TABLE} WHERE relation_type = ? ORDER BY created_at, rowid",
            (rtype.value,),
        )

    def find_blockers(self, ref: EntityRef) -> list[Relation]:
        """Edges 'X blocks ref'."""
        return self._query(
            f"""SELECT * FROM {TABLE}
               WHERE target_type = ? AND target_id = ? AND relation_type = 'blocks'
               ORDER BY created_at, rowid""",
            (ref.kind.value, ref.id),
        )

    def find_blocked(self, ref: EntityRef) -> list[Relation]:
        """Edges 'ref blocks X'."""
        return self._query(
            f"""SELECT * FROM {TABLE}
               WHERE source_type = ? AND source_id = ? AND relation_type = 'blocks'
               ORDER BY created_at, rowid""",
            (ref.kind.value, ref.id),
        )

    def find_all(self) -> list[Relation]:
        return self._query(f"SELECT * FROM {TABLE} ORDER BY created_at DESC, rowid DESC")

    def exists(
        self,
        source: EntityRef,
        target: EntityRef,
        relation_type: RelationType | str,
    ) -> bool:
        rtype = coerce_enum(RelationType, relation_type, "relation type")
        with wal_connect(self.db_path) as conn:
            row = conn.execute(
                f"""SELECT 1 FROM {TABLE}
                   WHERE source_type = ? AND source_id = ?
                     AND target_type = ? AND target_id = ?
                     AND relation_type = ?""",
                (source.kind.value, source.id, target.kind.value, target.id, rtype.value),
            ).fetchone()
        return row is not None

    def update(
        self,
        relation_id: str,
        relation_type: RelationType | str | None = None,
        description: str | None = None,
        extensions: dict[str, Any] | None = None,
    ) -> Relation:
        """Change type, description or extensions of an existing edge."""
        if self.get(relation_id) is None:
            raise NotFoundError(f"Relation not found: {relation_id}")

        sets = ["updated_at = ?"]
        params: list = [datetime.now().isoformat()]
        if relation_type is not None:
            sets.append("relation_type = ?")
            params.append(coerce_enum(RelationType, relation_type, "relation type").value)
        if description is not None:
            sets.append("description = ?")
            params.append(description)
        if extensions is not None:
            sets.append("extensions = ?")
            params.append(encode_blob(dict(extensions)))
        params.append(relation_id)

        execute_write(self.db_path, f"UPDATE {TABLE} SET {', '.join(sets)} WHERE id = ?", params)
        metrics.counter("relations.updated")
        self.channel.emit(TABLE, UPDATED, relation_id)
        return self.get(relation_id)

    def delete(self, relation_id: str) -> None:
        """Remove exactly one edge. Its inverse partner, if any, is kept."""
        changed = execute_write(self.db_path, f"DELETE FROM {TABLE} WHERE id = ?", (relation_id,))
        if changed == 0:
            raise NotFoundError(f"Relation not found: {relation_id}")
        metrics.counter("relations.deleted")
        logger.debug("relation.deleted", relation_id=relation_id)
        self.channel.emit(TABLE, DELETED, relation_id)

    def delete_for_entity(self, ref: EntityRef) -> int:
        """Remove every edge touching ref. Returns count deleted."""
        changed = execute_write(
            self.db_path,
            f"""DELETE FROM {TABLE}
               WHERE (source_type = ? AND source_id = ?)
                  OR (target_type = ? AND target_id = ?)""",
            (ref.kind.value, ref.id, ref.kind.value, ref.id),
        )
        if changed:
            metrics.counter("relations.deleted", changed)
            self.channel.emit(TABLE, DELETED, str(ref))
        return changed

    def _query(self, sql: str, params: tuple = ()) -> list[Relation]:
        with wal_connect(self.db_path, row_factory=True) as conn:
            rows = conn.execute(sql, params).fetchall()
        return [self._row_to_relation(r) for r in rows]

    @staticmethod
    def _row_to_relation(row: sqlite3.Row) -> Relation:
        d = dict(row)
        return Relation(
            id=d["id"],
            source=EntityRef(d["source_type"], d["source_id"]),
            target=EntityRef(d["target_type"], d["target_id"]),
            relation_type=RelationType(d["relation_type"]),
            description=d["description"],
            extensions=Extensions(decode_blob(d["extensions"], {})),
            created_at=datetime.fromisoformat(d["created_at"]),
            updated_at=datetime.fromisoformat(d["updated_at"]),
        )
