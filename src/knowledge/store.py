"""SQLite persistence for knowledge annotations with confidence blending."""

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
from shared_types import EntityRef, KnowledgeDimension, coerce_enum

from .models import KnowledgeAnnotation, blend_confidence, validate_unit

logger = structlog.get_logger()

TABLE = "knowledge_annotations"


class KnowledgeStore:
    """Annotations attached to entities, ranked by confidence."""

    def __init__(
        self,
        db_path: str | Path,
        channel: EventChannel | None = None,
        default_confidence: float = 0.5,
        high_confidence_threshold: float = 0.8,
    ):
        self.db_path = ensure_db_path(db_path)
        self.channel = channel or get_channel()
        self.default_confidence = validate_unit(default_confidence, "default_confidence")
        self.high_confidence_threshold = high_confidence_threshold
        self._init_db()

    def _init_db(self):
        with wal_connect(self.db_path) as conn:
            conn.execute(f"""
                CREATE TABLE IF NOT EXISTS {TABLE} (
                    id TEXT PRIMARY KEY,
                    entity_type TEXT NOT NULL,
                    entity_id TEXT NOT NULL,
                    dimension TEXT NOT NULL CHECK(dimension IN ('Q','E','O','M')),
                    category TEXT NOT NULL,
                    content TEXT NOT NULL,
                    confidence REAL NOT NULL DEFAULT 0.5
                        CHECK(confidence >= 0 AND confidence <= 1),
                    evidence TEXT,
                    extensions TEXT NOT NULL DEFAULT '{{}}',
                    created_at TIMESTAMP NOT NULL,
                    updated_at TIMESTAMP NOT NULL
                )
            """)
            conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_knowledge_entity ON {TABLE}(entity_type, entity_id)"
            )
            conn.execute(f"CREATE INDEX IF NOT EXISTS idx_knowledge_dimension ON {TABLE}(dimension)")
            conn.execute(f"CREATE INDEX IF NOT EXISTS idx_knowledge_category ON {TABLE}(category)")

    def create(
        self,
        entity_ref: EntityRef,
        dimension: KnowledgeDimension | str,
        category: str,
        content: str,
        confidence: float | None = None,
        evidence: str | None = None,
        extensions: dict[str, Any] | None = None,
    ) -> KnowledgeAnnotation:
        dim = coerce_enum(KnowledgeDimension, dimension, "dimension")
        conf = self.default_confidence if confidence is None else validate_unit(confidence, "confidence")
        now = datetime.now()
        annotation = KnowledgeAnnotation(
            id=uuid.uuid4().hex[:16],
            entity_ref=entity_ref,
            dimension=dim,
            category=category,
            content=content,
            confidence=conf,
            evidence=evidence,
            extensions=Extensions(extensions),
            created_at=now,
            updated_at=now,
        )
        execute_write(
            self.db_path,
            f"""INSERT INTO {TABLE}
               (id, entity_type, entity_id, dimension, category, content, confidence,
                evidence, extensions, created_at, updated_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                annotation.id,
                entity_ref.kind.value,
                entity_ref.id,
                dim.value,
                category,
                content,
                conf,
                evidence,
                encode_blob(annotation.extensions.to_dict()),
                now.isoformat(),
                now.isoformat(),
            ),
        )
        metrics.counter("knowledge.created")
        self.channel.emit(TABLE, CREATED, annotation.id)
        return annotation

    def update(
        self,
        annotation_id: str,
        content: str | None = None,
        category: str | None = None,
        confidence: float | None = None,
        evidence: str | None = None,
        extensions: dict[str, Any] | None = None,
    ) -> KnowledgeAnnotation:
        """Overwrite fields directly; confidence is not blended here."""
        if self.get(annotation_id) is None:
            raise NotFoundError(f"Knowledge annotation not found: {annotation_id}")

        sets = ["updated_at = ?"]
        params: list = [datetime.now().isoformat()]
        if content is not None:
            sets.append("content = ?")
            params.append(content)
        if category is not None:
            sets.append("category = ?")
            params.append(category)
        if confidence is not None:
            sets.append("confidence = ?")
            params.append(validate_unit(confidence, "confidence"))
        if evidence is not None:
            sets.append("evidence = ?")
            params.append(evidence)
        if extensions is not None:
            sets.append("extensions = ?")
            params.append(encode_blob(dict(extensions)))
        params.append(annotation_id)

        execute_write(self.db_path, f"UPDATE {TABLE} SET {', '.join(sets)} WHERE id = ?", params)
        metrics.counter("knowledge.updated")
        self.channel.emit(TABLE, UPDATED, annotation_id)
        return self.get(annotation_id)

    def update_confidence(
        self,
        annotation_id: str,
        evidence: float,
        weight: float = 1.0,
    ) -> KnowledgeAnnotation:
        """Blend new evidence into the stored confidence and persist it."""
        existing = self.get(annotation_id)
        if existing is None:
            raise NotFoundError(f"Knowledge annotation not found: {annotation_id}")
        new_confidence = blend_confidence(existing.confidence, evidence, weight)
        logger.info(
            "knowledge.confidence_updated",
            annotation_id=annotation_id,
            prior=existing.confidence,
            evidence=evidence,
            weight=weight,
            confidence=new_confidence,
        )
        return self.update(annotation_id, confidence=new_confidence)

    def get(self, annotation_id: str) -> KnowledgeAnnotation | None:
        rows = self._query(f"SELECT * FROM {TABLE} WHERE id = ?", (annotation_id,))
        return rows[0] if rows else None

    def find_by_entity(
        self,
        entity_ref: EntityRef,
        dimension: KnowledgeDimension | str | None = None,
    ) -> list[KnowledgeAnnotation]:
        sql = f"SELECT * FROM {TABLE} WHERE entity_type = ? AND entity_id = ?"
        params: list = [entity_ref.kind.value, entity_ref.id]
        if dimension is not None:
            sql += " AND dimension = ?"
            params.append(coerce_enum(KnowledgeDimension, dimension, "dimension").value)
        sql += " ORDER BY dimension, category, confidence DESC, created_at"
        return self._query(sql, tuple(params))

    def find_by_dimension(self, dimension: KnowledgeDimension | str) -> list[KnowledgeAnnotation]:
        dim = coerce_enum(KnowledgeDimension, dimension, "dimension")
        return self._query(
            f"""SELECT * FROM {TABLE} WHERE dimension = ?
               ORDER BY category, confidence DESC, created_at""",
            (dim.value,),
        )

    def find_by_category(self, category: str) -> list[KnowledgeAnnotation]:
        return self._query(
            f"""SELECT * FROM {TABLE} WHERE category = ?
               ORDER BY dimension, confidence DESC, created_at""",
            (category,),
        )

    def find_high_confidence(self, threshold: float | None = None) -> list[KnowledgeAnnotation]:
        """Annotations with confidence >= threshold (configured default if omitted)."""
        limit = self.high_confidence_threshold if threshold is None else threshold
        return self._query(
            f"""SELECT * FROM {TABLE} WHERE confidence >= ?
               ORDER BY confidence DESC, dimension, created_at""",
            (limit,),
        )

    def find_all(self) -> list[KnowledgeAnnotation]:
        return self._query(f"SELECT * FROM {TABLE} ORDER BY dimension, category, created_at DESC")

    def search(self, term: str) -> list[KnowledgeAnnotation]:
        """Substring match over content and category."""
        pattern = f"%{term}%"
        return self._query(
            f"""SELECT * FROM {TABLE}
               WHERE content LIKE ? OR category LIKE ?
               ORDER BY confidence DESC, dimension, created_at""",
            (pattern, pattern),
        )

    def dimension_summary(self, entity_ref: EntityRef) -> dict[KnowledgeDimension, int]:
        """Annotation count per dimension for one entity, zeros included."""
        summary = {dim: 0 for dim in KnowledgeDimension}
        with wal_connect(self.db_path) as conn:
            rows = conn.execute(
                f"""SELECT dimension, COUNT(*) FROM {TABLE}
                   WHERE entity_type = ? AND entity_id = ?
                   GROUP BY dimension""",
                (entity_ref.kind.value, entity_ref.id),
            ).fetchall()
        for dim, count in rows:
            summary[KnowledgeDimension(dim)] = count
        return summary

    def delete(self, annotation_id: str) -> None:
        changed = execute_write(self.db_path, f"DELETE FROM {TABLE} WHERE id = ?", (annotation_id,))
        if changed == 0:
            raise NotFoundError(f"Knowledge annotation not found: {annotation_id}")
        metrics.counter("knowledge.deleted")
        self.channel.emit(TABLE, DELETED, annotation_id)

    def delete_for_entity(self, entity_ref: EntityRef) -> int:
        changed = execute_write(
            self.db_path,
            f"DELETE FROM {TABLE} WHERE entity_type = ? AND entity_id = ?",
            (entity_ref.kind.value, entity_ref.id),
        )
        if changed:
            metrics.counter("knowledge.deleted", changed)
            self.channel.emit(TABLE, DELETED, str(entity_ref))
        return changed

    def _query(self, sql: str, params: tuple = ()) -> list[KnowledgeAnnotation]:
        with wal_connect(self.db_path, row_factory=True) as conn:
            rows = conn.execute(sql, params).fetchall()
        return [self._row_to_annotation(r) for r in rows]

    @staticmethod
    def _row_to_annotation(row: sqlite3.Row) -> KnowledgeAnnotation:
        d = dict(row)
        return KnowledgeAnnotation(
            id=d["id"],
            entity_ref=EntityRef(d["entity_type"], d["entity_id"]),
            dimension=KnowledgeDimension(d["dimension"]),
            category=d["category"],
            content=d["content"],
            confidence=d["confidence"],
            evidence=d["evidence"],
            extensions=Extensions(decode_blob(d["extensions"], {})),
            created_at=datetime.fromisoformat(d["created_at"]),
            updated_at=datetime.fromisoformat(d["updated_at"]),
        )
