"""Tests for ReadinessEngine over a real SQLite entity store."""

import pytest

from entities import SqliteEntityStore
from readiness import ReadinessEngine
from shared_types import EntityKind


@pytest.fixture
def entities(db_path, channel):
    return SqliteEntityStore(db_path, channel)


@pytest.fixture
def engine(entities):
    return ReadinessEngine(entities)


def _task(entities, ident, deps=(), status="pending", story_id=None):
    data = {"id": ident, "title": ident, "dependencies": list(deps), "status": status}
    if story_id:
        data["story_id"] = story_id
    return entities.create(EntityKind.TASK, data)


def _ready_ids(engine, **kwargs):
    return {t["id"] for t in engine.list_ready(**kwargs)}


class TestListReady:
    def test_dependency_chain(self, entities, engine):
        _task(entities, "A")
        _task(entities, "B")
        _task(entities, "C", deps=["A"])
        assert _ready_ids(engine) == {"A", "B"}

        entities.update(EntityKind.TASK, "A", {"status": "completed"})
        assert _ready_ids(engine) == {"B", "C"}

    def test_non_pending_tasks_excluded(self, entities, engine):
        _task(entities, "A", status="in_progress")
        _task(entities, "B", status="completed")
        _task(entities, "C", status="blocked")
        assert _ready_ids(engine) == set()

    def test_story_filter(self, entities, engine):
        _task(entities, "A", story_id="s1")
        _task(entities, "B", story_id="s2")
        assert _ready_ids(engine, story_id="s1") == {"A"}

    def test_dependency_in_other_story(self, entities, engine):
        _task(entities, "A", story_id="s2", status="completed")
        _task(entities, "B", deps=["A"], story_id="s1")
        assert _ready_ids(engine, story_id="s1") == {"B"}

    def test_missing_dependency_blocks_by_default(self, entities, engine):
        _task(entities, "A", deps=["ghost"])
        assert _ready_ids(engine) == set()

    def test_missing_dependency_ignored_when_configured(self, entities):
        engine = ReadinessEngine(entities, missing_dependency_blocks=False)
        _task(entities, "A", deps=["ghost"])
        assert _ready_ids(engine) == {"A"}

    def test_recomputed_each_call(self, entities, engine):
        _task(entities, "A")
        assert _ready_ids(engine) == {"A"}
        _task(entities, "B")
        assert _ready_ids(engine) == {"A", "B"}


class TestSingleTask:
    def test_is_ready(self, entities, engine):
        a = _task(entities, "A")
        b = _task(entities, "B", deps=["A"])
        assert engine.is_ready(a)
        assert not engine.is_ready(b)

    def test_blocking_dependencies(self, entities, engine):
        _task(entities, "A", status="completed")
        _task(entities, "B")
        c = _task(entities, "C", deps=["A", "B", "ghost"])
        assert engine.blocking_dependencies(c) == ["B", "ghost"]

    def test_completed_task_is_not_ready(self, entities, engine):
        assert not engine.is_ready(_task(entities, "A", status="completed"))
