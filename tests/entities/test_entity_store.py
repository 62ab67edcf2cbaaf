"""Tests for SqliteEntityStore snapshots."""

import pytest

from entities import SqliteEntityStore
from errors import ConflictError, InvalidInputError, NotFoundError
from events import CREATED, DELETED, UPDATED
from shared_types import EntityKind


@pytest.fixture
def store(db_path, channel):
    return SqliteEntityStore(db_path, channel)


def test_public_surface():
    import entities

    assert sorted(entities.__all__) == ["EntityStore", "SqliteEntityStore"]


class TestSnapshots:
    def test_task_defaults(self, store):
        task = store.create(EntityKind.TASK, {"title": "Write tests"})
        assert task["status"] == "pending"
        assert task["dependencies"] == []
        assert task["id"]
        assert store.find_by_id("task", task["id"]) == task

    def test_find_by_code_and_resolve(self, store):
        story = store.create(EntityKind.STORY, {"code": "S-1", "title": "Login"})
        assert store.find_by_code(EntityKind.STORY, "S-1") == story
        assert store.resolve(EntityKind.STORY, "S-1") == story
        assert store.resolve(EntityKind.STORY, story["id"]) == story

    def test_duplicate_code_conflicts(self, store):
        store.create(EntityKind.TASK, {"code": "T-1"})
        with pytest.raises(ConflictError):
            store.create(EntityKind.TASK, {"code": "T-1"})

    def test_same_code_different_kind(self, store):
        store.create(EntityKind.TASK, {"code": "X-1"})
        store.create(EntityKind.STORY, {"code": "X-1"})

    def test_update_merges(self, store, recorded_events):
        task = store.create(EntityKind.TASK, {"title": "A", "priority": 1})
        updated = store.update(EntityKind.TASK, task["id"], {"status": "completed"})
        assert updated["title"] == "A"
        assert updated["status"] == "completed"
        assert store.find_by_id(EntityKind.TASK, task["id"]) == updated
        assert recorded_events[-1].type == UPDATED

    def test_update_missing(self, store):
        with pytest.raises(NotFoundError):
            store.update(EntityKind.TASK, "ghost", {"status": "completed"})

    def test_delete_returns_final_snapshot(self, store, recorded_events):
        task = store.create(EntityKind.TASK, {"title": "A"})
        assert store.delete(EntityKind.TASK, task["id"]) == task
        assert store.find_by_id(EntityKind.TASK, task["id"]) is None
        assert recorded_events[-1].type == DELETED
        assert recorded_events[0].type == CREATED

    def test_find_all_filters(self, store):
        store.create(EntityKind.TASK, {"id": "a", "story_id": "s1"})
        store.create(EntityKind.TASK, {"id": "b", "story_id": "s2", "status": "completed"})
        assert [t["id"] for t in store.find_all(EntityKind.TASK)] == ["a", "b"]
        assert [t["id"] for t in store.find_all("task", story_id="s2")] == ["b"]
        assert store.find_all(EntityKind.FEATURE) == []

    def test_unknown_kind(self, store):
        with pytest.raises(InvalidInputError):
            store.create("epic", {})
