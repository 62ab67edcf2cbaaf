"""Tests for SessionManager lifecycle and audit context."""

from datetime import datetime, timedelta

import pytest

from errors import AlreadyActiveError, NotFoundError, StateError
from events import CREATED, UPDATED
from sessions import Session, SessionContext, SessionManager, duration
from shared_types import EntityKind, EntityRef


@pytest.fixture
def manager(db_path, channel):
    return SessionManager(db_path, channel)


class TestLifecycle:
    def test_start_sets_active(self, manager, recorded_events):
        s = manager.start("alice", phase="planning")
        active = manager.find_active()
        assert active is not None
        assert active.id == s.id
        assert active.is_active
        assert active.phase == "planning"
        assert recorded_events[-1].type == CREATED

    def test_start_while_active_raises(self, manager):
        manager.start("alice")
        with pytest.raises(AlreadyActiveError):
            manager.start("bob")

    def test_active_scope_is_global(self, manager):
        manager.start("alice")
        with pytest.raises(AlreadyActiveError):
            manager.start("alice")

    def test_concurrent_start_rejected_by_database(self, manager, db_path, channel, monkeypatch):
        other = SessionManager(db_path, channel)
        first = manager.start("alice")
        # Second writer checked before the first insert landed
        monkeypatch.setattr(other, "find_active", lambda: None)
        with pytest.raises(AlreadyActiveError):
            other.start("bob")
        assert manager.find_active().id == first.id
        assert manager.find_by_actor("bob") == []

    def test_end_without_active_raises(self, manager):
        with pytest.raises(StateError):
            manager.end("whatever")

    def test_end_wrong_id_raises(self, manager):
        manager.start("alice")
        with pytest.raises(StateError):
            manager.end("not-the-active-one")

    def test_end_records_duration(self, manager, recorded_events):
        s = manager.start("alice")
        ended = manager.end(s.id)
        assert ended.ended_at is not None
        assert not ended.is_active
        assert ended.duration() == ended.ended_at - ended.started_at
        assert manager.find_active() is None
        assert recorded_events[-1].type == UPDATED

        loaded = manager.get(s.id)
        assert loaded.duration() == loaded.ended_at - loaded.started_at

    def test_restart_after_end(self, manager):
        first = manager.start("alice")
        manager.end(first.id)
        second = manager.start("bob")
        assert manager.find_active().id == second.id


class TestDuration:
    def test_open_session_measured_to_now(self):
        start = datetime(2026, 1, 1, 9, 0, 0)
        s = Session(id="x", actor="a", started_at=start)
        assert duration(s, now=start + timedelta(minutes=30)) == timedelta(minutes=30)

    def test_closed_session_ignores_now(self):
        start = datetime(2026, 1, 1, 9, 0, 0)
        s = Session(id="x", actor="a", started_at=start, ended_at=start + timedelta(hours=2))
        assert s.duration(now=start + timedelta(days=5)) == timedelta(hours=2)


class TestUpdates:
    def test_switch_entity(self, manager):
        s = manager.start("alice")
        ref = EntityRef(EntityKind.STORY, "s1")
        assert manager.switch_entity(s.id, ref).active_entity == ref
        assert manager.switch_entity(s.id, None).active_entity is None

    def test_set_phase(self, manager):
        s = manager.start("alice")
        assert manager.set_phase(s.id, "review").phase == "review"

    def test_record_compaction(self, manager):
        s = manager.start("alice")
        manager.record_compaction(s.id)
        assert manager.record_compaction(s.id).compaction_count == 2

    def test_updates_on_ended_session_raise(self, manager):
        s = manager.start("alice")
        manager.end(s.id)
        with pytest.raises(StateError):
            manager.set_phase(s.id, "late")

    def test_updates_on_missing_session_raise(self, manager):
        with pytest.raises(NotFoundError):
            manager.set_phase("ghost", "x")


class TestQueries:
    def test_round_trip(self, db_path, channel):
        ref = EntityRef(EntityKind.TASK, "t7")
        s = SessionManager(db_path, channel).start("alice", active_entity=ref, phase="build")
        loaded = SessionManager(db_path, channel).get(s.id)
        assert loaded == s

    def test_find_by_actor_and_recent(self, manager):
        a = manager.start("alice")
        manager.end(a.id)
        b = manager.start("bob")
        assert [s.id for s in manager.find_by_actor("alice")] == [a.id]
        assert {s.id for s in manager.find_recent()} == {a.id, b.id}

    def test_get_missing(self, manager):
        assert manager.get("ghost") is None


class TestContext:
    def test_context_from_active_session(self, manager):
        s = manager.start("alice")
        assert manager.context() == SessionContext(actor="alice", session_id=s.id)

    def test_context_with_explicit_actor(self, manager):
        s = manager.start("alice")
        assert manager.context("bot") == SessionContext(actor="bot", session_id=s.id)

    def test_context_without_session(self, manager):
        assert manager.context("bot") == SessionContext(actor="bot", session_id=None)
        with pytest.raises(StateError):
            manager.context()
