"""Tests for knowledge annotations and confidence blending."""

import math

import pytest

from errors import InvalidInputError, NotFoundError
from events import CREATED, DELETED, UPDATED
from knowledge import KnowledgeStore, blend_confidence
from shared_types import EntityKind, EntityRef, KnowledgeDimension


@pytest.fixture
def store(db_path, channel):
    return KnowledgeStore(db_path, channel)


class TestBlend:
    def test_equal_weight(self):
        assert blend_confidence(0.5, 1.0, 1) == pytest.approx(0.75)

    def test_heavier_prior_moves_less(self):
        assert blend_confidence(0.5, 1.0, 3) == pytest.approx(0.625)

    @pytest.mark.parametrize("current", [0.0, 0.3, 1.0])
    @pytest.mark.parametrize("evidence", [0.0, 0.5, 1.0])
    @pytest.mark.parametrize("weight", [0.1, 1, 10])
    def test_result_stays_in_unit_interval(self, current, evidence, weight):
        assert 0.0 <= blend_confidence(current, evidence, weight) <= 1.0

    @pytest.mark.parametrize("weight", [0, -1, math.nan, math.inf, -math.inf])
    def test_rejects_bad_weight(self, weight):
        with pytest.raises(InvalidInputError):
            blend_confidence(0.5, 0.5, weight)

    def test_rejects_evidence_out_of_range(self):
        with pytest.raises(InvalidInputError):
            blend_confidence(0.5, 1.5)


class TestCreate:
    def test_default_confidence(self, store, task_ref):
        ann = store.create(task_ref, "E", "risk", "API may be slow")
        assert ann.confidence == 0.5
        assert ann.dimension == KnowledgeDimension.EPISTEMOLOGY

    def test_configured_default(self, db_path, channel, task_ref):
        store = KnowledgeStore(db_path, channel, default_confidence=0.3)
        assert store.create(task_ref, "Q", "feel", "clunky").confidence == 0.3

    def test_rejects_out_of_range_confidence(self, store, task_ref):
        with pytest.raises(InvalidInputError):
            store.create(task_ref, "Q", "feel", "x", confidence=1.2)

    def test_rejects_unknown_dimension(self, store, task_ref):
        with pytest.raises(InvalidInputError):
            store.create(task_ref, "X", "feel", "x")

    def test_round_trip(self, db_path, channel, task_ref):
        written = KnowledgeStore(db_path, channel).create(
            task_ref,
            KnowledgeDimension.MEREOLOGY,
            "structure",
            "Split into three parts",
            confidence=0.9,
            evidence="design review",
            extensions={"source": "review", "score": 3},
        )
        loaded = KnowledgeStore(db_path, channel).get(written.id)
        assert loaded == written

    def test_emits_event(self, store, task_ref, recorded_events):
        ann = store.create(task_ref, "O", "type", "is a spike")
        assert recorded_events[-1].table == "knowledge_annotations"
        assert recorded_events[-1].type == CREATED
        assert recorded_events[-1].id == ann.id


class TestUpdate:
    def test_update_overwrites_confidence(self, store, task_ref):
        ann = store.create(task_ref, "E", "risk", "x", confidence=0.2)
        assert store.update(ann.id, confidence=0.9).confidence == 0.9

    def test_update_content(self, store, task_ref, recorded_events):
        ann = store.create(task_ref, "E", "risk", "x")
        updated = store.update(ann.id, content="y", category="scope")
        assert (updated.content, updated.category) == ("y", "scope")
        assert recorded_events[-1].type == UPDATED

    def test_update_missing(self, store):
        with pytest.raises(NotFoundError):
            store.update("ghost", content="x")

    def test_update_confidence_blends(self, store, task_ref):
        ann = store.create(task_ref, "E", "risk", "x")
        assert store.update_confidence(ann.id, 1.0).confidence == pytest.approx(0.75)
        assert store.get(ann.id).confidence == pytest.approx(0.75)

    def test_update_confidence_weight(self, store, task_ref):
        ann = store.create(task_ref, "E", "risk", "x", confidence=0.0)
        assert store.update_confidence(ann.id, 1.0, weight=4).confidence == pytest.approx(0.2)

    def test_update_confidence_nan_weight_keeps_stored_value(self, store, task_ref):
        ann = store.create(task_ref, "E", "risk", "x", confidence=0.1)
        with pytest.raises(InvalidInputError):
            store.update_confidence(ann.id, 0.0, weight=math.nan)
        assert store.get(ann.id).confidence == pytest.approx(0.1)

    def test_update_confidence_missing(self, store):
        with pytest.raises(NotFoundError):
            store.update_confidence("ghost", 0.5)


class TestQueries:
    @pytest.fixture
    def seeded(self, store, task_ref, story_ref):
        store.create(task_ref, "Q", "feel", "snappy UI", confidence=0.9)
        store.create(task_ref, "E", "risk", "vendor API flaky", confidence=0.4)
        store.create(task_ref, "E", "assumption", "users have accounts", confidence=0.8)
        store.create(story_ref, "O", "type", "platform work", confidence=0.6)
        return store

    def test_by_entity_and_dimension(self, seeded, task_ref):
        assert len(seeded.find_by_entity(task_ref)) == 3
        assert len(seeded.find_by_entity(task_ref, dimension="E")) == 2

    def test_by_dimension(self, seeded):
        assert len(seeded.find_by_dimension(KnowledgeDimension.EPISTEMOLOGY)) == 2

    def test_by_category(self, seeded):
        assert [a.content for a in seeded.find_by_category("risk")] == ["vendor API flaky"]

    def test_high_confidence_default_threshold(self, seeded):
        found = seeded.find_high_confidence()
        assert [a.confidence for a in found] == [0.9, 0.8]

    def test_high_confidence_custom_threshold(self, seeded):
        assert len(seeded.find_high_confidence(0.5)) == 3

    def test_search(self, seeded):
        assert len(seeded.search("API")) == 1
        assert len(seeded.search("assum")) == 1

    def test_dimension_summary_includes_zeros(self, seeded, task_ref):
        summary = seeded.dimension_summary(task_ref)
        assert summary == {
            KnowledgeDimension.QUALIA: 1,
            KnowledgeDimension.EPISTEMOLOGY: 2,
            KnowledgeDimension.ONTOLOGY: 0,
            KnowledgeDimension.MEREOLOGY: 0,
        }


class TestDelete:
    def test_delete(self, store, task_ref, recorded_events):
        ann = store.create(task_ref, "Q", "feel", "x")
        store.delete(ann.id)
        assert store.get(ann.id) is None
        assert recorded_events[-1].type == DELETED

    def test_delete_missing(self, store):
        with pytest.raises(NotFoundError):
            store.delete("ghost")

    def test_delete_for_entity(self, store, task_ref):
        other = EntityRef(EntityKind.TASK, "t2")
        store.create(task_ref, "Q", "feel", "x")
        store.create(task_ref, "E", "risk", "y")
        store.create(other, "E", "risk", "z")
        assert store.delete_for_entity(task_ref) == 2
        assert store.find_by_entity(task_ref) == []
        assert len(store.find_by_entity(other)) == 1
