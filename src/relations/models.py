"""Data models for the relation graph."""

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType

from capsule import Extensions
from shared_types import EntityRef, RelationType, coerce_enum

# Every relation type maps to exactly one inverse; relates_to and duplicates
# are their own inverse.
INVERSE_RELATIONS = MappingProxyType(
    {
        RelationType.BLOCKS: RelationType.BLOCKED_BY,
        RelationType.BLOCKED_BY: RelationType.BLOCKS,
        RelationType.PARENT_OF: RelationType.CHILD_OF,
        RelationType.CHILD_OF: RelationType.PARENT_OF,
        RelationType.RELATES_TO: RelationType.RELATES_TO,
        RelationType.DUPLICATES: RelationType.DUPLICATES,
    }
)


def inverse_of(relation_type: RelationType | str) -> RelationType:
    """Return the logical inverse of a relation type."""
    return INVERSE_RELATIONS[coerce_enum(RelationType, relation_type, "relation type")]


@dataclass
class Relation:
    id: str
    source: EntityRef
    target: EntityRef
    relation_type: RelationType
    description: str | None = None
    extensions: Extensions = field(default_factory=Extensions)
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    def involves(self, ref: EntityRef) -> bool:
        return self.source == ref or self.target == ref


@dataclass
class BidirectionalRelation:
    """Forward edge plus its independently stored inverse."""

    forward: Relation
    inverse: Relation
