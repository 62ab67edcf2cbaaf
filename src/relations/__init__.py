"""Relation graph: typed directed edges between tracked entities."""

from .models import INVERSE_RELATIONS, BidirectionalRelation, Relation, inverse_of
from .store import RelationStore

__all__ = [
    "INVERSE_RELATIONS",
    "BidirectionalRelation",
    "Relation",
    "RelationStore",
    "inverse_of",
]
