"""Data models and confidence math for knowledge annotations."""

import math
from dataclasses import dataclass, field
from datetime import datetime

from capsule import Extensions
from errors import InvalidInputError
from shared_types import EntityRef, KnowledgeDimension


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def validate_unit(value: float, label: str) -> float:
    """Reject values outside [0, 1]."""
    if not 0.0 <= value <= 1.0:
        raise InvalidInputError(f"{label} must be 0-1, got {value}")
    return float(value)


def blend_confidence(current: float, evidence: float, weight: float = 1.0) -> float:
    """Weighted linear blend of a prior confidence with new evidence.

    ``(current * weight + evidence) / (weight + 1)``, clamped to [0, 1].
    Called a Bayesian update in the domain, but it is not a posterior: the
    prior simply counts ``weight`` times as much as the single new
    observation.
    """
    if not math.isfinite(weight) or weight <= 0:
        raise InvalidInputError(f"weight must be a finite number > 0, got {weight}")
    validate_unit(evidence, "evidence")
    return clamp((current * weight + evidence) / (weight + 1))


@dataclass
class KnowledgeAnnotation:
    id: str
    entity_ref: EntityRef
    dimension: KnowledgeDimension
    category: str
    content: str
    confidence: float = 0.5
    evidence: str | None = None
    extensions: Extensions = field(default_factory=Extensions)
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)
