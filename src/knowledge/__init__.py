"""Knowledge annotations: confidence-weighted notes attached to entities."""

from .models import KnowledgeAnnotation, blend_confidence, clamp
from .store import KnowledgeStore

__all__ = ["KnowledgeAnnotation", "KnowledgeStore", "blend_confidence", "clamp"]
