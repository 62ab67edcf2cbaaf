"""Task readiness from dependency state."""

from .engine import ReadinessEngine

__all__ = ["ReadinessEngine"]
