"""Shared enums and types for taskboard."""

from dataclasses import dataclass
from enum import StrEnum

from errors import InvalidInputError


class EntityKind(StrEnum):
    FEATURE = "feature"
    STORY = "story"
    TASK = "task"
    ACCEPTANCE_CRITERIA = "acceptance_criteria"
    SESSION = "session"
    IMPEDIMENT = "impediment"
    NOTE = "note"
    LABEL = "label"
    DECISION = "decision"


class TaskStatus(StrEnum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    BLOCKED = "blocked"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class StoryStatus(StrEnum):
    DRAFT = "draft"
    PLANNED = "planned"
    IN_PROGRESS = "in_progress"
    REVIEW = "review"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    ARCHIVED = "archived"


class RelationType(StrEnum):
    BLOCKS = "blocks"
    BLOCKED_BY = "blocked_by"
    PARENT_OF = "parent_of"
    CHILD_OF = "child_of"
    RELATES_TO = "relates_to"
    DUPLICATES = "duplicates"


class HistoryAction(StrEnum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    STATUS_CHANGED = "status_changed"
    VERIFIED = "verified"
    ASSIGNED = "assigned"
    COMMENTED = "commented"


class KnowledgeDimension(StrEnum):
    """Q = qualia, E = epistemology, O = ontology, M = mereology."""

    QUALIA = "Q"
    EPISTEMOLOGY = "E"
    ONTOLOGY = "O"
    MEREOLOGY = "M"


def coerce_enum(enum_cls, value, label: str | None = None):
    """Convert a raw value to a member of enum_cls or raise InvalidInputError."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        valid = ", ".join(m.value for m in enum_cls)
        raise InvalidInputError(
            f"Invalid {label or enum_cls.__name__}: {value!r}. Must be one of: {valid}"
        ) from None


@dataclass(frozen=True)
class EntityRef:
    """Opaque (kind, id) reference to a tracked entity."""

    kind: EntityKind
    id: str

    def __post_init__(self):
        object.__setattr__(self, "kind", coerce_enum(EntityKind, self.kind, "entity kind"))
        if not self.id:
            raise InvalidInputError("Entity id must not be empty")

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.id}"

    @classmethod
    def parse(cls, text: str) -> "EntityRef":
        """Parse 'kind:id' (e.g. 'task:abc123')."""
        kind, sep, ident = text.partition(":")
        if not sep:
            raise InvalidInputError(f"Expected kind:id, got {text!r}")
        return cls(kind, ident)
