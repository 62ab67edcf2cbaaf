"""Event channel: synchronous notifications after committed writes."""

from .channel import (
    CREATED,
    DELETED,
    UPDATED,
    BoardEvent,
    EventChannel,
    Subscription,
    get_channel,
    reset_channel,
)

__all__ = [
    "CREATED",
    "DELETED",
    "UPDATED",
    "BoardEvent",
    "EventChannel",
    "Subscription",
    "get_channel",
    "reset_channel",
]
