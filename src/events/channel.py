"""In-process publish/subscribe channel for committed mutations.

Delivery guarantee: ``publish`` calls every handler registered at the moment
of the call, in subscription order, on the caller's own stack, before it
returns. Nothing is persisted, retried or replayed. A handler that raises is
logged and skipped; the remaining handlers still run and the mutation that
triggered the event stays committed.
"""

import itertools
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

import structlog

from observability import metrics

logger = structlog.get_logger()

CREATED = "created"
UPDATED = "updated"
DELETED = "deleted"


@dataclass(frozen=True)
class BoardEvent:
    table: str
    type: str
    id: str
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())


Handler = Callable[[BoardEvent], None]


class Subscription:
    """Handle returned by EventChannel.subscribe."""

    def __init__(self, channel: "EventChannel", token: int, handler: Handler):
        self._channel = channel
        self.token = token
        self.handler = handler

    @property
    def active(self) -> bool:
        return self._channel._has(self.token)

    def unsubscribe(self) -> bool:
        """Remove the handler. Returns False if it was already removed."""
        return self._channel._remove(self.token)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc) -> None:
        self.unsubscribe()


class EventChannel:
    """Synchronous listener list keyed by subscription token."""

    def __init__(self):
        self._handlers: dict[int, Handler] = {}
        self._tokens = itertools.count(1)

    def subscribe(self, handler: Handler) -> Subscription:
        token = next(self._tokens)
        self._handlers[token] = handler
        return Subscription(self, token, handler)

    def publish(self, event: BoardEvent) -> list[Exception]:
        """Deliver event to current subscribers. Returns handler failures."""
        errors: list[Exception] = []
        # dicts keep insertion order; snapshot so handlers may (un)subscribe
        for token, handler in list(self._handlers.items()):
            try:
                handler(event)
            except Exception as e:
                metrics.counter("events.handler_failed")
                logger.warning(
                    "event_handler_failed",
                    table=event.table,
                    event_type=event.type,
                    entity_id=event.id,
                    token=token,
                    error=str(e),
                )
                errors.append(e)
        metrics.counter("events.published")
        return errors

    def emit(self, table: str, event_type: str, entity_id: str) -> list[Exception]:
        return self.publish(BoardEvent(table=table, type=event_type, id=entity_id))

    @property
    def subscriber_count(self) -> int:
        return len(self._handlers)

    def clear(self) -> None:
        self._handlers.clear()

    def _has(self, token: int) -> bool:
        return token in self._handlers

    def _remove(self, token: int) -> bool:
        return self._handlers.pop(token, None) is not None


_channel: EventChannel | None = None


def get_channel() -> EventChannel:
    """Process-wide default channel, created lazily."""
    global _channel
    if _channel is None:
        _channel = EventChannel()
    return _channel


def reset_channel() -> EventChannel:
    """Drop every subscriber and start a fresh default channel (tests)."""
    global _channel
    if _channel is not None:
        _channel.clear()
    _channel = EventChannel()
    return _channel
