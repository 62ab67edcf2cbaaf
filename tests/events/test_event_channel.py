"""Tests for the synchronous event channel."""

from events import CREATED, BoardEvent, EventChannel, get_channel, reset_channel
from observability import metrics


class TestSubscribe:
    def test_delivers_in_subscription_order(self, channel):
        seen = []
        channel.subscribe(lambda e: seen.append(("first", e.id)))
        channel.subscribe(lambda e: seen.append(("second", e.id)))
        channel.emit("relations", CREATED, "r1")
        assert seen == [("first", "r1"), ("second", "r1")]

    def test_event_payload(self, channel, recorded_events):
        channel.emit("history", CREATED, "h1")
        event = recorded_events[0]
        assert isinstance(event, BoardEvent)
        assert (event.table, event.type, event.id) == ("history", "created", "h1")
        assert event.timestamp

    def test_unsubscribe(self, channel):
        seen = []
        sub = channel.subscribe(seen.append)
        assert sub.active
        assert sub.unsubscribe() is True
        assert sub.unsubscribe() is False
        channel.emit("relations", CREATED, "r1")
        assert seen == []
        assert channel.subscriber_count == 0

    def test_context_manager_unsubscribes(self, channel):
        seen = []
        with channel.subscribe(seen.append):
            channel.emit("relations", CREATED, "r1")
        channel.emit("relations", CREATED, "r2")
        assert [e.id for e in seen] == ["r1"]

    def test_handler_may_unsubscribe_during_publish(self, channel):
        seen = []
        holder = {}

        def once(event):
            seen.append(event.id)
            holder["sub"].unsubscribe()

        holder["sub"] = channel.subscribe(once)
        channel.emit("relations", CREATED, "r1")
        channel.emit("relations", CREATED, "r2")
        assert seen == ["r1"]


class TestFailures:
    def test_failing_handler_does_not_stop_others(self, channel):
        seen = []

        def broken(event):
            raise ValueError("boom")

        channel.subscribe(broken)
        channel.subscribe(seen.append)
        errors = channel.emit("relations", CREATED, "r1")
        assert len(errors) == 1
        assert isinstance(errors[0], ValueError)
        assert [e.id for e in seen] == ["r1"]
        assert metrics.count("events.handler_failed") == 1
        assert metrics.count("events.published") == 1

    def test_no_subscribers(self, channel):
        assert channel.emit("relations", CREATED, "r1") == []


class TestDefaultChannel:
    def test_singleton(self):
        assert get_channel() is get_channel()

    def test_reset_drops_subscribers(self):
        old = get_channel()
        old.subscribe(lambda e: None)
        new = reset_channel()
        assert new is get_channel()
        assert new is not old
        assert old.subscriber_count == 0
        assert new.subscriber_count == 0

    def test_independent_channels(self):
        a, b = EventChannel(), EventChannel()
        seen = []
        a.subscribe(seen.append)
        b.emit("relations", CREATED, "r1")
        assert seen == []
