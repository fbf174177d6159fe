from __future__ import annotations

from pathlib import Path
from queue import Empty

import pytest

from folderwatch.events import (
    Error,
    EventBus,
    Moved,
    NoRuleMatched,
    Queued,
    Skipped,
    format_event,
)


class TestOutcomeEvents:
    """Tests for the structured outcome types."""

    def test_equality_ignores_timestamp(self):
        assert Moved(source=Path("/a"), destination=Path("/b")) == Moved(source=Path("/a"), destination=Path("/b"))

    def test_kinds(self):
        assert Moved.kind == "moved"
        assert Queued.kind == "queued"
        assert NoRuleMatched.kind == "no-rule"
        assert Skipped.kind == "skipped"
        assert Error.kind == "error"

    def test_format_event(self):
        assert format_event(Moved(source=Path("/in/a.pdf"), destination=Path("/docs/a.pdf"))) == (
            "Moved: /in/a.pdf -> /docs/a.pdf"
        )
        assert format_event(Queued(path=Path("/in/x"))) == "Queued for review: /in/x"
        assert format_event(NoRuleMatched(path=Path("/in/x"))) == "No matching rule for: /in/x"
        assert format_event(Skipped(path=Path("/in/x"))) == "Skipped: /in/x"
        assert format_event(Error(path=Path("/in/x"), detail="boom")) == "Error organizing /in/x: boom"
        assert format_event(Error(path=None, detail="boom")) == "Error organizing <none>: boom"


class TestEventBus:
    """Tests for the lossy broadcast bus."""

    def test_rejects_non_positive_capacity(self):
        with pytest.raises(ValueError):
            EventBus(capacity=0)

    def test_every_subscriber_receives_each_event(self):
        bus = EventBus()
        first = bus.subscribe()
        second = bus.subscribe()
        event = Queued(path=Path("/in/a"))

        assert bus.publish(event) == 2
        assert first.get_nowait() == event
        assert second.get_nowait() == event

    def test_publish_without_subscribers(self):
        assert EventBus().publish(Queued(path=Path("/in/a"))) == 0

    def test_full_subscriber_drops_events_without_blocking(self):
        bus = EventBus(capacity=2)
        slow = bus.subscribe()
        fast = bus.subscribe(capacity=10)

        for index in range(5):
            bus.publish(Queued(path=Path(f"/in/{index}")))

        assert slow.dropped == 3
        assert [event.path.name for event in slow.drain()] == ["0", "1"]
        assert len(fast.drain()) == 5
        assert fast.dropped == 0

    def test_unsubscribe_stops_delivery(self):
        bus = EventBus()
        subscription = bus.subscribe()
        subscription.close()

        bus.publish(Queued(path=Path("/in/a")))

        assert subscription.closed
        assert bus.subscriber_count == 0
        with pytest.raises(Empty):
            subscription.get_nowait()

    def test_context_manager_unsubscribes(self):
        bus = EventBus()
        with bus.subscribe():
            assert bus.subscriber_count == 1
        assert bus.subscriber_count == 0

    def test_get_times_out(self):
        subscription = EventBus().subscribe()
        with pytest.raises(Empty):
            subscription.get(timeout=0.01)

    def test_iteration_drains(self):
        bus = EventBus()
        subscription = bus.subscribe()
        bus.publish(Queued(path=Path("/in/a")))
        bus.publish(Skipped(path=Path("/in/a")))
        assert [event.kind for event in subscription] == ["queued", "skipped"]
        assert subscription.drain() == []

    def test_subscription_capacity_bounds_queue(self):
        bus = EventBus(capacity=50)
        subscription = bus.subscribe(capacity=2)
        for _ in range(10):
            bus.publish(Queued(path=Path("/in/a")))
        assert len(subscription.drain()) == 2
        assert subscription.dropped == 8

    @pytest.mark.parametrize("capacity", [0, -1])
    def test_subscribe_rejects_non_positive_capacity(self, capacity):
        bus = EventBus(capacity=2)
        with pytest.raises(ValueError):
            bus.subscribe(capacity=capacity)
        assert bus.subscriber_count == 0
