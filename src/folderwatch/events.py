"""Outcome events and a lossy broadcast bus.

Producers never wait on consumers: every subscription owns a bounded queue
and events that do not fit are dropped from that subscriber's view.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from queue import Empty, Full, Queue
from typing import Iterator, List, Optional, Union

LOGGER = logging.getLogger(__name__)

DEFAULT_CAPACITY = 100


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class Moved:
    source: Path
    destination: Path
    timestamp: datetime = field(default_factory=_now, compare=False)

    kind = "moved"


@dataclass(frozen=True, slots=True)
class Queued:
    path: Path
    timestamp: datetime = field(default_factory=_now, compare=False)

    kind = "queued"


@dataclass(frozen=True, slots=True)
class NoRuleMatched:
    path: Path
    timestamp: datetime = field(default_factory=_now, compare=False)

    kind = "no-rule"


@dataclass(frozen=True, slots=True)
class Skipped:
    path: Path
    timestamp: datetime = field(default_factory=_now, compare=False)

    kind = "skipped"


@dataclass(frozen=True, slots=True)
class Error:
    path: Optional[Path]
    detail: str
    timestamp: datetime = field(default_factory=_now, compare=False)

    kind = "error"


OutcomeEvent = Union[Moved, Queued, NoRuleMatched, Skipped, Error]


def format_event(event: OutcomeEvent) -> str:
    """Render an outcome as a single human readable line."""
    if isinstance(event, Moved):
        return f"Moved: {event.source} -> {event.destination}"
    if isinstance(event, Queued):
        return f"Queued for review: {event.path}"
    if isinstance(event, NoRuleMatched):
        return f"No matching rule for: {event.path}"
    if isinstance(event, Skipped):
        return f"Skipped: {event.path}"
    if isinstance(event, Error):
        target = event.path if event.path is not None else "<none>"
        return f"Error organizing {target}: {event.detail}"
    return repr(event)


class Subscription:
    """A single subscriber's bounded view of the bus."""

    def __init__(self, bus: "EventBus", capacity: int) -> None:
        self._bus = bus
        self._queue: Queue[OutcomeEvent] = Queue(maxsize=capacity)
        self._dropped = 0
        self._dropped_lock = threading.Lock()
        self.closed = False

    @property
    def dropped(self) -> int:
        """Number of events discarded because this subscriber fell behind."""
        with self._dropped_lock:
            return self._dropped

    def _offer(self, event: OutcomeEvent) -> bool:
        try:
            self._queue.put_nowait(event)
        except Full:
            with self._dropped_lock:
                self._dropped += 1
            return False
        return True

    def get(self, timeout: Optional[float] = None) -> OutcomeEvent:
        """Block until an event is available; raises ``queue.Empty`` on timeout."""
        return self._queue.get(timeout=timeout)

    def get_nowait(self) -> OutcomeEvent:
        return self._queue.get_nowait()

    def drain(self) -> List[OutcomeEvent]:
        events: List[OutcomeEvent] = []
        while True:
            try:
                events.append(self._queue.get_nowait())
            except Empty:
                break
        return events

    def __iter__(self) -> Iterator[OutcomeEvent]:
        return iter(self.drain())

    def close(self) -> None:
        self._bus.unsubscribe(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class EventBus:
    """Multi-subscriber broadcast channel for outcome events."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError("EventBus capacity must be positive")
        self._capacity = capacity
        self._subscriptions: List[Subscription] = []
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def subscribe(self, capacity: Optional[int] = None) -> Subscription:
        if capacity is None:
            capacity = self._capacity
        elif capacity <= 0:
            raise ValueError("Subscription capacity must be positive")
        subscription = Subscription(self, capacity)
        with self._lock:
            self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)
        subscription.closed = True

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def publish(self, event: OutcomeEvent) -> int:
        """Deliver ``event`` to every subscriber that has room for it.

        Returns the number of subscriptions that accepted the event.
        """
        with self._lock:
            subscriptions = list(self._subscriptions)

        delivered = 0
        for subscription in subscriptions:
            if subscription._offer(event):
                delivered += 1
            else:
                LOGGER.debug("Dropped %s event for a slow subscriber", event.kind)
        return delivered


__all__ = [
    "DEFAULT_CAPACITY",
    "Error",
    "EventBus",
    "Moved",
    "NoRuleMatched",
    "OutcomeEvent",
    "Queued",
    "Skipped",
    "Subscription",
    "format_event",
]
