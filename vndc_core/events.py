"""
Event log for the staking ledger and the token.

Mirrors contract events: each emitted record has a name (``StakeCreated``,
``RewardsClaimed``, ``Transfer`` …), its arguments, the emitter and the
timestamp.  Listeners are notified when the emitting component flushes,
which it does once its own mutation has completed.
"""

from __future__ import annotations

import contextlib
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator

logger = logging.getLogger("vndc_events")


@dataclass(frozen=True)
class Event:
    name: str
    emitter: str
    args: dict[str, Any] = field(default_factory=dict)
    timestamp: int = 0
    index: int = 0

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "name": self.name,
            "emitter": self.emitter,
            "args": dict(self.args),
            "timestamp": self.timestamp,
        }


Listener = Callable[[Event], None]


class EventLog:
    """Append-only event list with rollback to a mark."""

    def __init__(self) -> None:
        self._events: list[Event] = []
        self._listeners: list[Listener] = []
        self._pending: list[Event] = []
        self._held = 0

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self):
        return iter(list(self._events))

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def emit(self, name: str, emitter: str, timestamp: int = 0, **args: Any) -> Event:
        event = Event(name, emitter, args, timestamp, len(self._events))
        self._events.append(event)
        self._pending.append(event)
        return event

    def mark(self) -> int:
        return len(self._events)

    def rollback(self, mark: int) -> None:
        del self._events[mark:]
        self._pending = [e for e in self._pending if e.index < mark]

    @contextlib.contextmanager
    def deferred(self) -> Iterator[None]:
        """Suppress delivery inside the block; the owner flushes once it commits."""
        self._held += 1
        try:
            yield
        finally:
            self._held -= 1

    def flush(self) -> None:
        """Deliver events emitted since the last flush to listeners.

        No-op while a :meth:`deferred` block is open.
        """
        if self._held:
            return
        pending, self._pending = self._pending, []
        for event in pending:
            for listener in list(self._listeners):
                try:
                    listener(event)
                except Exception:
                    logger.exception(f"Event listener failed on {event.name}")

    def by_name(self, name: str) -> list[Event]:
        return [e for e in self._events if e.name == name]

    def last(self, name: str | None = None) -> Event | None:
        for event in reversed(self._events):
            if name is None or event.name == name:
                return event
        return None

    def load(self, events: list[Event]) -> None:
        self._events = list(events)
        self._pending = []
