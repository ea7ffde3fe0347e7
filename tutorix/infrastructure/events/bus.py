# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""In-memory async event bus carrying auth analytics.

Subscriptions name either an exact event type ("auth.user.logged_in") or
a shell-style pattern ("auth.user.*"). Handlers of one event run
concurrently; a failing handler is logged and never affects the publisher
or the other handlers.

Example:
    bus = get_event_bus()
    bus.subscribe(EventPatterns.ALL_USER, forward_to_warehouse)
    await bus.publish(EventTypes.Auth.USER_LOGGED_IN, {"user_id": 7})
"""

import asyncio
import fnmatch
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable
from uuid import uuid4

from tutorix.utils.datetime import utc_now

logger = logging.getLogger(__name__)

EventHandler = Callable[["EventData"], Awaitable[None]]


@dataclass(frozen=True)
class EventData:
    """A published event.

    Attributes:
        event_type: Dotted event name.
        payload: Event fields (ids and tags only, never credentials).
        event_id: Unique id of this publication.
        occurred_at: Publication time (UTC).
    """

    event_type: str
    payload: dict[str, Any]
    event_id: str = field(default_factory=lambda: uuid4().hex)
    occurred_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_id": self.event_id,
            "event_type": self.event_type,
            "occurred_at": self.occurred_at.isoformat(),
            **self.payload,
        }


class EventBus:
    """Async publish / subscribe for a single process.

    Attributes:
        _subscriptions: (event type or pattern, handler) pairs in
            subscription order.
        _published: Number of events published so far.
    """

    def __init__(self) -> None:
        self._subscriptions: list[tuple[str, EventHandler]] = []
        self._published = 0

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        """Call ``handler`` for every event matching ``event_type``."""
        self._subscriptions.append((event_type, handler))
        logger.debug("Subscribed %s to %s", getattr(handler, "__name__", handler), event_type)

    def unsubscribe(self, event_type: str, handler: EventHandler) -> bool:
        """Remove a subscription.

        Returns:
            True if the subscription existed.
        """
        try:
            self._subscriptions.remove((event_type, handler))
        except ValueError:
            return False
        return True

    def handlers_for(self, event_type: str) -> list[EventHandler]:
        """Handlers whose subscription matches an event type."""
        return [
            handler
            for subscribed, handler in self._subscriptions
            if subscribed == event_type or fnmatch.fnmatchcase(event_type, subscribed)
        ]

    async def publish(self, event_type: str, payload: dict[str, Any]) -> EventData:
        """Deliver an event to all matching handlers and wait for them.

        Returns:
            The published event.
        """
        event = EventData(event_type=event_type, payload=payload)
        self._published += 1

        handlers = self.handlers_for(event_type)
        if handlers:
            await asyncio.gather(*(self._deliver(handler, event) for handler in handlers))
        return event

    @staticmethod
    async def _deliver(handler: EventHandler, event: EventData) -> None:
        try:
            await handler(event)
        except Exception as e:
            logger.error(
                "Handler failed for %s (%s): %s",
                event.event_type,
                event.event_id,
                str(e),
                exc_info=True,
            )

    def clear(self) -> None:
        """Remove all subscriptions."""
        self._subscriptions.clear()

    def get_stats(self) -> dict[str, int]:
        """Subscription and publication counters."""
        return {
            "total_handlers": len(self._subscriptions),
            "events_published": self._published,
        }


_event_bus: EventBus | None = None


def get_event_bus() -> EventBus:
    """Get the process-wide event bus."""
    global _event_bus
    if _event_bus is None:
        _event_bus = EventBus()
    return _event_bus


def reset_event_bus() -> None:
    """Drop the process-wide event bus (tests)."""
    global _event_bus
    if _event_bus is not None:
        _event_bus.clear()
    _event_bus = None
