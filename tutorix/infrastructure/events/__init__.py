# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Event infrastructure for Tutorix.

An in-memory event bus carries the best-effort analytics side channel of
the auth core.

Example:
    from tutorix.infrastructure.events import get_event_bus, EventTypes

    get_event_bus().subscribe(EventTypes.Auth.USER_REGISTERED, handler)
"""

from tutorix.infrastructure.events.bus import (
    EventBus,
    EventData,
    EventHandler,
    get_event_bus,
    reset_event_bus,
)
from tutorix.infrastructure.events.types import EventPatterns, EventTypes

__all__ = [
    "EventBus",
    "EventData",
    "EventHandler",
    "get_event_bus",
    "reset_event_bus",
    "EventTypes",
    "EventPatterns",
]
