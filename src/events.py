# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Application event bus for authentication and authorization changes."""

import asyncio
import logging
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class AppEvent(str, Enum):
    """Application events that session contexts and services subscribe to."""

    # Identity events
    USER_CREATED = "user.created"
    USER_LOGIN = "user.login"
    USER_LOGOUT = "user.logout"
    SESSION_RESTORED = "session.restored"

    # Authorization changes
    USER_ROLE_CHANGED = "user.role_changed"
    USER_PERMISSIONS_CHANGED = "user.permissions_changed"
    ROLE_UPDATED = "role.updated"


@dataclass
class EventPayload:
    """Payload for an application event."""

    event_type: AppEvent
    timestamp: datetime
    data: dict[str, Any]


# Type alias for event handlers
EventHandler = Callable[[EventPayload], Any]


class EventBus:
    """Central event bus for application-wide events.

    Handlers may be plain functions or coroutines. A failing handler is
    logged and never stops delivery to the others.
    """

    def __init__(self) -> None:
        self._handlers: dict[AppEvent, list[EventHandler]] = defaultdict(list)
        self._async_handlers: dict[AppEvent, list[EventHandler]] = defaultdict(list)

    def subscribe(self, event_type: AppEvent, handler: EventHandler) -> None:
        """Subscribe to an event.

        Args:
            event_type: Event type to subscribe to
            handler: Function to call when event fires (sync or async)
        """
        if asyncio.iscoroutinefunction(handler):
            self._async_handlers[event_type].append(handler)
        else:
            self._handlers[event_type].append(handler)

        logger.debug(f"Subscribed {handler!r} to event {event_type.value}")

    def unsubscribe(self, event_type: AppEvent, handler: EventHandler) -> None:
        """Unsubscribe from an event.

        Args:
            event_type: Event type to unsubscribe from
            handler: Handler function to remove
        """
        if handler in self._handlers[event_type]:
            self._handlers[event_type].remove(handler)
        if handler in self._async_handlers[event_type]:
            self._async_handlers[event_type].remove(handler)

    async def publish(self, event_type: AppEvent, data: dict[str, Any]) -> None:
        """Publish an event to all subscribers.

        Args:
            event_type: Type of event
            data: Event data payload
        """
        payload = EventPayload(
            event_type=event_type,
            timestamp=datetime.now(UTC),
            data=data,
        )

        for handler in list(self._handlers.get(event_type, [])):
            try:
                handler(payload)
            except Exception as e:
                logger.error(f"Error in sync event handler for {event_type.value}: {e}")

        for handler in list(self._async_handlers.get(event_type, [])):
            try:
                await handler(payload)
            except Exception as e:
                logger.error(
                    f"Error in async event handler for {event_type.value}: {e}"
                )

    def publish_sync(self, event_type: AppEvent, data: dict[str, Any]) -> None:
        """Publish an event synchronously (sync handlers only).

        Use this when you need to publish from sync code and can't await.
        Note: Async handlers will NOT be called.
        """
        payload = EventPayload(
            event_type=event_type,
            timestamp=datetime.now(UTC),
            data=data,
        )

        for handler in list(self._handlers.get(event_type, [])):
            try:
                handler(payload)
            except Exception as e:
                logger.error(f"Error in sync event handler for {event_type.value}: {e}")

        if self._async_handlers.get(event_type):
            logger.warning(
                f"Event {event_type.value} has async handlers that were "
                "not called due to sync publish"
            )

    def get_subscriber_count(self, event_type: AppEvent) -> int:
        """Get the number of subscribers for an event type."""
        sync_count = len(self._handlers.get(event_type, []))
        async_count = len(self._async_handlers.get(event_type, []))
        return sync_count + async_count


# Process-wide bus used by the services; session contexts bind to it explicitly
event_bus = EventBus()
