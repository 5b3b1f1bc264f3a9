"""Event bus — internal pub/sub for pushing validation results to connected editors."""

from typing import Callable, Awaitable, Dict, Optional, Set
from collections import defaultdict

import structlog

from rasa_xref.config import get_settings

logger = structlog.get_logger()

# Type alias for event listeners
EventListener = Callable[[dict], Awaitable[None]]

# Channel carrying cross-file validation events
DIAGNOSTICS_CHANNEL = "diagnostics"


class EventBus:
    """In-memory pub/sub keyed by channel name.

    Each channel can have many listeners (several editor windows, etc.).
    Events are fire-and-forget — if a listener fails, it's removed.
    """

    def __init__(self, max_history: Optional[int] = None):
        self._listeners: Dict[str, Set[EventListener]] = defaultdict(set)
        self._event_history: Dict[str, list] = defaultdict(list)
        self._max_history = max_history or get_settings().EVENT_HISTORY_SIZE

    def subscribe(self, channel: str, listener: EventListener) -> None:
        """Subscribe a listener to a channel."""
        self._listeners[channel].add(listener)
        logger.debug("event_bus_subscribe", channel=channel, total_listeners=len(self._listeners[channel]))

    def unsubscribe(self, channel: str, listener: EventListener) -> None:
        """Unsubscribe a listener from a channel."""
        listeners = self._listeners.get(channel)
        if listeners is None:
            return
        listeners.discard(listener)
        if not listeners:
            del self._listeners[channel]

    def listener_count(self, channel: str) -> int:
        return len(self._listeners.get(channel, ()))

    async def publish(self, channel: str, event: dict) -> None:
        """Publish an event to every listener of a channel."""
        # Store in history for late joiners
        history = self._event_history[channel]
        history.append(event)
        if len(history) > self._max_history:
            self._event_history[channel] = history[-self._max_history:]

        dead_listeners = set()
        for listener in list(self._listeners.get(channel, set())):
            try:
                await listener(event)
            except Exception as e:
                logger.warning("event_listener_failed", channel=channel, error=str(e))
                dead_listeners.add(listener)

        for dead in dead_listeners:
            self.unsubscribe(channel, dead)

    def get_history(self, channel: str) -> list[dict]:
        """Get event history for a channel (for reconnecting clients)."""
        return list(self._event_history.get(channel, []))

    def cleanup(self, channel: str) -> None:
        """Drop all listeners and history of a channel."""
        self._listeners.pop(channel, None)
        self._event_history.pop(channel, None)


# Singleton
event_bus = EventBus()
