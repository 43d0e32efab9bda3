"""Event bus for publish-subscribe communication between modules."""

import logging
import threading
from typing import Callable, Dict, List
from core.interfaces.events import Event, EventType

logger = logging.getLogger(__name__)


class EventBus:
    """Singleton event bus for pub/sub communication.

    Camera sessions, the upload service and the persistence gateways publish
    here; the web layer and the team roster listen. Handlers are called
    synchronously on the publishing thread, and a failing handler never
    affects the publisher or the other handlers.

    Example:
        bus = EventBus()
        bus.subscribe(EventType.IMAGE_CAPTURED, my_handler)
        bus.publish(Event(EventType.IMAGE_CAPTURED, data={"image_id": "123"}))
    """

    _instance = None

    def __new__(cls):
        """Ensure only one instance exists (singleton pattern)."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        """Initialize the event bus."""
        if self._initialized:
            return

        self._subscribers: Dict[EventType, List[Callable]] = {}
        self._event_history: List[Event] = []
        self._max_history = 1000
        self._lock = threading.Lock()
        self._initialized = True

        logger.info("EventBus initialized")

    @classmethod
    def reset(cls) -> None:
        """Drop the singleton instance (mainly for testing)."""
        cls._instance = None

    def subscribe(self, event_type: EventType, handler: Callable[[Event], None]) -> None:
        """Subscribe a handler to an event type.

        Args:
            event_type: Type of event to subscribe to
            handler: Function to call when event is published.
                     Should accept Event as parameter.
        """
        with self._lock:
            handlers = self._subscribers.setdefault(event_type, [])
            if handler not in handlers:
                handlers.append(handler)
                logger.debug(f"Subscribed handler to {event_type.value}")

    def unsubscribe(self, event_type: EventType, handler: Callable[[Event], None]) -> None:
        """Unsubscribe a handler from an event type.

        Args:
            event_type: Type of event to unsubscribe from
            handler: Handler function to remove
        """
        with self._lock:
            handlers = self._subscribers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)
                logger.debug(f"Unsubscribed handler from {event_type.value}")

    def publish(self, event: Event) -> None:
        """Publish an event to all subscribers.

        Args:
            event: Event to publish
        """
        with self._lock:
            self._event_history.append(event)
            if len(self._event_history) > self._max_history:
                self._event_history.pop(0)
            handlers = list(self._subscribers.get(event.type, []))

        logger.debug(f"Publishing event: {event.type.value} from {event.source}")

        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(
                    f"Error in event handler for {event.type.value}: {e}",
                    exc_info=True
                )

    def get_history(self, event_type: EventType = None, limit: int = 100) -> List[Event]:
        """Get recent event history.

        Args:
            event_type: Filter by event type (None = all events)
            limit: Maximum number of events to return

        Returns:
            List of events, most recent first
        """
        events = self._event_history
        if event_type:
            events = [e for e in events if e.type == event_type]
        return list(reversed(events[-limit:]))

    def clear_history(self) -> None:
        """Clear event history."""
        self._event_history.clear()
        logger.debug("Event history cleared")

    def subscriber_count(self, event_type: EventType) -> int:
        """Get number of subscribers for an event type."""
        return len(self._subscribers.get(event_type, []))
