"""Interface for persistence gateways."""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from core.bus.event_bus import EventBus
from core.interfaces.events import Event, EventType

logger = logging.getLogger(__name__)

# Collections used by the application
IMAGES = "images"
TEAM_MEMBERS = "team_members"
CONTACT_MESSAGES = "contact_messages"
ANALYSIS_RESULTS = "analysis_results"

COLLECTIONS = (IMAGES, TEAM_MEMBERS, CONTACT_MESSAGES, ANALYSIS_RESULTS)

ChangeHandler = Callable[[Dict[str, Any]], None]


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


class Subscription:
    """Handle returned by IPersistenceGateway.subscribe()."""

    def __init__(self, event_bus: EventBus, collection: str, on_change: ChangeHandler):
        self.collection = collection
        self._event_bus = event_bus
        self._on_change = on_change
        self._active = True
        event_bus.subscribe(EventType.RECORD_CHANGED, self._dispatch)

    def _dispatch(self, event: Event) -> None:
        if self._active and event.data.get("collection") == self.collection:
            self._on_change(event.data)

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        """Stop receiving change notifications. Safe to call twice."""
        if not self._active:
            return
        self._active = False
        self._event_bus.unsubscribe(EventType.RECORD_CHANGED, self._dispatch)
        logger.debug(f"Unsubscribed from {self.collection} changes")


class IPersistenceGateway(ABC):
    """Interface for persistence gateways.

    A gateway is a thin pass-through to named remote collections plus an
    object store for binary uploads. Every write made through a gateway is
    announced on the event bus as a RECORD_CHANGED event, which is what
    subscribe() listens to.
    """

    def __init__(self, event_bus: Optional[EventBus] = None):
        self._event_bus = event_bus or EventBus()

    @abstractmethod
    def initialize(self, config: dict) -> bool:
        """Initialize the gateway with the persistence configuration.

        Returns:
            True if initialization successful, False otherwise
        """
        pass

    @abstractmethod
    def insert(self, collection: str, record: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a record.

        Args:
            collection: Collection name
            record: Field values (without id)

        Returns:
            The stored row, including the assigned "id", "created_at"
            and "updated_at"

        Raises:
            StorageError: If the insert fails
        """
        pass

    @abstractmethod
    def update(self, collection: str, record_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
        """Apply a partial update to one record.

        Returns:
            The updated row

        Raises:
            StorageError: If the record does not exist or the update fails
        """
        pass

    @abstractmethod
    def select(
        self,
        collection: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        ascending: bool = True,
    ) -> List[Dict[str, Any]]:
        """Select records matching all equality filters.

        Args:
            collection: Collection name
            filters: Field -> required value
            order_by: Field to sort on (None = insertion order)
            ascending: Sort direction

        Raises:
            StorageError: If the query fails
        """
        pass

    @abstractmethod
    def upload_object(self, bucket: str, path: str, data: bytes, content_type: str) -> str:
        """Store a binary object.

        Returns:
            Retrievable URL of the stored object

        Raises:
            StorageError: If the upload fails
        """
        pass

    @abstractmethod
    def cleanup(self) -> None:
        """Clean up resources used by the gateway."""
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Gateway name (e.g., 'sqlite', 'supabase')."""
        pass

    def get(self, collection: str, record_id: str) -> Optional[Dict[str, Any]]:
        """Fetch a single record by id, or None if missing."""
        rows = self.select(collection, filters={"id": record_id})
        return rows[0] if rows else None

    def subscribe(self, collection: str, on_change: ChangeHandler) -> Subscription:
        """Receive a notification for every change to a collection.

        Args:
            collection: Collection to watch
            on_change: Called with {"collection", "action", "record"}

        Returns:
            Subscription handle; call unsubscribe() to stop
        """
        logger.debug(f"Subscribing to {collection} changes via {self.name}")
        return Subscription(self._event_bus, collection, on_change)

    def _notify_change(self, collection: str, action: str, record: Dict[str, Any]) -> None:
        """Publish a RECORD_CHANGED event for a write."""
        self._event_bus.publish(Event(
            type=EventType.RECORD_CHANGED,
            data={
                "collection": collection,
                "action": action,
                "record": record,
            },
            source=f"gateway.{self.name}"
        ))


class StorageError(Exception):
    """Exception raised when storage operations fail."""
    pass


class StatusUpdateError(StorageError):
    """Best-effort analysis status mirror could not be written."""
    pass
