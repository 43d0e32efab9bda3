"""Supabase persistence gateway for the hosted backend."""

import logging
from typing import Any, Dict, List, Optional

from supabase import Client, create_client

from core.bus.event_bus import EventBus
from core.interfaces.persistence import (
    COLLECTIONS,
    IPersistenceGateway,
    StorageError,
    utc_now_iso,
)

logger = logging.getLogger(__name__)


class SupabaseGateway(IPersistenceGateway):
    """Gateway to Supabase tables and storage buckets.

    Rows are written through PostgREST, images through Supabase Storage;
    the stored object's public URL is what ends up in `file_path`.
    """

    def __init__(self, event_bus: Optional[EventBus] = None, client: Optional[Client] = None):
        """Initialize the Supabase gateway.

        Args:
            event_bus: Event bus for change notifications
            client: Pre-built Supabase client (None = build from config)
        """
        super().__init__(event_bus)
        self._client = client
        self._initialized = False

    def initialize(self, config: dict) -> bool:
        """Initialize the gateway with configuration.

        Args:
            config: Dictionary containing configuration:
                - supabase_url: str, project URL
                - supabase_anon_key: str, anon/public API key

        Returns:
            True if initialization successful, False otherwise
        """
        if self._client is None:
            url = (config.get("supabase_url") or "").strip()
            key = (config.get("supabase_anon_key") or "").strip()

            if not url or not key:
                logger.warning("Supabase gateway selected but supabase_url or supabase_anon_key is missing")
                return False

            try:
                self._client = create_client(url, key)
            except Exception as e:
                logger.error(f"Failed to create Supabase client: {e}")
                return False

        self._initialized = True
        logger.info("Supabase gateway initialized")
        return True

    def _table(self, collection: str):
        if not self._initialized:
            raise StorageError("Gateway not initialized")
        if collection not in COLLECTIONS:
            raise StorageError(f"Unknown collection: {collection}")
        return self._client.table(collection)

    def insert(self, collection: str, record: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a record and return the stored row."""
        table = self._table(collection)

        try:
            response = table.insert(record).execute()
        except Exception as e:
            logger.error(f"Failed to insert into {collection}: {e}")
            raise StorageError(f"Failed to insert into {collection}: {e}")

        if not response.data:
            raise StorageError(f"Insert into {collection} returned no row")

        stored = response.data[0]
        logger.debug(f"Inserted {collection} record: {stored.get('id')}")
        self._notify_change(collection, "insert", stored)
        return stored

    def update(self, collection: str, record_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
        """Apply a partial update and return the updated row."""
        table = self._table(collection)
        patch = dict(patch)
        patch.setdefault("updated_at", utc_now_iso())

        try:
            response = table.update(patch).eq("id", record_id).execute()
        except Exception as e:
            logger.error(f"Failed to update {collection}/{record_id}: {e}")
            raise StorageError(f"Failed to update {collection}/{record_id}: {e}")

        if not response.data:
            raise StorageError(f"{collection} record not found: {record_id}")

        updated = response.data[0]
        self._notify_change(collection, "update", updated)
        return updated

    def select(
        self,
        collection: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        ascending: bool = True,
    ) -> List[Dict[str, Any]]:
        """Select records matching all equality filters."""
        query = self._table(collection).select("*")

        for field, value in (filters or {}).items():
            query = query.eq(field, value)
        if order_by:
            query = query.order(order_by, desc=not ascending)

        try:
            response = query.execute()
        except Exception as e:
            logger.error(f"Failed to select from {collection}: {e}")
            raise StorageError(f"Failed to select from {collection}: {e}")

        return list(response.data or [])

    def upload_object(self, bucket: str, path: str, data: bytes, content_type: str) -> str:
        """Upload an object to a storage bucket and return its public URL."""
        if not self._initialized:
            raise StorageError("Gateway not initialized")

        try:
            bucket_api = self._client.storage.from_(bucket)
            bucket_api.upload(path, data, {"content-type": content_type})
            url = bucket_api.get_public_url(path)
        except Exception as e:
            logger.error(f"Failed to upload object {bucket}/{path}: {e}")
            raise StorageError(f"Failed to upload object {bucket}/{path}: {e}")

        logger.debug(f"Uploaded object {bucket}/{path} ({len(data)} bytes)")
        return url

    def cleanup(self) -> None:
        """Clean up resources."""
        self._initialized = False

    @property
    def name(self) -> str:
        """Gateway name."""
        return "supabase"
