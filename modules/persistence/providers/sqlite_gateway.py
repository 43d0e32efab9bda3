"""SQLite-based persistence gateway for local and offline use."""

import json
import logging
import sqlite3
import threading
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional

from core.bus.event_bus import EventBus
from core.interfaces.persistence import (
    COLLECTIONS,
    IPersistenceGateway,
    StorageError,
    utc_now_iso,
)
from modules.persistence.providers.filesystem_store import FilesystemObjectStore

logger = logging.getLogger(__name__)


class SQLiteGateway(IPersistenceGateway):
    """Persistence gateway backed by a local SQLite file.

    Each collection is a table holding one JSON document per row, so the
    gateway stays schema-agnostic like the hosted backend it stands in for.
    Binary objects go to a FilesystemObjectStore next to the database.
    """

    def __init__(self, event_bus: Optional[EventBus] = None):
        """Initialize the SQLite gateway."""
        super().__init__(event_bus)
        self._config = {}
        self._initialized = False
        self._db_path = None
        self._conn = None
        self._lock = threading.Lock()
        self._objects = FilesystemObjectStore()

    def initialize(self, config: dict) -> bool:
        """Initialize the gateway with configuration.

        Args:
            config: Dictionary containing configuration:
                - base_path: str, base directory for database and objects
                - database_filename: str, database filename (default: 'cropai.db')
                - objects_subdir: str, object store subdirectory (default: 'objects')

        Returns:
            True if initialization successful, False otherwise
        """
        try:
            self._config = config

            base_path = Path(config.get('base_path', '/tmp/cropai'))
            base_path.mkdir(parents=True, exist_ok=True)
            self._db_path = base_path / config.get('database_filename', 'cropai.db')

            self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._create_tables()

            if not self._objects.initialize(config):
                return False

            self._initialized = True
            logger.info(f"SQLite gateway initialized at: {self._db_path}")
            return True

        except Exception as e:
            logger.error(f"Failed to initialize SQLite gateway: {e}")
            return False

    def _create_tables(self) -> None:
        """Create one document table per collection."""
        with self._lock:
            cursor = self._conn.cursor()
            for collection in COLLECTIONS:
                cursor.execute(f"""
                    CREATE TABLE IF NOT EXISTS {collection} (
                        id TEXT PRIMARY KEY,
                        data TEXT NOT NULL,
                        created_at TEXT NOT NULL,
                        updated_at TEXT NOT NULL
                    )
                """)
            self._conn.commit()

    def _check(self, collection: str) -> None:
        if not self._initialized:
            raise StorageError("Gateway not initialized")
        if collection not in COLLECTIONS:
            raise StorageError(f"Unknown collection: {collection}")

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> Dict[str, Any]:
        record = json.loads(row['data'])
        record['id'] = row['id']
        record['created_at'] = row['created_at']
        record['updated_at'] = row['updated_at']
        return record

    def insert(self, collection: str, record: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a record and return the stored row."""
        self._check(collection)

        try:
            record_id = str(record.get('id') or uuid.uuid4())
            now = utc_now_iso()
            data = {k: v for k, v in record.items() if k not in ('id', 'created_at', 'updated_at')}

            with self._lock:
                self._conn.execute(
                    f"INSERT INTO {collection} (id, data, created_at, updated_at) VALUES (?, ?, ?, ?)",
                    (record_id, json.dumps(data), now, now)
                )
                self._conn.commit()

        except Exception as e:
            logger.error(f"Failed to insert into {collection}: {e}")
            raise StorageError(f"Failed to insert into {collection}: {e}")

        stored = dict(data, id=record_id, created_at=now, updated_at=now)
        logger.debug(f"Inserted {collection} record: {record_id}")
        self._notify_change(collection, "insert", stored)
        return stored

    def update(self, collection: str, record_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
        """Merge patch into an existing record and return the updated row."""
        self._check(collection)

        try:
            with self._lock:
                row = self._conn.execute(
                    f"SELECT * FROM {collection} WHERE id = ?", (record_id,)
                ).fetchone()
                if row is None:
                    raise StorageError(f"{collection} record not found: {record_id}")

                data = json.loads(row['data'])
                data.update({k: v for k, v in patch.items() if k not in ('id', 'created_at', 'updated_at')})
                now = patch.get('updated_at') or utc_now_iso()

                self._conn.execute(
                    f"UPDATE {collection} SET data = ?, updated_at = ? WHERE id = ?",
                    (json.dumps(data), now, record_id)
                )
                self._conn.commit()
                created_at = row['created_at']

        except StorageError:
            raise
        except Exception as e:
            logger.error(f"Failed to update {collection}/{record_id}: {e}")
            raise StorageError(f"Failed to update {collection}/{record_id}: {e}")

        updated = dict(data, id=record_id, created_at=created_at, updated_at=now)
        logger.debug(f"Updated {collection} record: {record_id}")
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
        self._check(collection)
        filters = dict(filters or {})

        try:
            with self._lock:
                if 'id' in filters:
                    rows = self._conn.execute(
                        f"SELECT * FROM {collection} WHERE id = ?", (str(filters.pop('id')),)
                    ).fetchall()
                else:
                    rows = self._conn.execute(
                        f"SELECT * FROM {collection} ORDER BY rowid"
                    ).fetchall()
        except Exception as e:
            logger.error(f"Failed to select from {collection}: {e}")
            raise StorageError(f"Failed to select from {collection}: {e}")

        records = [self._row_to_record(row) for row in rows]
        records = [
            r for r in records
            if all(r.get(field) == value for field, value in filters.items())
        ]

        if order_by:
            # Rows missing the field sort last regardless of direction
            present = [r for r in records if r.get(order_by) is not None]
            missing = [r for r in records if r.get(order_by) is None]
            present.sort(key=lambda r: r[order_by], reverse=not ascending)
            records = present + missing

        return records

    def upload_object(self, bucket: str, path: str, data: bytes, content_type: str) -> str:
        """Store a binary object on the local filesystem."""
        if not self._initialized:
            raise StorageError("Gateway not initialized")
        return self._objects.put(bucket, path, data, content_type)

    def cleanup(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
        self._objects.cleanup()
        self._initialized = False
        logger.debug("SQLite gateway cleaned up")

    @property
    def name(self) -> str:
        """Gateway name."""
        return "sqlite"
