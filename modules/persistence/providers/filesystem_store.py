"""Filesystem object store used by the local persistence gateway."""

import logging
from pathlib import Path
from typing import Optional

from core.interfaces.persistence import StorageError

logger = logging.getLogger(__name__)


class FilesystemObjectStore:
    """Stores uploaded objects as files, organized by bucket.

    Layout: <base_path>/<objects_subdir>/<bucket>/<path>
    """

    def __init__(self):
        """Initialize the object store."""
        self._initialized = False
        self._objects_path: Optional[Path] = None

    def initialize(self, config: dict) -> bool:
        """Initialize the store.

        Args:
            config: Dictionary containing configuration:
                - base_path: str, base directory for storage
                - objects_subdir: str, subdirectory for objects (default: 'objects')

        Returns:
            True if initialization successful, False otherwise
        """
        try:
            base_path = Path(config.get('base_path', '/tmp/cropai'))
            self._objects_path = base_path / config.get('objects_subdir', 'objects')
            self._objects_path.mkdir(parents=True, exist_ok=True)

            self._initialized = True
            logger.info(f"Filesystem object store initialized at: {self._objects_path}")
            return True

        except Exception as e:
            logger.error(f"Failed to initialize filesystem object store: {e}")
            return False

    def _resolve(self, bucket: str, path: str) -> Path:
        root = (self._objects_path / bucket).resolve()
        target = (root / path).resolve()
        if root not in target.parents:
            raise StorageError(f"Object path escapes bucket: {path}")
        return target

    def put(self, bucket: str, path: str, data: bytes, content_type: str) -> str:
        """Write an object and return its file:// URL.

        Raises:
            StorageError: If the store is not initialized or the write fails
        """
        if not self._initialized:
            raise StorageError("Object store not initialized")
        if not data:
            raise StorageError("Refusing to store an empty object")

        try:
            target = self._resolve(bucket, path)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except StorageError:
            raise
        except Exception as e:
            logger.error(f"Failed to store object {bucket}/{path}: {e}")
            raise StorageError(f"Failed to store object {bucket}/{path}: {e}")

        logger.debug(f"Stored object {bucket}/{path} ({len(data)} bytes, {content_type})")
        return target.as_uri()

    def cleanup(self) -> None:
        """Clean up resources."""
        self._initialized = False
