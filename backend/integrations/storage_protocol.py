"""Raw statement file storage.

Uploaded statements live in storage only until their import is processed;
the import pipeline deletes the file once candidates are persisted.
"""

import logging
import uuid
from pathlib import Path
from typing import Protocol

from config import settings
from integrations.exceptions import StorageError, StorageNotFoundError

logger = logging.getLogger(__name__)


class StatementStorage(Protocol):
    """Protocol for statement file storage backends."""

    def save(self, user_id: str, filename: str, content: bytes) -> str:
        """Store ``content`` and return the storage path."""
        ...

    def download(self, path: str) -> bytes:
        """Return the bytes stored at ``path``.

        Raises:
            StorageNotFoundError: If nothing is stored at ``path``.
            StorageError: On any other storage failure.
        """
        ...

    def delete(self, path: str) -> None:
        """Remove the file at ``path``. Missing files are not an error."""
        ...


class LocalStatementStorage:
    """Filesystem-backed storage rooted at ``STATEMENT_UPLOAD_DIR``."""

    def __init__(self, root: str | Path | None = None):
        self.root = Path(root or settings.STATEMENT_UPLOAD_DIR).resolve()

    def _resolve(self, path: str) -> Path:
        """Map a storage path to a file under root, rejecting traversal."""
        full = (self.root / path).resolve()
        if full != self.root and self.root not in full.parents:
            raise StorageError(f"Path escapes storage root: {path}", path=path)
        return full

    def save(self, user_id: str, filename: str, content: bytes) -> str:
        safe_name = Path(filename).name or "statement"
        path = f"{user_id}/{uuid.uuid4().hex}_{safe_name}"
        full = self._resolve(path)
        try:
            full.parent.mkdir(parents=True, exist_ok=True)
            full.write_bytes(content)
        except OSError as e:
            raise StorageError(f"Failed to store file: {e}", path=path) from e
        logger.info("Stored statement upload %s (%d bytes)", path, len(content))
        return path

    def download(self, path: str) -> bytes:
        full = self._resolve(path)
        if not full.is_file():
            raise StorageNotFoundError(f"Failed to download file: {path}", path=path)
        try:
            return full.read_bytes()
        except OSError as e:
            raise StorageError(f"Failed to download file: {e}", path=path) from e

    def delete(self, path: str) -> None:
        full = self._resolve(path)
        try:
            full.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to delete file: {e}", path=path) from e
        logger.info("Deleted statement upload %s", path)
