"""Blob storage for schedule attachments."""

import logging
import re
from pathlib import Path, PurePosixPath
from uuid import uuid4

from scoreboard.core.config import settings
from scoreboard.core.exceptions import NotFoundError, StorageError

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^\w.\-]+", re.UNICODE)


def attachment_path(schedule_id: int, file_name: str) -> str:
    """Build a unique storage path for an attachment of a schedule."""
    safe_name = _UNSAFE_CHARS.sub("_", PurePosixPath(file_name).name).strip("._") or "file"
    return f"schedules/{schedule_id}/{uuid4().hex}_{safe_name}"


class FileStorage:
    """Filesystem-backed blob store addressed by relative POSIX paths."""

    def __init__(self, root: str | Path | None = None):
        self.root = Path(root or settings.STORAGE_DIR).resolve()

    def _resolve(self, path: str) -> Path:
        relative = PurePosixPath(path)
        if relative.is_absolute() or ".." in relative.parts or not relative.parts:
            raise StorageError("Invalid storage path", details={"path": path})
        return self.root.joinpath(*relative.parts)

    def save(self, path: str, data: bytes) -> None:
        """Upload bytes to ``path``."""
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            logger.error(f"Failed to store {path}: {e}")
            raise StorageError(f"Failed to store file: {path}")
        logger.debug(f"Stored {len(data)} bytes at {path}")

    def read(self, path: str) -> bytes:
        """Download the bytes stored at ``path``."""
        target = self._resolve(path)
        if not target.is_file():
            raise NotFoundError("File", path)
        try:
            return target.read_bytes()
        except OSError as e:
            logger.error(f"Failed to read {path}: {e}")
            raise StorageError(f"Failed to read file: {path}")

    def delete(self, path: str) -> bool:
        """Delete ``path``; returns False if it was already gone."""
        target = self._resolve(path)
        try:
            target.unlink()
        except FileNotFoundError:
            logger.warning(f"File already missing from storage: {path}")
            return False
        except OSError as e:
            logger.error(f"Failed to delete {path}: {e}")
            raise StorageError(f"Failed to delete file: {path}")
        return True

    def exists(self, path: str) -> bool:
        return self._resolve(path).is_file()


def get_storage() -> FileStorage:
    """Storage dependency."""
    return FileStorage()
