"""Storage facade: picks and builds the note backend once, at startup."""
import logging
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel

from personal_memory_mcp.config import config
from personal_memory_mcp.exceptions import ConfigurationError, ErrorCode, StorageError
from personal_memory_mcp.models.schema import StorageType
from personal_memory_mcp.storage.base import NoteStorage
from personal_memory_mcp.storage.database_storage import DatabaseNoteStorage
from personal_memory_mcp.storage.file_storage import FileNoteStorage
from personal_memory_mcp.storage.memory_storage import MemoryNoteStorage

logger = logging.getLogger(__name__)


class StorageOptions(BaseModel):
    """Backend-specific locations. Unset paths fall back to the global config."""

    file_path: Optional[Path] = None
    db_path: Optional[Path] = None

    def resolve_file_path(self) -> Path:
        if self.file_path is not None:
            return config.get_absolute_path(self.file_path)
        return config.get_notes_file()

    def resolve_db_path(self) -> Path:
        if self.db_path is not None:
            return config.get_absolute_path(self.db_path)
        return config.get_database_path()


def _coerce_storage_type(storage_type: Union[StorageType, str]) -> StorageType:
    if isinstance(storage_type, str) and not isinstance(storage_type, StorageType):
        storage_type = storage_type.strip().lower()
    try:
        return StorageType(storage_type)
    except ValueError:
        valid = ", ".join(t.value for t in StorageType)
        raise ConfigurationError(
            f"Unknown storage type: {storage_type!r}. Valid types are: {valid}",
            config_key="storage_type",
            code=ErrorCode.INVALID_STORAGE_TYPE,
        ) from None


def create_note_storage(
    storage_type: Union[StorageType, str] = StorageType.DATABASE,
    options: Optional[StorageOptions] = None,
) -> NoteStorage:
    """Build exactly one note storage backend.

    The memory and file backends always construct. If the database backend
    cannot load its engine, the file backend is built instead; this decision
    is made once and never retried.

    Args:
        storage_type: Which backend to build (default: database).
        options: Optional path overrides.

    Returns:
        An uninitialized backend; call ``initialize()`` before use.

    Raises:
        ConfigurationError: If ``storage_type`` is not a known backend.
    """
    kind = _coerce_storage_type(storage_type)
    options = options or StorageOptions()

    if kind is StorageType.MEMORY:
        logger.info("Using in-memory note storage (notes are lost on exit)")
        return MemoryNoteStorage()

    if kind is StorageType.DATABASE:
        db_path = options.resolve_db_path()
        try:
            storage = DatabaseNoteStorage(db_path)
        except StorageError as e:
            logger.warning(
                f"Database storage unavailable ({e}); falling back to file storage"
            )
        else:
            logger.info(f"Using SQLite note storage: {db_path}")
            return storage

    file_path = options.resolve_file_path()
    logger.info(f"Using JSON file note storage: {file_path}")
    return FileNoteStorage(file_path)
