"""Data models for the Personal Memory MCP server."""

import datetime
import threading
from dataclasses import dataclass
from datetime import timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, Field


def utc_now() -> datetime.datetime:
    """Get current UTC time as timezone-aware datetime."""
    return datetime.datetime.now(timezone.utc)


def current_timestamp() -> str:
    """Return the current UTC time as an ISO 8601 string.

    Millisecond precision with a ``Z`` suffix, e.g. ``2024-05-01T09:30:00.123Z``.
    """
    return utc_now().isoformat(timespec="milliseconds").replace("+00:00", "Z")


_EPOCH = datetime.datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MICROSECOND = datetime.timedelta(microseconds=1)

# Per-process sequence for ids generated within the same microsecond
_id_lock = threading.Lock()
_last_timestamp = 0
_sequence = 0


def generate_id() -> str:
    """Generate a timestamp-based note ID that is unique within this process.

    Returns:
        A string in format "YYYYMMDDTHHMMSSffffff-nnnn" where ffffff is the
        microsecond component and nnnn a sequence number that only advances
        when several IDs are requested in the same microsecond.
    """
    global _last_timestamp, _sequence

    with _id_lock:
        now = utc_now()
        current_timestamp_us = (now - _EPOCH) // _ONE_MICROSECOND

        if current_timestamp_us <= _last_timestamp:
            # Same microsecond (or clock went backwards): keep the old base
            _sequence += 1
            if _sequence >= 10_000:
                # Sequence exhausted, borrow the next microsecond
                _last_timestamp += 1
                _sequence = 0
            now = _EPOCH + _last_timestamp * _ONE_MICROSECOND
        else:
            _last_timestamp = current_timestamp_us
            _sequence = 0

        return f"{now.strftime('%Y%m%dT%H%M%S')}{now.microsecond:06d}-{_sequence:04d}"


class StorageType(str, Enum):
    """Available note storage backends."""

    FILE = "file"  # JSON document on disk
    MEMORY = "memory"  # Process memory only, lost on exit
    DATABASE = "database"  # Embedded SQLite table


class Note(BaseModel):
    """A stored note.

    Notes are immutable once created. ``id`` and ``timestamp`` are assigned
    by the storage backend and must be present in every stored record.
    ``tags`` distinguishes "no tags" (``None``) from an explicitly empty tag
    list (``()``).
    """

    id: str = Field(..., description="Unique ID of the note")
    text: str = Field(..., description="Body of the note")
    timestamp: str = Field(..., description="ISO 8601 creation time (not validated)")
    tags: Optional[Tuple[str, ...]] = Field(
        default=None, description="Optional ordered tags"
    )

    model_config = {"frozen": True, "extra": "ignore"}

    def to_record(self) -> Dict[str, Any]:
        """Serialize to a JSON-ready dict, omitting ``tags`` when absent."""
        return self.model_dump(mode="json", exclude_none=True)


@dataclass(frozen=True)
class InitResult:
    """Outcome of a backend's ``initialize()`` call.

    Attributes:
        backend: Name of the backend that was initialized.
        loaded: Number of notes adopted from the durable store.
        cause: Why the backend started empty, or None if loading succeeded.
        backup_path: Where a corrupt store was copied before starting empty.
    """

    backend: str
    loaded: int = 0
    cause: Optional[str] = None
    backup_path: Optional[str] = None

    @property
    def started_empty(self) -> bool:
        """True when the durable store could not be used."""
        return self.cause is not None

    def describe(self) -> str:
        """Human-readable one-line summary for logs."""
        if self.cause is None:
            return f"{self.backend} storage loaded {self.loaded} notes"
        return f"{self.backend} storage started empty ({self.cause})"
