"""Base storage contract shared by every note backend."""
import logging
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional, Sequence

from personal_memory_mcp.models.schema import InitResult, Note, current_timestamp, generate_id
from personal_memory_mcp.utils import filter_notes

logger = logging.getLogger(__name__)


class NoteStorage(ABC):
    """Contract satisfied by the memory, file and database backends.

    Each instance owns its note collection: an insertion-ordered mapping
    of note id to Note. Normal operations never raise to the caller;
    persistence problems are logged and the in-memory collection stays
    authoritative for the rest of the process lifetime.
    """

    name: str = "abstract"

    def __init__(self) -> None:
        self._notes: Dict[str, Note] = {}

    @abstractmethod
    def initialize(self) -> InitResult:
        """Prepare durable resources and load existing notes. Never raises."""

    @abstractmethod
    def add_note(
        self,
        text: str,
        timestamp: Optional[str] = None,
        tags: Optional[Sequence[str]] = None,
    ) -> Note:
        """Create, store and return a new note."""

    @abstractmethod
    def search_notes(self, query: str) -> List[Note]:
        """Return notes whose text or tags contain ``query``, ignoring case."""

    @abstractmethod
    def get_all_notes(self) -> List[Note]:
        """Return every note in insertion order as a new list."""

    @abstractmethod
    def delete_note(self, note_id: str) -> bool:
        """Delete a note by ID. Returns False if no such note exists."""

    def close(self) -> None:
        """Release any resources held by the backend."""

    def __len__(self) -> int:
        return len(self._notes)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(notes={len(self._notes)})>"

    # Helpers for subclasses

    def _build_note(
        self,
        text: str,
        timestamp: Optional[str] = None,
        tags: Optional[Sequence[str]] = None,
    ) -> Note:
        """Build a note whose ID is not already held by this backend."""
        note_id = generate_id()
        while note_id in self._notes:
            note_id = generate_id()
        return Note(
            id=note_id,
            text=text,
            timestamp=timestamp or current_timestamp(),
            tags=tuple(tags) if tags is not None else None,
        )

    def _replace_all(self, notes: Iterable[Note]) -> int:
        """Adopt ``notes`` as the whole collection. Returns the new size."""
        collection: Dict[str, Note] = {}
        for note in notes:
            if note.id in collection:
                logger.warning(
                    f"{self.name} storage: duplicate note ID {note.id}, keeping the later record"
                )
            collection[note.id] = note
        self._notes = collection
        return len(self._notes)

    def _filter(self, query: str) -> List[Note]:
        return filter_notes(self._notes.values(), query)

    def _snapshot(self) -> List[Note]:
        return list(self._notes.values())
