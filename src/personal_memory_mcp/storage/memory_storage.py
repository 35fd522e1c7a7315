"""Process-local note storage with no persistence."""
import logging
from typing import List, Optional, Sequence

from personal_memory_mcp.models.schema import InitResult, Note
from personal_memory_mcp.storage.base import NoteStorage

logger = logging.getLogger(__name__)


class MemoryNoteStorage(NoteStorage):
    """Keeps notes in process memory only.

    Everything is lost when the process exits; use it for throwaway
    sessions and tests.
    """

    name = "memory"

    def initialize(self) -> InitResult:
        result = InitResult(backend=self.name, loaded=len(self._notes))
        logger.info(result.describe())
        return result

    def add_note(
        self,
        text: str,
        timestamp: Optional[str] = None,
        tags: Optional[Sequence[str]] = None,
    ) -> Note:
        note = self._build_note(text, timestamp, tags)
        self._notes[note.id] = note
        return note

    def search_notes(self, query: str) -> List[Note]:
        return self._filter(query)

    def get_all_notes(self) -> List[Note]:
        return self._snapshot()

    def delete_note(self, note_id: str) -> bool:
        return self._notes.pop(note_id, None) is not None
