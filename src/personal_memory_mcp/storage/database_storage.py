"""SQLite note storage with an in-memory read cache.

Inserts and deletes are synchronous, so a note is durable before
``add_note`` returns. Reads rescan the whole table first so results
always reflect the database, even if another process changed it.
"""
import logging
from pathlib import Path
from typing import List, Optional, Sequence, Union

from sqlalchemy import delete, literal_column, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from personal_memory_mcp.exceptions import ErrorCode, StorageError
from personal_memory_mcp.models.db_models import DBNote, create_db_engine, init_db
from personal_memory_mcp.models.schema import InitResult, Note
from personal_memory_mcp.storage.base import NoteStorage
from personal_memory_mcp.utils import format_error

logger = logging.getLogger(__name__)


class DatabaseNoteStorage(NoteStorage):
    """Stores notes in a single SQLite table through SQLAlchemy.

    If the database cannot be opened during ``initialize()``, the backend
    keeps working in memory only for the rest of the process.
    """

    name = "database"

    def __init__(self, db_path: Union[str, Path]):
        """Initialize the database storage.

        Args:
            db_path: Location of the SQLite database file.

        Raises:
            StorageError: If the SQLite engine cannot be loaded at all.
        """
        super().__init__()
        self.db_path = Path(db_path)
        try:
            self.engine = create_db_engine(self.db_path)
        except (ImportError, SQLAlchemyError) as e:
            raise StorageError(
                "SQLite database engine is not available",
                operation="create_engine",
                path=str(self.db_path),
                code=ErrorCode.STORAGE_CONNECTION_FAILED,
                original_error=e,
            ) from e
        self.session_factory = sessionmaker(bind=self.engine)
        self._db_available = False

    @property
    def db_available(self) -> bool:
        """False when the backend fell back to memory-only operation."""
        return self._db_available

    def initialize(self) -> InitResult:
        """Create the table if needed and load every row into the cache."""
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            init_db(self.engine)
            notes = self._load_rows()
        except Exception as e:
            self._db_available = False
            self._notes = {}
            result = InitResult(
                backend=self.name,
                cause=f"database unavailable, keeping notes in memory only: {format_error(e)}",
            )
            logger.warning(result.describe())
            return result

        self._db_available = True
        result = InitResult(backend=self.name, loaded=self._replace_all(notes))
        logger.info(f"{result.describe()} from {self.db_path}")
        return result

    def add_note(
        self,
        text: str,
        timestamp: Optional[str] = None,
        tags: Optional[Sequence[str]] = None,
    ) -> Note:
        note = self._build_note(text, timestamp, tags)
        if not self._db_available:
            self._notes[note.id] = note
            return note

        try:
            with self.session_factory() as session:
                session.add(DBNote.from_note(note))
                session.commit()
        except SQLAlchemyError as e:
            # Returned to the caller but never cached
            logger.error(f"Failed to insert note {note.id}: {format_error(e)}")
            return note

        self._notes[note.id] = note
        return note

    def search_notes(self, query: str) -> List[Note]:
        self._refresh()
        return self._filter(query)

    def get_all_notes(self) -> List[Note]:
        self._refresh()
        return self._snapshot()

    def delete_note(self, note_id: str) -> bool:
        if not self._db_available:
            return self._notes.pop(note_id, None) is not None

        try:
            with self.session_factory() as session:
                result = session.execute(delete(DBNote).where(DBNote.id == note_id))
                session.commit()
                affected = result.rowcount
        except SQLAlchemyError as e:
            logger.error(f"Failed to delete note {note_id}: {format_error(e)}")
            return False

        if affected > 0:
            self._notes.pop(note_id, None)
            return True
        return False

    def close(self) -> None:
        """Dispose of the engine's connection pool."""
        self.engine.dispose()

    def _load_rows(self) -> List[Note]:
        """Full table scan in insertion order."""
        with self.session_factory() as session:
            rows = session.scalars(
                select(DBNote).order_by(literal_column("rowid"))
            ).all()
            return [row.to_note() for row in rows]

    def _refresh(self) -> None:
        """Reload the cache from the table, keeping the old cache on failure."""
        if not self._db_available:
            return
        try:
            notes = self._load_rows()
        except (SQLAlchemyError, ValueError) as e:
            logger.warning(
                f"Could not refresh notes from {self.db_path}, serving cached notes: "
                f"{format_error(e)}"
            )
            return
        self._replace_all(notes)
