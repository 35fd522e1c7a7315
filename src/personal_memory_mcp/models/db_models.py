"""SQLAlchemy database models for the Personal Memory MCP server."""
import json
import logging
from pathlib import Path
from typing import Optional, Sequence, Union

from sqlalchemy import Column, String, Text, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

from personal_memory_mcp.models.schema import Note

logger = logging.getLogger(__name__)

# Create base class for SQLAlchemy models
Base = declarative_base()


class DBNote(Base):
    """Database model for a note."""
    __tablename__ = "notes"
    id = Column(String(255), primary_key=True)
    text = Column(Text, nullable=False)
    timestamp = Column(String(64), nullable=False)
    # JSON-encoded list; NULL means the note has no tags at all
    tags = Column(Text, nullable=True)

    def __repr__(self) -> str:
        """Return string representation of note."""
        return f"<Note(id='{self.id}', timestamp='{self.timestamp}')>"

    @classmethod
    def from_note(cls, note: Note) -> "DBNote":
        """Build a row from a note."""
        return cls(
            id=note.id,
            text=note.text,
            timestamp=note.timestamp,
            tags=encode_tags(note.tags),
        )

    def to_note(self) -> Note:
        """Convert the row back into a note."""
        return Note(
            id=self.id,
            text=self.text,
            timestamp=self.timestamp,
            tags=decode_tags(self.tags, note_id=self.id),
        )


def encode_tags(tags: Optional[Sequence[str]]) -> Optional[str]:
    """Serialize tags for the ``tags`` column, keeping None distinct from []."""
    if tags is None:
        return None
    return json.dumps(list(tags), ensure_ascii=False)


def decode_tags(raw: Optional[str], note_id: str = "?") -> Optional[Sequence[str]]:
    """Parse the ``tags`` column. Unreadable values are treated as no tags."""
    if raw is None:
        return None
    try:
        tags = json.loads(raw)
    except ValueError:
        logger.warning(f"Ignoring unreadable tags for note {note_id}: {raw[:50]!r}")
        return None
    if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
        logger.warning(f"Ignoring tags for note {note_id}: not a list of strings")
        return None
    return tags


def create_db_engine(db_path: Union[str, Path]) -> Engine:
    """Create the SQLAlchemy engine for a SQLite database file.

    Applies WAL journaling and NORMAL synchronous mode on every connection.
    Creating the engine loads the SQLite driver, so this raises ImportError
    (or a SQLAlchemy error) when the driver is unavailable. No connection is
    opened here.
    """
    engine = create_engine(f"sqlite:///{db_path}")

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        # WAL mode: writes go to separate journal, preventing corruption on crash
        cursor.execute("PRAGMA journal_mode=WAL")
        # NORMAL sync: flush WAL to disk at critical moments
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.close()

    return engine


def init_db(engine: Engine) -> None:
    """Create the notes table if it does not exist yet."""
    Base.metadata.create_all(engine)
