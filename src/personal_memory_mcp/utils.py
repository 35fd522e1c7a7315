"""Utility functions for the Personal Memory MCP server."""
from typing import Iterable, List

from personal_memory_mcp.models.schema import Note


def text_contains(source: str, query: str) -> bool:
    """Case-insensitive substring test.

    Uses ``casefold`` so that e.g. "STRASSE" matches "straße".
    An empty query is contained in every string.
    """
    return query.casefold() in source.casefold()


def note_matches(note: Note, query: str) -> bool:
    """Return True if the note's text or any of its tags contains ``query``."""
    if text_contains(note.text, query):
        return True
    return any(text_contains(tag, query) for tag in note.tags or ())


def filter_notes(notes: Iterable[Note], query: str) -> List[Note]:
    """Return the notes matching ``query``, preserving their order."""
    return [note for note in notes if note_matches(note, query)]


def format_error(error: BaseException) -> str:
    """Render an exception as ``Type: message`` for log lines and init causes."""
    message = str(error)
    if message:
        return f"{type(error).__name__}: {message}"
    return type(error).__name__
