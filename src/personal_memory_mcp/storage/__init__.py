"""Storage layer for the Personal Memory MCP server."""

from personal_memory_mcp.storage.base import NoteStorage
from personal_memory_mcp.storage.database_storage import DatabaseNoteStorage
from personal_memory_mcp.storage.factory import StorageOptions, create_note_storage
from personal_memory_mcp.storage.file_storage import FileNoteStorage
from personal_memory_mcp.storage.memory_storage import MemoryNoteStorage

__all__ = [
    "NoteStorage",
    "MemoryNoteStorage",
    "FileNoteStorage",
    "DatabaseNoteStorage",
    "StorageOptions",
    "create_note_storage",
]
