"""MCP server implementation for the personal note store."""

import atexit
import json
import logging
import uuid
from dataclasses import asdict
from typing import Any, Dict, Iterable, List, Optional

from mcp.server.fastmcp import FastMCP

from personal_memory_mcp.config import config
from personal_memory_mcp.exceptions import PersonalMemoryError, ValidationError
from personal_memory_mcp.models.schema import InitResult, Note
from personal_memory_mcp.observability import metrics, timed_operation
from personal_memory_mcp.storage.base import NoteStorage
from personal_memory_mcp.storage.factory import StorageOptions, create_note_storage

logger = logging.getLogger(__name__)

MAX_NOTE_LENGTH = 1_000_000  # 1 MB
MAX_TAG_LENGTH = 200

NO_NOTES_FOUND = "No matching notes found."


def note_stored_message(note: Note) -> str:
    return f"Note stored with ID: {note.id} at {note.timestamp}."


def note_deleted_message(note_id: str) -> str:
    return f"Note with ID {note_id} successfully deleted."


def note_not_found_message(note_id: str) -> str:
    return f"No note with ID {note_id} found."


def format_notes(notes: Iterable[Note]) -> str:
    """Render notes as a pretty-printed JSON array."""
    return json.dumps([note.to_record() for note in notes], indent=2, ensure_ascii=False)


def _validate_note_input(text: str, tags: Optional[List[str]]) -> None:
    """Validate input sizes at the MCP boundary."""
    if len(text) > MAX_NOTE_LENGTH:
        raise ValidationError(
            f"Note exceeds maximum length of {MAX_NOTE_LENGTH} characters",
            field="note",
        )
    for tag in tags or []:
        if len(tag) > MAX_TAG_LENGTH:
            raise ValidationError(
                f"Tag exceeds maximum length of {MAX_TAG_LENGTH} characters",
                field="tags",
                value=tag,
            )


class PersonalMemoryMcpServer:
    """MCP server exposing note storage as tools."""

    def __init__(self, storage: Optional[NoteStorage] = None):
        """Initialize the MCP server.

        Args:
            storage: Backend to serve. When None, one is built from the
                     global config through the storage facade.
        """
        self.mcp = FastMCP(config.server_name)
        if storage is None:
            storage = create_note_storage(config.storage_type, StorageOptions())
        self.storage = storage
        self.init_result: Optional[InitResult] = None
        # Load existing notes
        self.initialize()
        # Register shutdown hook for resource cleanup
        atexit.register(self._shutdown)
        self._register_tools()
        self._register_resources()

    def initialize(self) -> None:
        """Initialize the storage backend. Never fails; see InitResult."""
        self.init_result = self.storage.initialize()
        logger.info(
            f"Personal Memory MCP server initialized: {self.init_result.describe()}"
        )

    def _shutdown(self) -> None:
        """Flush and release the storage backend on exit."""
        self.storage.close()

    def format_error_response(self, error: Exception) -> str:
        """Format an error response in a consistent way.

        Args:
            error: The exception that occurred

        Returns:
            Formatted error message with appropriate level of detail
        """
        error_id = str(uuid.uuid4())[:8]

        if isinstance(error, PersonalMemoryError):
            logger.error(
                f"[{error.code.name}] [{error_id}]: {error.message}",
                extra={"error_details": error.details},
            )
            return f"Error: {error.message}"
        elif isinstance(error, ValueError):
            logger.error(f"Validation error [{error_id}]: {str(error)}")
            return f"Error: Invalid input (ref: {error_id})"
        elif isinstance(error, (IOError, OSError)):
            logger.error(f"File system error [{error_id}]: {str(error)}", exc_info=True)
            return f"Error: A file system error occurred (ref: {error_id})"
        else:
            logger.error(f"Unexpected error [{error_id}]: {str(error)}", exc_info=True)
            return f"Error: An unexpected error occurred (ref: {error_id})"

    def _register_tools(self) -> None:
        """Register MCP tools."""

        @self.mcp.tool(name="store_note")
        def store_note(
            note: str,
            timestamp: Optional[str] = None,
            tags: Optional[List[str]] = None,
        ) -> str:
            """Store a personal note.

            Args:
                note: The text of the note
                timestamp: Optional ISO 8601 time; defaults to now
                tags: Optional list of tags
            """
            try:
                with timed_operation("store_note", tag_count=len(tags or [])) as op:
                    _validate_note_input(note, tags)
                    new_note = self.storage.add_note(note, timestamp, tags)
                    op["note_id"] = new_note.id
                    return note_stored_message(new_note)
            except Exception as e:
                return self.format_error_response(e)

        @self.mcp.tool(name="retrieve_notes")
        def retrieve_notes(query: str) -> str:
            """Find notes whose text or tags contain the query (case-insensitive).

            Args:
                query: Text to look for; an empty query returns every note
            """
            try:
                with timed_operation("retrieve_notes", query=query[:30]) as op:
                    matches = self.storage.search_notes(query)
                    op["result_count"] = len(matches)
                    if not matches:
                        return NO_NOTES_FOUND
                    return format_notes(matches)
            except Exception as e:
                return self.format_error_response(e)

        @self.mcp.tool(name="get_all_notes")
        def get_all_notes() -> str:
            """List every stored note in the order it was stored."""
            try:
                with timed_operation("get_all_notes") as op:
                    notes = self.storage.get_all_notes()
                    op["result_count"] = len(notes)
                    if not notes:
                        return NO_NOTES_FOUND
                    return format_notes(notes)
            except Exception as e:
                return self.format_error_response(e)

        @self.mcp.tool(name="delete_note")
        def delete_note(id: str) -> str:
            """Delete a note by its ID.

            Args:
                id: The ID returned by store_note
            """
            note_id = str(id)
            try:
                with timed_operation("delete_note", note_id=note_id) as op:
                    deleted = self.storage.delete_note(note_id)
                    op["deleted"] = deleted
                    if deleted:
                        return note_deleted_message(note_id)
                    return note_not_found_message(note_id)
            except Exception as e:
                return self.format_error_response(e)

    def get_status(self) -> Dict[str, Any]:
        """Backend state and per-tool metrics for the status resource."""
        return {
            "server": config.server_name,
            "version": config.server_version,
            "backend": self.storage.name,
            "note_count": len(self.storage.get_all_notes()),
            "initialization": {
                **asdict(self.init_result),
                "started_empty": self.init_result.started_empty,
            },
            "summary": metrics.get_summary(),
            "operations": metrics.get_metrics(),
        }

    def _register_resources(self) -> None:
        """Register MCP resources."""

        @self.mcp.resource(
            "notes://all", name="all_notes", mime_type="application/json"
        )
        def all_notes() -> str:
            """All stored notes as a JSON array."""
            with timed_operation("all_notes_resource"):
                return format_notes(self.storage.get_all_notes())

        @self.mcp.resource(
            "notes://status", name="status", mime_type="application/json"
        )
        def status() -> str:
            """Storage backend state and tool metrics."""
            return json.dumps(self.get_status(), indent=2)

    def run(self) -> None:
        """Run the MCP server over stdio."""
        self.mcp.run()
