"""JSON file note storage.

The whole collection is kept in memory and written to a single
pretty-printed JSON array after every change. Writes are handed to a
background worker and never awaited by the caller: a crash between a
change and its write can lose that change, and a failed write is only
logged.
"""
import json
import logging
import os
import shutil
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from pathlib import Path
from typing import List, Optional, Sequence, Set, Union

from personal_memory_mcp.models.schema import InitResult, Note, utc_now
from personal_memory_mcp.storage.base import NoteStorage
from personal_memory_mcp.utils import format_error

logger = logging.getLogger(__name__)


class FileNoteStorage(NoteStorage):
    """Stores notes in one JSON file, rewritten wholesale on each change."""

    name = "file"

    def __init__(self, file_path: Union[str, Path]):
        """Initialize the file storage.

        Args:
            file_path: Location of the JSON notes file. It does not have to
                exist yet; it is created by the first write.
        """
        super().__init__()
        self.file_path = Path(file_path)
        # One worker keeps writes in submission order
        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="notes-file-writer"
        )
        self._pending: Set[Future] = set()
        self._pending_lock = threading.Lock()
        self._closed = False

    def initialize(self) -> InitResult:
        """Load notes from the file, starting empty if it cannot be used."""
        try:
            raw = self.file_path.read_bytes()
        except FileNotFoundError:
            result = InitResult(
                backend=self.name, cause=f"no notes file at {self.file_path}"
            )
            logger.info(result.describe())
            return result
        except OSError as e:
            result = InitResult(
                backend=self.name, cause=f"could not read notes file: {format_error(e)}"
            )
            logger.warning(result.describe())
            return result

        try:
            notes = self._parse(raw)
        except ValueError as e:
            backup_path = self._backup_corrupt_file()
            result = InitResult(
                backend=self.name,
                cause=f"malformed notes file: {format_error(e)}",
                backup_path=str(backup_path) if backup_path else None,
            )
            logger.warning(result.describe())
            return result

        result = InitResult(backend=self.name, loaded=self._replace_all(notes))
        logger.info(f"{result.describe()} from {self.file_path}")
        return result

    def add_note(
        self,
        text: str,
        timestamp: Optional[str] = None,
        tags: Optional[Sequence[str]] = None,
    ) -> Note:
        note = self._build_note(text, timestamp, tags)
        self._notes[note.id] = note
        self._schedule_save()
        return note

    def search_notes(self, query: str) -> List[Note]:
        return self._filter(query)

    def get_all_notes(self) -> List[Note]:
        return self._snapshot()

    def delete_note(self, note_id: str) -> bool:
        if self._notes.pop(note_id, None) is None:
            return False
        self._schedule_save()
        return True

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Wait for submitted writes to finish.

        Returns:
            True if every pending write completed within ``timeout``.
        """
        with self._pending_lock:
            pending = list(self._pending)
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def close(self) -> None:
        """Wait for pending writes and stop the writer thread."""
        if self._closed:
            return
        self._closed = True
        self._executor.shutdown(wait=True)
        logger.debug(f"File storage closed: {self.file_path}")

    @staticmethod
    def _parse(raw: bytes) -> List[Note]:
        """Decode the file contents into notes.

        Raises:
            ValueError: If the content is not UTF-8 JSON holding an array of
                valid note records.
        """
        content = raw.decode("utf-8")
        if not content.strip():
            return []
        data = json.loads(content)
        if not isinstance(data, list):
            raise ValueError(f"expected a JSON array, got {type(data).__name__}")
        return [Note.model_validate(item) for item in data]

    def _serialize(self) -> str:
        records = [note.to_record() for note in self._notes.values()]
        return json.dumps(records, indent=2, ensure_ascii=False)

    def _schedule_save(self) -> None:
        """Snapshot the collection and hand the write to the background worker."""
        if self._closed:
            logger.warning(
                f"File storage is closed, change not written to {self.file_path}"
            )
            return
        payload = self._serialize()
        future = self._executor.submit(self._persist, payload)
        with self._pending_lock:
            self._pending.add(future)
        future.add_done_callback(self._on_write_done)

    def _persist(self, payload: str) -> None:
        """Background task: write the snapshot, logging any failure."""
        try:
            self._write(payload)
        except Exception as e:
            logger.error(
                f"Failed to save notes to {self.file_path}: {format_error(e)}"
            )

    def _write(self, payload: str) -> None:
        self.file_path.parent.mkdir(parents=True, exist_ok=True)
        temp_file = self.file_path.with_name(
            f".{self.file_path.name}.{os.getpid()}.tmp"
        )
        temp_file.write_text(payload, encoding="utf-8")
        os.replace(temp_file, self.file_path)

    def _on_write_done(self, future: Future) -> None:
        with self._pending_lock:
            self._pending.discard(future)

    def _backup_corrupt_file(self) -> Optional[Path]:
        """Copy an unreadable notes file aside so the next write cannot destroy it."""
        timestamp = utc_now().strftime("%Y%m%d_%H%M%S")
        backup_path = self.file_path.with_name(
            f"{self.file_path.stem}.corrupt.{timestamp}{self.file_path.suffix}"
        )
        try:
            shutil.copy2(self.file_path, backup_path)
        except OSError as e:
            logger.warning(f"Could not back up corrupt notes file: {e}")
            return None
        logger.info(f"Backed up corrupt notes file to: {backup_path}")
        return backup_path
