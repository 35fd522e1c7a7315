# tests/test_database_storage.py
"""Tests for the SQLite note storage."""
import logging
import sqlite3
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from personal_memory_mcp.exceptions import ErrorCode, StorageError
from personal_memory_mcp.storage.database_storage import DatabaseNoteStorage


def _rows(db_path):
    with sqlite3.connect(db_path) as conn:
        return conn.execute(
            "SELECT id, text, timestamp, tags FROM notes ORDER BY rowid"
        ).fetchall()


def _open(db_path):
    storage = DatabaseNoteStorage(db_path)
    return storage, storage.initialize()


class TestDatabaseInitialization:
    """Opening the database on startup."""

    def test_creates_database_and_table(self, db_path):
        storage, result = _open(db_path)
        try:
            assert db_path.exists()
            assert not result.started_empty
            assert result.loaded == 0
            assert storage.db_available
            assert _rows(db_path) == []
        finally:
            storage.close()

    def test_initialize_is_idempotent(self, database_storage):
        note = database_storage.add_note("persisted")
        result = database_storage.initialize()
        assert result.loaded == 1
        assert database_storage.get_all_notes() == [note]

    def test_loads_existing_rows(self, db_path):
        storage, _ = _open(db_path)
        first = storage.add_note("first", tags=["a"])
        second = storage.add_note("second")
        storage.close()

        storage, result = _open(db_path)
        try:
            assert result.loaded == 2
            assert storage.get_all_notes() == [first, second]
        finally:
            storage.close()

    def test_unusable_database_falls_back_to_memory(self, tmp_path):
        not_a_db = tmp_path / "notes.db"
        not_a_db.write_bytes(b"this is definitely not sqlite" * 100)

        storage, result = _open(not_a_db)
        try:
            assert result.started_empty
            assert "memory only" in result.cause
            assert not storage.db_available

            note = storage.add_note("kept in memory")
            assert storage.search_notes("memory") == [note]
            assert storage.get_all_notes() == [note]
            assert storage.delete_note(note.id) is True
            assert storage.get_all_notes() == []
        finally:
            storage.close()

    def test_missing_engine_raises_storage_error(self, db_path):
        with patch(
            "personal_memory_mcp.storage.database_storage.create_db_engine",
            side_effect=ImportError("No module named '_sqlite3'"),
        ):
            with pytest.raises(StorageError) as exc_info:
                DatabaseNoteStorage(db_path)

        assert exc_info.value.code == ErrorCode.STORAGE_CONNECTION_FAILED
        assert exc_info.value.details["path_hint"] == "notes.db"
        assert "_sqlite3" in exc_info.value.details["original_error"]


class TestDatabasePersistence:
    """Rows written by add/delete."""

    def test_insert_is_durable_before_return(self, database_storage, db_path):
        note = database_storage.add_note("Buy milk", timestamp="2024-01-01T00:00:00Z",
                                         tags=["errand"])
        assert _rows(db_path) == [(note.id, "Buy milk", "2024-01-01T00:00:00Z", '["errand"]')]

    def test_absent_and_empty_tags_stay_distinct(self, database_storage, db_path):
        untagged = database_storage.add_note("no tags")
        empty = database_storage.add_note("empty tags", tags=[])

        assert [row[3] for row in _rows(db_path)] == [None, "[]"]
        loaded = {n.id: n for n in database_storage.get_all_notes()}
        assert loaded[untagged.id].tags is None
        assert loaded[empty.id].tags == ()

    def test_delete_removes_row(self, database_storage, db_path):
        keep = database_storage.add_note("keep")
        drop = database_storage.add_note("drop")

        assert database_storage.delete_note(drop.id) is True
        assert [row[0] for row in _rows(db_path)] == [keep.id]

    def test_reads_reflect_external_changes(self, database_storage, db_path):
        database_storage.add_note("mine")
        with sqlite3.connect(db_path) as conn:
            conn.execute(
                "INSERT INTO notes (id, text, timestamp, tags) VALUES (?, ?, ?, ?)",
                ("external-1", "Written elsewhere", "2024-02-02T00:00:00Z", None),
            )

        matches = database_storage.search_notes("elsewhere")
        assert [n.id for n in matches] == ["external-1"]
        assert len(database_storage.get_all_notes()) == 2

        with sqlite3.connect(db_path) as conn:
            conn.execute("DELETE FROM notes WHERE id = ?", ("external-1",))
        assert [n.text for n in database_storage.get_all_notes()] == ["mine"]

    def test_unreadable_tags_are_treated_as_absent(self, database_storage, db_path, caplog):
        with sqlite3.connect(db_path) as conn:
            conn.execute(
                "INSERT INTO notes (id, text, timestamp, tags) VALUES (?, ?, ?, ?)",
                ("bad-tags", "odd row", "t", "{not json"),
            )
        with caplog.at_level(logging.WARNING):
            notes = database_storage.get_all_notes()
        assert notes[0].tags is None
        assert "bad-tags" in caplog.text

    def test_failed_insert_returns_note_without_caching(self, database_storage, caplog):
        error = OperationalError("INSERT", {}, Exception("database is locked"))
        with patch.object(database_storage, "session_factory", side_effect=error):
            with caplog.at_level(logging.ERROR):
                note = database_storage.add_note("lost")

        assert note.text == "lost"
        assert "Failed to insert note" in caplog.text
        assert database_storage.get_all_notes() == []

    def test_failed_delete_keeps_cache(self, database_storage, caplog):
        note = database_storage.add_note("sticky")
        error = OperationalError("DELETE", {}, Exception("database is locked"))
        with patch.object(database_storage, "session_factory", side_effect=error):
            with caplog.at_level(logging.ERROR):
                assert database_storage.delete_note(note.id) is False
            # Refresh fails too, so the cache is served as-is
            assert database_storage.get_all_notes() == [note]
        assert "Failed to delete note" in caplog.text

    def test_failed_refresh_serves_cache(self, database_storage, caplog):
        note = database_storage.add_note("cached")
        error = OperationalError("SELECT", {}, Exception("disk I/O error"))
        with patch.object(database_storage, "_load_rows", side_effect=error):
            with caplog.at_level(logging.WARNING):
                assert database_storage.search_notes("cach") == [note]
        assert "serving cached notes" in caplog.text
