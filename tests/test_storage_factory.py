# tests/test_storage_factory.py
"""Tests for backend selection and the database-to-file fallback."""
import json
import logging
from unittest.mock import patch

import pytest

from personal_memory_mcp.exceptions import ConfigurationError, ErrorCode
from personal_memory_mcp.models.schema import StorageType
from personal_memory_mcp.storage import (
    DatabaseNoteStorage,
    FileNoteStorage,
    MemoryNoteStorage,
    StorageOptions,
    create_note_storage,
)


class TestCreateNoteStorage:
    """Tests for create_note_storage."""

    def test_memory_backend(self, test_config):
        storage = create_note_storage(StorageType.MEMORY)
        assert isinstance(storage, MemoryNoteStorage)

    def test_file_backend_uses_configured_path(self, test_config):
        storage = create_note_storage(StorageType.FILE)
        try:
            assert isinstance(storage, FileNoteStorage)
            assert storage.file_path == test_config.notes_file
        finally:
            storage.close()

    def test_database_is_the_default(self, test_config):
        storage = create_note_storage()
        try:
            assert isinstance(storage, DatabaseNoteStorage)
            assert storage.db_path == test_config.database_path
        finally:
            storage.close()

    @pytest.mark.parametrize("name,expected", [
        ("memory", MemoryNoteStorage),
        ("FILE", FileNoteStorage),
        (" database ", DatabaseNoteStorage),
    ])
    def test_accepts_string_names(self, test_config, name, expected):
        storage = create_note_storage(name)
        try:
            assert isinstance(storage, expected)
        finally:
            storage.close()

    def test_unknown_type_is_rejected(self, test_config):
        with pytest.raises(ConfigurationError) as exc_info:
            create_note_storage("cloud")
        assert exc_info.value.config_key == "storage_type"
        assert exc_info.value.code == ErrorCode.INVALID_STORAGE_TYPE

    def test_option_paths_override_config(self, test_config, tmp_path):
        options = StorageOptions(
            file_path=tmp_path / "custom.json", db_path=tmp_path / "custom.db"
        )
        file_storage = create_note_storage(StorageType.FILE, options)
        db_storage = create_note_storage(StorageType.DATABASE, options)
        try:
            assert file_storage.file_path == tmp_path / "custom.json"
            assert db_storage.db_path == tmp_path / "custom.db"
        finally:
            file_storage.close()
            db_storage.close()

    def test_relative_option_paths_resolve_against_base_dir(self, test_config, tmp_path):
        storage = create_note_storage(
            StorageType.FILE, StorageOptions(file_path="relative/notes.json")
        )
        try:
            assert storage.file_path == tmp_path / "relative" / "notes.json"
        finally:
            storage.close()


class TestDatabaseFallback:
    """The database backend falls back to the file backend."""

    def test_falls_back_to_file_when_engine_missing(self, test_config, caplog):
        with patch(
            "personal_memory_mcp.storage.database_storage.create_db_engine",
            side_effect=ImportError("No module named '_sqlite3'"),
        ):
            with caplog.at_level(logging.WARNING):
                storage = create_note_storage(StorageType.DATABASE)

        try:
            assert isinstance(storage, FileNoteStorage)
            assert "falling back to file storage" in caplog.text

            storage.initialize()
            note = storage.add_note("Buy milk", tags=["errand"])
            assert storage.flush(timeout=5)

            records = json.loads(test_config.notes_file.read_text(encoding="utf-8"))
            assert records == [note.to_record()]
        finally:
            storage.close()

    def test_fallback_failure_propagates(self, test_config):
        with patch(
            "personal_memory_mcp.storage.database_storage.create_db_engine",
            side_effect=ImportError("no sqlite"),
        ), patch(
            "personal_memory_mcp.storage.factory.FileNoteStorage",
            side_effect=RuntimeError("cannot start writer"),
        ):
            with pytest.raises(RuntimeError):
                create_note_storage(StorageType.DATABASE)

    def test_file_and_memory_never_touch_database(self, test_config):
        with patch(
            "personal_memory_mcp.storage.database_storage.create_db_engine"
        ) as mock_engine:
            create_note_storage(StorageType.MEMORY)
            create_note_storage(StorageType.FILE).close()
        mock_engine.assert_not_called()
