"""Common test fixtures for the Personal Memory MCP server."""

import pytest

from personal_memory_mcp.config import config
from personal_memory_mcp.storage.database_storage import DatabaseNoteStorage
from personal_memory_mcp.storage.file_storage import FileNoteStorage
from personal_memory_mcp.storage.memory_storage import MemoryNoteStorage


@pytest.fixture
def test_config(tmp_path, monkeypatch):
    """Point the global config at temporary paths (auto-restored)."""
    monkeypatch.setattr(config, "base_dir", tmp_path)
    monkeypatch.setattr(config, "storage_type", config.storage_type)
    monkeypatch.setattr(config, "notes_file", tmp_path / "notes.json")
    monkeypatch.setattr(config, "database_path", tmp_path / "db" / "notes.db")
    monkeypatch.setattr(config, "log_dir", tmp_path / "logs")
    yield config


@pytest.fixture
def notes_file(tmp_path):
    """Path of a JSON notes file that does not exist yet."""
    return tmp_path / "storage" / "notes.json"


@pytest.fixture
def db_path(tmp_path):
    """Path of a SQLite database that does not exist yet."""
    return tmp_path / "db" / "notes.db"


@pytest.fixture
def memory_storage():
    """An initialized in-memory storage."""
    storage = MemoryNoteStorage()
    storage.initialize()
    yield storage
    storage.close()


@pytest.fixture
def file_storage(notes_file):
    """An initialized file storage on a fresh path."""
    storage = FileNoteStorage(notes_file)
    storage.initialize()
    yield storage
    storage.close()


@pytest.fixture
def database_storage(db_path):
    """An initialized database storage on a fresh path."""
    storage = DatabaseNoteStorage(db_path)
    storage.initialize()
    yield storage
    storage.close()


@pytest.fixture(params=["memory", "file", "database"])
def any_storage(request):
    """Each backend in turn, for contract tests."""
    return request.getfixturevalue(f"{request.param}_storage")
