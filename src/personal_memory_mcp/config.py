"""Configuration module for the Personal Memory MCP server."""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from personal_memory_mcp import __version__
from personal_memory_mcp.models.schema import StorageType

# Load environment variables from the project root .env file.
# Anchored to __file__ so it works regardless of the process CWD.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

# User-level config, shared by every checkout
_USER_ENV = Path.home() / ".personal-memory" / ".env"
load_dotenv(_USER_ENV)


logger = logging.getLogger(__name__)

DEFAULT_LOG_DIR = Path.home() / ".personal-memory" / "logs"


class PersonalMemoryConfig(BaseModel):
    """Configuration for the Personal Memory server."""

    # Base directory that relative paths are resolved against
    base_dir: Path = Field(
        default_factory=lambda: Path(os.getenv("PERSONAL_MEMORY_BASE_DIR", "."))
    )
    # Which backend the storage facade should build
    storage_type: StorageType = Field(
        default_factory=lambda: os.getenv(
            "PERSONAL_MEMORY_STORAGE_TYPE", StorageType.DATABASE.value
        )
    )
    # File backend location
    notes_file: Path = Field(
        default_factory=lambda: Path(
            os.getenv("PERSONAL_MEMORY_NOTES_FILE", "data/notes.json")
        )
    )
    # Database backend location
    database_path: Path = Field(
        default_factory=lambda: Path(
            os.getenv("PERSONAL_MEMORY_DATABASE_PATH", "data/db/notes.db")
        )
    )
    # Rotating log files
    log_dir: Path = Field(
        default_factory=lambda: Path(
            os.getenv("PERSONAL_MEMORY_LOG_DIR", str(DEFAULT_LOG_DIR))
        )
    )
    # Server configuration
    server_name: str = Field(
        default_factory=lambda: os.getenv(
            "PERSONAL_MEMORY_SERVER_NAME", "PersonalMemoryServer"
        )
    )
    server_version: str = Field(default=__version__)

    model_config = {"validate_assignment": True, "validate_default": True}

    @field_validator("storage_type", mode="before")
    @classmethod
    def _normalize_storage_type(cls, value):
        """Accept backend names case-insensitively, e.g. ``FILE``."""
        if isinstance(value, str):
            return value.strip().lower()
        return value

    def get_absolute_path(self, path: Path) -> Path:
        """Convert a relative path to an absolute path based on base_dir."""
        path = path.expanduser()
        if path.is_absolute():
            return path
        return self.base_dir.expanduser() / path

    def get_notes_file(self) -> Path:
        """Get the absolute path of the JSON notes file."""
        return self.get_absolute_path(self.notes_file)

    def get_database_path(self) -> Path:
        """Get the absolute path of the SQLite database file."""
        return self.get_absolute_path(self.database_path)


# Create a global config instance
config = PersonalMemoryConfig()
