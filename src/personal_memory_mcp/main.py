#!/usr/bin/env python
"""Main entry point for the Personal Memory MCP server."""
import argparse
import logging
import os
import sys
from pathlib import Path

from personal_memory_mcp.config import config
from personal_memory_mcp.models.schema import StorageType
from personal_memory_mcp.observability import configure_logging
from personal_memory_mcp.server.mcp_server import PersonalMemoryMcpServer


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Personal Memory MCP Server")
    parser.add_argument(
        "--storage-type",
        help="Note storage backend",
        choices=[t.value for t in StorageType],
        type=str.lower,
        default=os.environ.get("PERSONAL_MEMORY_STORAGE_TYPE")
    )
    parser.add_argument(
        "--notes-file",
        help="JSON notes file used by the file backend",
        type=str,
        default=os.environ.get("PERSONAL_MEMORY_NOTES_FILE")
    )
    parser.add_argument(
        "--database-path",
        help="SQLite database file used by the database backend",
        type=str,
        default=os.environ.get("PERSONAL_MEMORY_DATABASE_PATH")
    )
    parser.add_argument(
        "--log-level",
        help="Logging level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
        default=os.environ.get("PERSONAL_MEMORY_LOG_LEVEL", "INFO")
    )
    parser.add_argument(
        "--log-dir",
        help="Directory for rotating log files",
        type=str,
        default=os.environ.get("PERSONAL_MEMORY_LOG_DIR")
    )
    return parser.parse_args(argv)


def update_config(args):
    """Update the global config with command line arguments."""
    if args.storage_type:
        config.storage_type = StorageType(args.storage_type)
    if args.notes_file:
        config.notes_file = Path(args.notes_file)
    if args.database_path:
        config.database_path = Path(args.database_path)
    if args.log_dir:
        config.log_dir = Path(args.log_dir)


def main(argv=None):
    """Run the Personal Memory MCP server."""
    args = parse_args(argv)
    try:
        update_config(args)
    except ValueError as e:
        # File logging is not set up yet
        logging.basicConfig(level=logging.INFO)
        logging.getLogger(__name__).error(f"Invalid configuration: {e}")
        sys.exit(1)

    # Configure logging (stderr + persistent file logging with rotation)
    log_level = getattr(logging, args.log_level, logging.INFO)
    try:
        log_dir = configure_logging(log_dir=config.log_dir, level=log_level, console=True)
    except OSError as e:
        # Fall back to basic stderr logging if file logging fails
        logging.basicConfig(level=log_level)
        logging.getLogger(__name__).warning(f"Failed to configure file logging: {e}")
        log_dir = None

    logger = logging.getLogger(__name__)
    if log_dir:
        logger.info(f"Persistent logging enabled: {log_dir}")

    try:
        logger.info(
            f"Starting Personal Memory MCP server (storage: {config.storage_type.value})"
        )
        server = PersonalMemoryMcpServer()
    except Exception as e:
        logger.error(f"Failed to start server: {e}", exc_info=True)
        sys.exit(1)

    try:
        server.run()
    except Exception as e:
        logger.error(f"Error running server: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
