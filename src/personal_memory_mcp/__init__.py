"""
Personal Memory MCP - a small note store exposed as an MCP server.
This package implements a Model Context Protocol (MCP) server that lets a
tool-calling client store, search, list and delete short personal notes.
Notes live in one of three interchangeable backends: a JSON file, process
memory, or an embedded SQLite database.

This version uses synchronous operations.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("personal-memory-mcp")
except PackageNotFoundError:
    __version__ = "1.0.0"
