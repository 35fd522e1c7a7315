# tests/test_utils.py
"""Tests for the shared search predicate and helpers."""
import pytest

from personal_memory_mcp.models.schema import Note
from personal_memory_mcp.utils import filter_notes, format_error, note_matches, text_contains


def _note(text, tags=None, note_id="n1"):
    return Note(id=note_id, text=text, timestamp="2024-01-01T00:00:00.000Z", tags=tags)


class TestTextContains:
    @pytest.mark.parametrize("source,query,expected", [
        ("Hello World", "hello", True),
        ("Hello World", "WORLD", True),
        ("Hello World", "lo wo", True),
        ("Hello World", "", True),
        ("", "", True),
        ("Hello World", "planet", False),
        ("", "a", False),
        ("Straße", "STRASSE", True),
        ("Straße", "ss", True),
        ("STRASSE", "ß", True),
    ])
    def test_case_insensitive_substring(self, source, query, expected):
        assert text_contains(source, query) is expected


class TestNoteMatches:
    def test_matches_text(self):
        assert note_matches(_note("Buy milk"), "MILK")

    def test_matches_any_tag(self):
        note = _note("Buy milk", tags=["errand", "Groceries"])
        assert note_matches(note, "grocer")
        assert note_matches(note, "ERRAND")
        assert not note_matches(note, "work")

    def test_no_tags_and_empty_tags(self):
        assert not note_matches(_note("x"), "tag")
        assert not note_matches(_note("x", tags=[]), "tag")

    def test_filter_preserves_order(self):
        notes = [_note("b milk", note_id="a"), _note("a", note_id="b"), _note("c MILK", note_id="c")]
        assert filter_notes(notes, "milk") == [notes[0], notes[2]]


class TestFormatError:
    def test_with_message(self):
        assert format_error(OSError("disk full")) == "OSError: disk full"

    def test_without_message(self):
        assert format_error(KeyError()) == "KeyError"
