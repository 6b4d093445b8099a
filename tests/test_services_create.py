import pytest

from qnote.db import init_db, reset_engine
from qnote.errors import StoreError
from qnote.editor import parse_draft, serialize_draft
from qnote.models import NoteDraft
from qnote.services import create_note, edit_note, get_note

def test_create_note_service_and_return_id(tmp_path, monkeypatch):
    test_db = tmp_path / "test.db"
    monkeypatch.setenv("QNOTE_DB_PATH", str(test_db))
    reset_engine()
    init_db()

    note = create_note("hello", "world", tags=["Work", "ideas", "work", " ideas ", ""])
    assert note.id is not None
    assert note.title == "hello"
    assert note.content == "world"
    # order kept, case-sensitive, duplicates and blanks dropped
    assert note.tags == ["Work", "ideas", "work"]

    again = get_note(note.id)
    assert again.tags == ["Work", "ideas", "work"]

def test_create_rejects_blank_title(store):
    with pytest.raises(StoreError):
        create_note("   ", "body")

def test_unicode_tags_round_trip(store):
    note = create_note("café", "", tags=["日本", "naïve"])
    assert get_note(note.id).tags == ["日本", "naïve"]

def test_tags_with_spaces_are_split_into_words(store):
    note = create_note("split", tags=["two words", "  spaced\ttab ", "two"])
    assert note.tags == ["two", "words", "spaced", "tab"]

@pytest.mark.parametrize("title", ["first\nsecond", "carriage\rreturn", "crlf\r\nline"])
def test_create_rejects_multi_line_title(store, title):
    with pytest.raises(StoreError):
        create_note(title, "body")

def test_edit_rejects_multi_line_title(store):
    note = create_note("one line")
    with pytest.raises(StoreError):
        edit_note(note.id, title="two\nlines")
    assert get_note(note.id).title == "one line"

def test_stored_note_survives_editor_round_trip(store):
    note = create_note("  Padded title ", "ends with blank lines\r\n\n", tags=["two words", "#hash"])
    assert note.content == "ends with blank lines\n\n"
    draft = NoteDraft.from_note(note)
    assert parse_draft(serialize_draft(draft)) == draft
