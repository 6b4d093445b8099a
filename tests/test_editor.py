import contextlib
import os
import subprocess
from pathlib import Path

import pytest

from qnote.config import EditorConfig
from qnote.editor import EditorBridge, parse_draft, resolve_editor, serialize_draft
from qnote.errors import EditorError, ParseError
from qnote.models import NoteDraft


@pytest.mark.parametrize("draft", [
    NoteDraft(title="Shopping", content="milk\n\n- eggs", tags=["home", "todo"]),
    NoteDraft(title="No tags", content="# Heading inside\nbody"),
    NoteDraft(title="Title only"),
    NoteDraft(title="Tags only", tags=["x"]),
    NoteDraft(title="Trailing newline", content="line\n"),
    NoteDraft(title="Leading blank", content="\nafter blank"),
])
def test_serialize_parse_round_trip(draft):
    assert parse_draft(serialize_draft(draft)) == draft

def test_serialized_layout():
    text = serialize_draft(NoteDraft(title="T", content="body", tags=["a", "b"]))
    assert text == "T\n#a #b\n\nbody\n"

def test_blank_title_abandons_edit():
    assert parse_draft("") is None
    assert parse_draft("   \n#tag\n\nbody\n") is None

def test_heading_is_not_a_tag_line():
    draft = parse_draft("T\n# Heading\nbody\n")
    assert draft.tags == []
    assert draft.content == "# Heading\nbody"

def test_tags_are_deduplicated_in_order():
    assert parse_draft("T\n#b #a #b\n").tags == ["b", "a"]

def test_crlf_and_trailing_newline():
    draft = parse_draft("T \r\n#x\r\n\r\nline one\r\nline two\r\n")
    assert draft == NoteDraft(title="T", content="line one\nline two", tags=["x"])

def test_binary_content_is_rejected():
    with pytest.raises(ParseError):
        parse_draft("T\n\x00")

def test_resolve_editor(monkeypatch):
    monkeypatch.setenv("EDITOR", "code --wait")
    assert resolve_editor(EditorConfig(default_editor="nano")) == ["code", "--wait"]
    monkeypatch.delenv("EDITOR")
    assert resolve_editor(EditorConfig(default_editor="nano")) == ["nano"]


class FakeEditor:
    """subprocess.run stand-in that rewrites the file it is given."""

    def __init__(self, new_text=None, returncode=0, error=None):
        self.new_text = new_text
        self.returncode = returncode
        self.error = error
        self.calls = []
        self.seen_text = None
        self.seen_mode = None

    def __call__(self, cmd):
        self.calls.append(cmd)
        if self.error:
            raise self.error
        path = Path(cmd[-1])
        self.seen_text = path.read_text(encoding="utf-8")
        self.seen_mode = os.stat(path).st_mode & 0o777
        if self.new_text is not None:
            path.write_text(self.new_text, encoding="utf-8")
        return subprocess.CompletedProcess(cmd, self.returncode)


def test_bridge_round_trips_through_editor(monkeypatch):
    monkeypatch.setenv("EDITOR", "myeditor --wait")
    fake = FakeEditor("New title\n#t\n\nnew body\n")
    bridge = EditorBridge(EditorConfig(), runner=fake)

    result = bridge.edit(NoteDraft(title="Old", content="old body"))

    assert result == NoteDraft(title="New title", content="new body", tags=["t"])
    assert fake.calls[0][:2] == ["myeditor", "--wait"]
    assert fake.seen_text == "Old\n\nold body\n"
    assert not Path(fake.calls[0][-1]).exists()
    assert bridge.cleanup_error is None

@pytest.mark.skipif(os.name != "posix", reason="permission bits are POSIX only")
def test_secure_temp_file_is_owner_only(monkeypatch):
    monkeypatch.setenv("EDITOR", "ed")
    fake = FakeEditor()
    EditorBridge(EditorConfig(secure_temp_files=True), runner=fake).edit(NoteDraft(title="x"))
    assert fake.seen_mode == 0o600

def test_unchanged_file_returns_same_draft(monkeypatch):
    monkeypatch.setenv("EDITOR", "ed")
    draft = NoteDraft(title="Same", content="body", tags=["a"])
    assert EditorBridge(runner=FakeEditor()).edit(draft) == draft

def test_terminal_is_suspended_around_the_editor(monkeypatch):
    monkeypatch.setenv("EDITOR", "ed")
    events = []

    @contextlib.contextmanager
    def suspend():
        events.append("suspend")
        yield
        events.append("resume")

    def runner(cmd):
        events.append("run")
        return subprocess.CompletedProcess(cmd, 0)

    EditorBridge(suspend=suspend, runner=runner).edit(NoteDraft(title="x"))
    assert events == ["suspend", "run", "resume"]

def test_launch_failure_is_editor_error(monkeypatch):
    monkeypatch.setenv("EDITOR", "no-such-editor")
    fake = FakeEditor(error=FileNotFoundError("no-such-editor"))
    with pytest.raises(EditorError):
        EditorBridge(runner=fake).edit(NoteDraft(title="x"))
    assert not Path(fake.calls[0][-1]).exists()

def test_nonzero_exit_is_editor_error(monkeypatch):
    monkeypatch.setenv("EDITOR", "ed")
    with pytest.raises(EditorError):
        EditorBridge(runner=FakeEditor("changed", returncode=2)).edit(NoteDraft(title="x"))

def test_blank_title_in_editor_returns_none(monkeypatch):
    monkeypatch.setenv("EDITOR", "ed")
    assert EditorBridge(runner=FakeEditor("\n\nbody")).edit(NoteDraft(title="x")) is None
