"""
External editor round-trip for notes.

The file handed to the editor looks like this:

    <title>
    #tag1 #tag2        (optional)

    <content, any number of lines>

A file whose first line is blank is an abandoned edit.
"""
from __future__ import annotations
import contextlib
import logging
import os
import shlex
import stat
import subprocess
import sys
import tempfile
from pathlib import Path
from typing import Callable, ContextManager, Optional

from .config import EditorConfig
from .errors import EditorError, ParseError
from .models import NoteDraft, normal_tags

log = logging.getLogger(__name__)


def serialize_draft(draft: NoteDraft) -> str:
    text = draft.title
    if draft.tags:
        text += "\n" + " ".join(f"#{t}" for t in draft.tags)
    if draft.content:
        text += "\n\n" + draft.content
    # parse_draft strips exactly one final newline, so content keeps its own
    return text + "\n"


def _parse_tag_line(line: str) -> Optional[list[str]]:
    # only a line made entirely of #tokens counts; "# Heading" stays content
    words = line.split()
    if not words or not all(w.startswith("#") and len(w) > 1 for w in words):
        return None
    return normal_tags(w[1:] for w in words)


def parse_draft(text: str) -> Optional[NoteDraft]:
    """Parse an edited file. Returns None when the title line is blank."""
    if "\x00" in text:
        raise ParseError("edited file contains binary data")
    text = text.replace("\r\n", "\n")
    if text.endswith("\n"):
        text = text[:-1]
    lines = text.split("\n")

    title = lines[0].strip()
    if not title:
        return None

    rest = lines[1:]
    tags: list[str] = []
    if rest:
        parsed = _parse_tag_line(rest[0])
        if parsed is not None:
            tags = parsed
            rest = rest[1:]
    if rest and not rest[0].strip():
        rest = rest[1:]
    return NoteDraft(title=title, content="\n".join(rest), tags=tags)


def resolve_editor(config: EditorConfig) -> list[str]:
    """$EDITOR, else the configured default, else the platform fallback."""
    command = os.environ.get("EDITOR") or config.default_editor
    if not command:
        command = "notepad" if sys.platform == "win32" else "vi"
    return shlex.split(command, posix=os.name != "nt")


class EditorBridge:
    """
    Hands a draft to the user's editor and reads it back.

    `suspend` must return a context manager that releases the terminal while
    the editor runs and takes it back afterwards (the TUI passes
    `Screen.suspended`). `runner` is `subprocess.run`-compatible.
    """

    def __init__(
        self,
        config: Optional[EditorConfig] = None,
        suspend: Optional[Callable[[], ContextManager]] = None,
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
    ):
        self.config = config or EditorConfig()
        self.suspend = suspend or contextlib.nullcontext
        self.runner = runner
        # set when the temp file could not be removed after the last edit
        self.cleanup_error: Optional[OSError] = None

    def edit(self, draft: NoteDraft) -> Optional[NoteDraft]:
        self.cleanup_error = None
        path = self._write_temp(draft)
        try:
            self._launch(path)
            try:
                text = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                raise EditorError(f"Cannot read edited file: {exc}") from exc
            return parse_draft(text)
        finally:
            self._cleanup(path)

    def _write_temp(self, draft: NoteDraft) -> Path:
        try:
            fd, name = tempfile.mkstemp(prefix="qnote-", suffix=".md")
        except OSError as exc:
            raise EditorError(f"Cannot create temp file: {exc}") from exc
        path = Path(name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                if self.config.secure_temp_files and os.name == "posix":
                    os.chmod(path, stat.S_IRUSR | stat.S_IWUSR)
                fh.write(serialize_draft(draft))
        except OSError as exc:
            self._cleanup(path)
            raise EditorError(f"Cannot write temp file: {exc}") from exc
        return path

    def _launch(self, path: Path) -> None:
        cmd = resolve_editor(self.config) + [str(path)]
        log.info("launching editor %s", cmd[0])
        with self.suspend():
            try:
                result = self.runner(cmd)
            except OSError as exc:
                raise EditorError(f"Failed to launch editor '{cmd[0]}': {exc}") from exc
        if result.returncode != 0:
            raise EditorError(f"Editor '{cmd[0]}' exited with status {result.returncode}")

    def _cleanup(self, path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            log.warning("could not remove temp file %s: %s", path, exc)
            self.cleanup_error = exc
