from __future__ import annotations


class QnoteError(Exception):
    """Base class for every recoverable qnote failure."""


class StoreError(QnoteError):
    """The note store could not complete an operation (I/O or constraint)."""


class NoteNotFound(StoreError):
    def __init__(self, identifier: int | str):
        super().__init__(f"Note '{identifier}' not found")
        self.identifier = identifier


class AmbiguousNote(StoreError):
    def __init__(self, pattern: str, candidates: list):
        listing = ", ".join(f"#{n.id} {n.title}" for n in candidates)
        super().__init__(f"Multiple notes match '{pattern}': {listing}")
        self.pattern = pattern
        self.candidates = candidates


class EditorError(QnoteError):
    """The external editor could not be launched or its file read back."""


class ParseError(QnoteError):
    """An edited note file could not be understood; the edit is abandoned."""


class ConfigError(QnoteError):
    """The configuration file is unreadable or holds invalid values."""


class TerminalError(QnoteError):
    """The terminal could not be put into (or restored from) full-screen mode."""
