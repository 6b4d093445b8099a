"""
In-memory view of the TUI session.

`AppState` only holds data and the transitions that need nothing but that
data (navigation, search bookkeeping, scroll clamping). Transitions that
touch the store or the editor live in `qnote.tui.app`.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional

from .. import fuzzy
from ..models import Note, SortMode


class Mode:
    label = ""


@dataclass(frozen=True)
class Normal(Mode):
    label = "NORMAL"


@dataclass(frozen=True)
class Search(Mode):
    label = "SEARCH"


@dataclass(frozen=True)
class ConfirmDelete(Mode):
    target_id: int
    label = "DELETE?"


@dataclass(frozen=True)
class ConfirmDeleteMarked(Mode):
    target_ids: frozenset[int]
    label = "DELETE?"


@dataclass(frozen=True)
class Editing(Mode):
    label = "EDITING"


NORMAL = Normal()
SEARCH = Search()
EDITING = Editing()


@dataclass
class SearchState:
    query: str = ""
    # (note_index, score), best first then by index
    matches: list[tuple[int, int]] = field(default_factory=list)
    active_match: int = 0
    # selection to restore on cancel
    origin_index: int = 0
    live: bool = True

    def matched_indices(self) -> list[int]:
        return [i for i, _ in self.matches]


@dataclass
class StatusMessage:
    text: str
    created_tick: int


def haystack(note: Note) -> str:
    return " ".join([note.title, *note.tags, note.content])


def compute_matches(notes: list[Note], query: str) -> list[tuple[int, int]]:
    return fuzzy.rank(query, [haystack(n) for n in notes])


@dataclass
class AppState:
    notes: list[Note] = field(default_factory=list)
    selected_index: int = 0
    sort_mode: SortMode = SortMode.UPDATED
    search: Optional[SearchState] = None
    preview_scroll: int = 0
    mode: Mode = NORMAL
    status: Optional[StatusMessage] = None
    tick: int = 0
    # ids of notes picked for bulk delete/export; survives refreshes
    marked: set[int] = field(default_factory=set)
    help_expanded: bool = False

    # ---------- selection ----------

    def selected_note(self) -> Optional[Note]:
        if not self.notes:
            return None
        return self.notes[self.selected_index]

    def clamp_selection(self) -> None:
        self.selected_index = min(max(self.selected_index, 0), max(len(self.notes) - 1, 0))

    def select_index(self, index: int) -> None:
        previous = self.selected_index
        self.selected_index = index
        self.clamp_selection()
        if self.selected_index != previous:
            self.preview_scroll = 0

    def select_id(self, note_id: Optional[int]) -> bool:
        for i, note in enumerate(self.notes):
            if note.id == note_id:
                self.select_index(i)
                return True
        return False

    def move(self, delta: int) -> None:
        self.select_index(self.selected_index + delta)

    def goto_top(self) -> None:
        self.select_index(0)

    def goto_bottom(self) -> None:
        self.select_index(len(self.notes) - 1)

    def set_notes(self, notes: list[Note], keep_id: Optional[int] = None, fallback_first: bool = False) -> None:
        """Replace the snapshot, keep the selection on `keep_id` if it survived."""
        self.notes = list(notes)
        self.marked &= {n.id for n in self.notes}
        if self.search is not None:
            self.search.matches = compute_matches(self.notes, self.search.query)
            self.search.active_match = min(self.search.active_match, max(len(self.search.matches) - 1, 0))
        if keep_id is not None and self.select_id(keep_id):
            return
        if fallback_first:
            self.select_index(0)
        else:
            self.clamp_selection()
        self.preview_scroll = 0

    # ---------- marks ----------

    def toggle_mark(self) -> None:
        """Mark or unmark the selected note, then step to the next one."""
        note = self.selected_note()
        if note is None:
            return
        self.marked ^= {note.id}
        self.move(1)

    def mark_all(self) -> int:
        self.marked = {n.id for n in self.notes}
        return len(self.marked)

    def clear_marks(self) -> int:
        count = len(self.marked)
        self.marked = set()
        return count

    def marked_notes(self) -> list[Note]:
        return [n for n in self.notes if n.id in self.marked]

    # ---------- search ----------

    def begin_search(self) -> None:
        self.mode = SEARCH
        self.search = SearchState(origin_index=self.selected_index)

    def set_query(self, query: str) -> None:
        search = self.search
        search.query = query
        search.matches = compute_matches(self.notes, query)
        search.active_match = 0
        if search.matches:
            self.select_index(search.matches[0][0])

    def type_text(self, text: str) -> None:
        self.set_query(self.search.query + text)

    def backspace(self) -> None:
        self.set_query(self.search.query[:-1])

    def step_match(self, delta: int) -> None:
        search = self.search
        if not search.matches:
            return
        search.active_match = (search.active_match + delta) % len(search.matches)
        self.select_index(search.matches[search.active_match][0])

    def commit_search(self) -> None:
        search = self.search
        if search.matches:
            self.select_index(search.matches[search.active_match][0])
        search.live = False
        self.mode = NORMAL

    def cancel_search(self) -> None:
        origin = self.search.origin_index if self.search else self.selected_index
        self.search = None
        self.mode = NORMAL
        self.select_index(origin)

    def visible_indices(self) -> list[int]:
        """Note indices shown in the list pane (live search narrows the list)."""
        if self.search is not None and self.search.live and self.search.query:
            return self.search.matched_indices()
        return list(range(len(self.notes)))

    # ---------- preview / status ----------

    def scroll_preview(self, delta: int, max_scroll: int) -> None:
        self.preview_scroll = min(max(self.preview_scroll + delta, 0), max(max_scroll, 0))

    def set_status(self, text: str) -> None:
        self.status = StatusMessage(text, self.tick)

    def expire_status(self, ttl: int) -> None:
        if self.status is not None and self.tick - self.status.created_tick > ttl:
            self.status = None
