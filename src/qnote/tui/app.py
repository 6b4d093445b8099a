from __future__ import annotations
import logging
from typing import Callable, Optional

from .. import services
from ..config import Config
from ..editor import EditorBridge
from ..errors import EditorError, ParseError, StoreError
from ..models import NoteDraft
from . import render
from .state import EDITING, NORMAL, AppState, ConfirmDelete, ConfirmDeleteMarked, Search

log = logging.getLogger(__name__)

# fixed keys that mirror configurable actions in normal mode
NORMAL_ALIASES = {
    "down": "move_down",
    "up": "move_up",
    "home": "goto_top",
    "end": "goto_bottom",
    "enter": "edit",
    "pagedown": "scroll_down",
    "pageup": "scroll_up",
    "escape": "clear",
}


class App:
    """
    Owns the session state and applies one key at a time.

    `store` is anything exposing the `qnote.services` note functions
    (list_notes, create_note, edit_note, delete_note, export_note).
    """

    def __init__(self, store=services, config: Optional[Config] = None, bridge: Optional[EditorBridge] = None):
        self.store = store
        self.config = config or Config()
        self.bridge = bridge or EditorBridge(self.config.editor)
        self.state = AppState()
        # (height, width) of the terminal, refreshed by the loop before each render
        self.screen_size = (24, 80)

        kb = self.config.keybindings
        handlers: dict[str, Callable[[], None]] = {
            "move_down": lambda: self.state.move(1),
            "move_up": lambda: self.state.move(-1),
            "goto_top": self.state.goto_top,
            "goto_bottom": self.state.goto_bottom,
            "new_note": self.new_note,
            "edit": self.edit_selected,
            "delete": self.request_delete,
            "export": self.export_selected,
            "search": self.state.begin_search,
            "sort": self.cycle_sort,
            "scroll_down": lambda: self.scroll_preview(1),
            "scroll_up": lambda: self.scroll_preview(-1),
            "clear": self.clear_search_and_marks,
            "toggle_mark": self.toggle_mark,
            "mark_all": self.mark_all,
            "clear_marks": self.clear_marks,
            "delete_marked": self.request_delete_marked,
            "export_marked": self.export_marked,
            "toggle_help": self.toggle_help,
        }
        self._normal_keys = {key: handlers[action] for key, action in NORMAL_ALIASES.items() if action in handlers}
        for action, handler in handlers.items():
            if hasattr(kb, action):
                self._normal_keys[getattr(kb, action)] = handler
        self._quit_keys = {kb.quit, "ctrl-c"}

    # ---------- store sync ----------

    def load(self) -> None:
        """First fetch. Errors propagate: an unreadable store is fatal at startup."""
        self.state.set_notes(self.store.list_notes(self.state.sort_mode), fallback_first=True)

    def refresh(self, keep_id: Optional[int] = None, fallback_first: bool = False) -> bool:
        try:
            notes = self.store.list_notes(self.state.sort_mode)
        except StoreError as exc:
            # keep the previous snapshot
            self._fail("Refresh failed", exc)
            return False
        self.state.set_notes(notes, keep_id=keep_id, fallback_first=fallback_first)
        return True

    def _fail(self, what: str, exc: Exception) -> None:
        log.warning("%s: %s", what, exc)
        self.state.set_status(f"{what}: {exc}")

    # ---------- input ----------

    def handle_key(self, key: str) -> bool:
        """Apply one key press. Returns False when the session should end."""
        mode = self.state.mode
        if isinstance(mode, (ConfirmDelete, ConfirmDeleteMarked)):
            self._on_confirm(key, mode)
            return True
        if isinstance(mode, Search):
            return self._on_search(key)
        return self._on_normal(key)

    def _on_normal(self, key: str) -> bool:
        if key in self._quit_keys:
            return False
        handler = self._normal_keys.get(key)
        if handler is not None:
            handler()
        return True

    def _on_search(self, key: str) -> bool:
        kb = self.config.keybindings
        state = self.state
        if key == "ctrl-c":
            return False
        if key == "escape":
            state.cancel_search()
        elif key == "enter":
            state.commit_search()
            state.set_status(f"{len(state.search.matches)} matching notes")
        elif key in (kb.next_match, "down"):
            state.step_match(1)
        elif key in (kb.prev_match, "up"):
            state.step_match(-1)
        elif key == "backspace":
            state.backspace()
        elif len(key) == 1 and key.isprintable():
            state.type_text(key)
        return True

    def _on_confirm(self, key: str, mode: ConfirmDelete | ConfirmDeleteMarked) -> None:
        if key == "resize":
            # the prompt is redrawn at the new size
            return
        self.state.mode = NORMAL
        if key != self.config.keybindings.confirm:
            self.state.set_status("Delete cancelled")
            return
        if isinstance(mode, ConfirmDeleteMarked):
            self._delete_marked(mode.target_ids)
            return
        target = next((n for n in self.state.notes if n.id == mode.target_id), None)
        title = target.title if target else f"#{mode.target_id}"
        try:
            self.store.delete_note(mode.target_id)
        except StoreError as exc:
            self._fail("Delete failed", exc)
            return
        if self.refresh():
            self.state.set_status(f"Deleted '{title}'")

    def _delete_marked(self, ids: frozenset[int]) -> None:
        deleted = failed = 0
        for note_id in sorted(ids):
            try:
                self.store.delete_note(note_id)
            except StoreError as exc:
                log.warning("bulk delete of note %s failed: %s", note_id, exc)
                failed += 1
            else:
                deleted += 1
        text = f"Deleted {deleted} notes" + (f" ({failed} failed)" if failed else "")
        if self.refresh():
            self.state.set_status(text)

    # ---------- actions ----------

    def request_delete(self) -> None:
        note = self.state.selected_note()
        if note is None:
            self.state.set_status("No note selected")
            return
        self.state.mode = ConfirmDelete(note.id)

    def clear_search_and_marks(self) -> None:
        had_search = self.state.search is not None
        self.state.search = None
        count = self.state.clear_marks()
        if had_search and count:
            self.state.set_status("Cleared search and marks")
        elif had_search:
            self.state.set_status("Search cleared")
        elif count:
            self.state.set_status("Marks cleared")

    def toggle_mark(self) -> None:
        if self.state.selected_note() is None:
            self.state.set_status("No note selected")
            return
        self.state.toggle_mark()

    def mark_all(self) -> None:
        self.state.set_status(f"Marked {self.state.mark_all()} notes")

    def clear_marks(self) -> None:
        count = self.state.clear_marks()
        if count:
            self.state.set_status(f"Cleared {count} marks")

    def request_delete_marked(self) -> None:
        if not self.state.marked:
            self.state.set_status("No notes marked")
            return
        self.state.mode = ConfirmDeleteMarked(frozenset(self.state.marked))

    def export_marked(self) -> None:
        notes = self.state.marked_notes()
        if not notes:
            self.state.set_status("No notes marked")
            return
        directory = self.config.export.directory
        exported = failed = 0
        for note in notes:
            try:
                self.store.export_note(note, directory)
            except OSError as exc:
                log.warning("export of note %s failed: %s", note.id, exc)
                failed += 1
            else:
                exported += 1
        text = f"Exported {exported} notes to {directory}"
        self.state.set_status(text + (f" ({failed} failed)" if failed else ""))

    def toggle_help(self) -> None:
        self.state.help_expanded = not self.state.help_expanded

    def cycle_sort(self) -> None:
        note = self.state.selected_note()
        previous = self.state.sort_mode
        self.state.sort_mode = previous.next()
        if not self.refresh(keep_id=note.id if note else None):
            self.state.sort_mode = previous
            return
        self.state.set_status(f"Sort: {self.state.sort_mode.label}")

    def scroll_preview(self, direction: int) -> None:
        height, width = self.screen_size
        max_scroll = render.max_preview_scroll(self.state, height, width, self.config)
        self.state.scroll_preview(direction * self.config.ui.preview_scroll_step, max_scroll)

    def export_selected(self) -> None:
        note = self.state.selected_note()
        if note is None:
            self.state.set_status("No note selected")
            return
        try:
            path = self.store.export_note(note, self.config.export.directory)
        except OSError as exc:
            self._fail("Export failed", exc)
            return
        self.state.set_status(f"Exported to {path}")

    def _run_editor(self, draft: NoteDraft) -> Optional[NoteDraft]:
        self.state.mode = EDITING
        try:
            edited = self.bridge.edit(draft)
        except (EditorError, ParseError) as exc:
            self._fail("Edit abandoned", exc)
            return None
        finally:
            self.state.mode = NORMAL
        if edited is None:
            self.state.set_status("Cancelled (empty title)")
        return edited

    def _report_cleanup(self) -> None:
        """Append a leftover temp file to whatever the edit ended with."""
        error = self.bridge.cleanup_error
        if error is None:
            return
        text = self.state.status.text if self.state.status else "Edit finished"
        self.state.set_status(f"{text} (temp file not removed: {error})")

    def new_note(self) -> None:
        try:
            draft = self._run_editor(NoteDraft())
            if draft is None:
                return
            try:
                note = self.store.create_note(draft.title, draft.content, draft.tags)
            except StoreError as exc:
                self._fail("Create failed", exc)
                return
            if self.refresh(keep_id=note.id, fallback_first=True):
                self.state.set_status(f"Created '{note.title}'")
        finally:
            self._report_cleanup()

    def edit_selected(self) -> None:
        note = self.state.selected_note()
        if note is None:
            self.state.set_status("No note selected")
            return
        try:
            draft = self._run_editor(NoteDraft.from_note(note))
            if draft is None:
                return
            try:
                self.store.edit_note(note.id, title=draft.title, content=draft.content, tags=draft.tags)
            except StoreError as exc:
                self._fail("Save failed", exc)
                return
            if self.refresh(keep_id=note.id):
                self.state.set_status("Note saved")
        finally:
            self._report_cleanup()

    # ---------- loop ----------

    def frame(self) -> render.Frame:
        """Advance one render tick and draw the current state."""
        height, width = self.screen_size
        state = self.state
        state.tick += 1
        state.expire_status(self.config.ui.message_display_ticks)
        state.preview_scroll = min(state.preview_scroll, render.max_preview_scroll(state, height, width, self.config))
        return render.render(state, height, width, self.config)

    def run(self, screen) -> None:
        timeout = self.config.ui.tick_interval_ms
        while True:
            self.screen_size = screen.size()
            screen.draw(self.frame())
            key = screen.read_key(timeout)
            if key is None:
                continue
            if not self.handle_key(key):
                break
        log.info("tui session ended")
