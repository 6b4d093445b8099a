"""
Pure rendering: AppState -> Frame (a grid of styled cells).

Nothing here talks to curses; `qnote.tui.screen` paints the frame.
"""
from __future__ import annotations
from dataclasses import dataclass

from ..config import Config
from ..markdown import Span, Style, StyledLine, render as render_markdown, wrap_spans
from ..models import Note
from .state import AppState, ConfirmDelete, ConfirmDeleteMarked, Search

# ui-only cell styles (markdown styles are used as-is)
SELECTED = "selected"
MATCH = "match"
META = "meta"
STATUS = "status"
BORDER = "border"
WARNING = "warning"
MARKED = "marked"
HELP = "help"

MIN_WIDTH = 20
MIN_HEIGHT = 3


class Frame:
    """`height` rows of `width` (char, style) cells; the last row is the status line."""

    def __init__(self, height: int, width: int):
        self.height = height
        self.width = width
        self.cells = [[(" ", Style.PLAIN.value) for _ in range(width)] for _ in range(height)]

    def put(self, y: int, x: int, text: str, style: str = Style.PLAIN.value, limit: int | None = None) -> int:
        """Write `text` at (y, x), clipped to `limit` cells and the frame; returns cells written."""
        if not 0 <= y < self.height or x < 0:
            return 0
        end = self.width if limit is None else min(self.width, x + max(limit, 0))
        written = 0
        for ch in text:
            if x + written >= end:
                break
            self.cells[y][x + written] = (ch if ch.isprintable() else " ", getattr(style, "value", style))
            written += 1
        return written

    def row_text(self, y: int) -> str:
        return "".join(ch for ch, _ in self.cells[y])

    def row_styles(self, y: int) -> list[str]:
        return [style for _, style in self.cells[y]]

    def runs(self, y: int) -> list[tuple[str, str]]:
        """Consecutive cells of one style joined, for painting."""
        out: list[tuple[str, str]] = []
        for ch, style in self.cells[y]:
            if out and out[-1][1] == style:
                out[-1] = (out[-1][0] + ch, style)
            else:
                out.append((ch, style))
        return out


@dataclass(frozen=True)
class Layout:
    height: int
    width: int
    body_height: int
    list_width: int
    preview_x: int
    preview_width: int


def layout(height: int, width: int, config: Config, help_rows: int = 1) -> Layout:
    """Split the screen; the bottom `help_rows` + 1 rows hold the help bar and status line."""
    body = max(height - 1 - help_rows, 0)
    list_width = min(max(int(width * config.ui.split_ratio), 1), max(width - 2, 1))
    preview_x = list_width + 1
    return Layout(height, width, body, list_width, preview_x, max(width - preview_x, 1))


def truncate(text: str, width: int) -> str:
    if len(text) <= width:
        return text
    if width <= 1:
        return text[:max(width, 0)]
    return text[:width - 1] + "…"


def tag_summary(tags: list[str]) -> str:
    return " ".join(f"#{t}" for t in tags)


def key_label(key: str) -> str:
    if key == " ":
        return "space"
    if key.startswith("ctrl-"):
        return "^" + key[5:]
    return key


def help_items(state: AppState, config: Config) -> list[str]:
    """Key hints for the current mode, most useful first."""
    kb = config.keybindings
    k = key_label
    mode = state.mode
    if isinstance(mode, (ConfirmDelete, ConfirmDeleteMarked)):
        return [f"{k(kb.confirm)} confirm", "any other key cancels"]
    if isinstance(mode, Search):
        return [f"{k(kb.next_match)}/{k(kb.prev_match)} next/prev", "enter accept", "esc cancel"]

    items = [
        f"{k(kb.move_down)}/{k(kb.move_up)} nav",
        f"{k(kb.edit)} edit",
        f"{k(kb.new_note)} new",
        f"{k(kb.delete)} del",
        f"{k(kb.search)} search",
        f"{k(kb.toggle_mark)} mark",
        f"{k(kb.quit)} quit",
        f"{k(kb.scroll_down)}/{k(kb.scroll_up)} scroll",
        f"{k(kb.goto_top)}/{k(kb.goto_bottom)} top/bot",
        f"{k(kb.sort)} sort",
        f"{k(kb.export)} export",
        "esc clear",
        f"{k(kb.toggle_help)} help",
    ]
    marked = len(state.marked)
    if marked:
        # batch actions lead while something is marked
        return [
            f"{k(kb.delete_marked)} delete ({marked})",
            f"{k(kb.export_marked)} export ({marked})",
            f"{k(kb.clear_marks)} clear",
        ] + items
    return items + [f"{k(kb.mark_all)} mark all", f"{k(kb.clear_marks)} clear"]


def help_lines(state: AppState, height: int, width: int, config: Config) -> list[str]:
    """
    Rows of the help bar.

    Collapsed, the hints that fit go on one row followed by a "more"
    marker. Expanded, they wrap over as many rows as needed, leaving at
    least one body row and the status line.
    """
    room = max(width - 2, 1)
    items = [truncate(item, room) for item in help_items(state, config)]
    if state.help_expanded:
        lines: list[str] = []
        for item in items:
            if lines and len(lines[-1]) + 2 + len(item) <= room:
                lines[-1] += "  " + item
            else:
                lines.append(item)
        return lines[:max(height - 2, 1)]

    full = "  ".join(items)
    if len(full) <= room:
        return [full]
    more = f"… {key_label(config.keybindings.toggle_help)} more"
    shown: list[str] = []
    for item in items:
        if len("  ".join(shown + [item, more])) > room:
            break
        shown.append(item)
    return [truncate("  ".join(shown + [more]), room)]


def preview_lines(note: Note, width: int) -> list[StyledLine]:
    lines = wrap_spans([Span(note.title, Style.HEADING)], width)
    for line in lines:
        line.level = 1
    meta = "  ".join(filter(None, [tag_summary(note.tags), f"updated {note.updated_at:%Y-%m-%d %H:%M}"]))
    lines += wrap_spans([Span(meta, Style.ITALIC)], width)
    lines.append(StyledLine())
    lines += render_markdown(note.content, width)
    return lines


def max_preview_scroll(state: AppState, height: int, width: int, config: Config) -> int:
    note = state.selected_note()
    if note is None:
        return 0
    lay = layout(height, width, config, len(help_lines(state, height, width, config)))
    return max(len(preview_lines(note, lay.preview_width)) - lay.body_height, 0)


def _draw_list(frame: Frame, state: AppState, lay: Layout, config: Config) -> None:
    rows = state.visible_indices()
    if not state.notes:
        frame.put(0, 1, f"No notes. Press {config.keybindings.new_note} to create one.", META, limit=lay.list_width - 1)
        return
    if not rows:
        frame.put(0, 1, "No matches", META, limit=lay.list_width - 1)
        return

    pos = rows.index(state.selected_index) if state.selected_index in rows else 0
    offset = max(0, pos - lay.body_height + 1)
    search = state.search
    committed = set(search.matched_indices()) if search is not None and not search.live else set()

    for y, idx in enumerate(rows[offset:offset + lay.body_height]):
        note = state.notes[idx]
        selected = idx == state.selected_index
        style = SELECTED if selected else Style.PLAIN.value
        if selected:
            frame.put(y, 0, " " * lay.list_width, SELECTED)
            frame.put(y, 0, "▎", SELECTED)
        elif idx in committed:
            frame.put(y, 0, "*", MATCH)
        if note.id in state.marked:
            frame.put(y, 1, "●", SELECTED if selected else MARKED)
        room = lay.list_width - 2
        written = frame.put(y, 2, truncate(note.title, room), style, limit=room)
        tags = tag_summary(note.tags)
        left = room - written - 1
        if tags and left >= 2:
            frame.put(y, 2 + written + 1, truncate(tags, left), SELECTED if selected else META, limit=left)


def _draw_preview(frame: Frame, state: AppState, lay: Layout) -> None:
    note = state.selected_note()
    if note is None:
        return
    lines = preview_lines(note, lay.preview_width)
    scroll = min(state.preview_scroll, max(len(lines) - lay.body_height, 0))
    for y, line in enumerate(lines[scroll:scroll + lay.body_height]):
        x = lay.preview_x
        for span in line.spans:
            x += frame.put(y, x, span.text, span.style, limit=lay.width - x)


def status_text(state: AppState, config: Config) -> tuple[str, str]:
    """(text, style) for the bottom line."""
    mode = state.mode
    kb = config.keybindings
    if isinstance(mode, ConfirmDelete):
        target = next((n for n in state.notes if n.id == mode.target_id), None)
        title = target.title if target else f"#{mode.target_id}"
        return f"Delete '{title}'? ({kb.confirm}/N)", WARNING
    if isinstance(mode, ConfirmDeleteMarked):
        return f"Delete {len(mode.target_ids)} marked notes? ({kb.confirm}/N)", WARNING

    text = f"[{mode.label}] sort: {state.sort_mode.label}"
    search = state.search
    if search is not None and search.live:
        count = len(search.matches)
        where = f" [{search.active_match + 1}/{count}]" if count else ""
        text += f"  /{search.query}  {count} match{'es' if count != 1 else ''}{where}"
    else:
        text += f"  {len(state.notes)} notes"
        if search is not None:
            text += f"  /{search.query} ({len(search.matches)})"
    if state.marked:
        text += f"  {len(state.marked)} marked"

    status = state.status
    if status is not None and state.tick - status.created_tick <= config.ui.message_display_ticks:
        text += f"  | {status.text}"
    return text, STATUS


def render(state: AppState, height: int, width: int, config: Config) -> Frame:
    frame = Frame(height, width)
    if width < MIN_WIDTH or height < MIN_HEIGHT:
        frame.put(0, 0, "Terminal too small", WARNING)
        return frame

    hints = help_lines(state, height, width, config)
    lay = layout(height, width, config, len(hints))
    _draw_list(frame, state, lay, config)
    for y in range(lay.body_height):
        frame.put(y, lay.list_width, "│", BORDER)
    _draw_preview(frame, state, lay)
    for y, line in enumerate(hints, start=lay.body_height):
        frame.put(y, 1, line, HELP, limit=width - 1)

    text, style = status_text(state, config)
    frame.put(height - 1, 0, " " * width, style)
    frame.put(height - 1, 1, text, style, limit=width - 1)
    return frame
