from datetime import datetime

from qnote.config import Config, UiConfig
from qnote.markdown import Style
from qnote.models import Note
from qnote.tui import render
from qnote.tui.state import AppState, ConfirmDelete, ConfirmDeleteMarked


def note(id, title, content="", tags=()):
    n = Note(id=id, title=title, content=content, updated_at=datetime(2024, 5, 1, 9, 30))
    n.set_tags(tags)
    return n


def state_with(*notes):
    s = AppState()
    s.set_notes(list(notes), fallback_first=True)
    return s


def test_layout_split():
    lay = render.layout(24, 100, Config(ui=UiConfig(split_ratio=0.4)))
    # one help row and the status line below the body
    assert (lay.body_height, lay.list_width, lay.preview_x, lay.preview_width) == (22, 40, 41, 59)

def test_truncate():
    assert render.truncate("short", 10) == "short"
    assert render.truncate("a long title", 6) == "a lon…"

def test_empty_store_hint():
    frame = render.render(AppState(), 10, 60, Config())
    assert "No notes" in frame.row_text(0)
    assert "[NORMAL]" in frame.row_text(9)

def test_list_preview_and_status():
    s = state_with(note(1, "Groceries", "# Buy\n**milk** now", ["home"]), note(2, "Work"))
    frame = render.render(s, 12, 80, Config())
    lay = render.layout(12, 80, Config())

    row0 = frame.row_text(0)
    assert row0[2:11] == "Groceries"
    assert "#home" in row0[:lay.list_width]
    assert set(frame.row_styles(0)[:lay.list_width]) == {render.SELECTED}
    assert frame.row_text(1)[2:6] == "Work"

    # preview: title, meta, blank, then the rendered body
    assert frame.cells[0][lay.preview_x] == ("G", Style.HEADING.value)
    assert "updated 2024-05-01 09:30" in frame.row_text(1)[lay.preview_x:]
    assert frame.row_text(3)[lay.preview_x:].rstrip() == "Buy"
    assert frame.cells[4][lay.preview_x] == ("m", Style.BOLD.value)

    status = frame.row_text(11)
    assert "[NORMAL]" in status
    assert "Updated" in status
    assert "2 notes" in status

def test_preview_scroll_offsets_body():
    body = "\n".join(f"line {i}" for i in range(30))
    s = state_with(note(1, "long", body))
    s.preview_scroll = 5
    frame = render.render(s, 10, 80, Config())
    lay = render.layout(10, 80, Config())
    assert frame.row_text(0)[lay.preview_x:].rstrip() == "line 2"
    assert render.max_preview_scroll(s, 10, 80, Config()) == 33 - 8

def test_live_search_filters_list_and_shows_count():
    s = state_with(note(1, "alpha"), note(2, "beta"), note(3, "alps"))
    s.begin_search()
    s.type_text("alp")
    frame = render.render(s, 10, 60, Config())
    listed = [frame.row_text(y)[2:7].strip() for y in range(2)]
    assert sorted(listed) == ["alpha", "alps"]
    assert "beta" not in frame.row_text(2)
    status = frame.row_text(9)
    assert "/alp  2 matches [1/2]" in status
    # mode and sort stay visible while typing
    assert status.lstrip().startswith("[SEARCH] sort: Updated")

def test_committed_search_marks_matches():
    s = state_with(note(1, "alpha"), note(2, "beta"), note(3, "gamma"))
    s.begin_search()
    s.type_text("bet")
    s.commit_search()
    s.move(1)
    frame = render.render(s, 10, 60, Config())
    assert frame.row_text(1)[0] == "*"
    assert "/bet (1)" in frame.row_text(9)

def test_confirm_delete_prompt():
    s = state_with(note(7, "Old stuff"))
    s.mode = ConfirmDelete(7)
    frame = render.render(s, 10, 60, Config())
    assert "Delete 'Old stuff'? (y/N)" in frame.row_text(9)
    assert frame.row_styles(9)[1] == render.WARNING

def test_marked_rows_get_a_marker():
    s = state_with(note(1, "alpha"), note(2, "beta"))
    s.marked = {2}
    frame = render.render(s, 10, 60, Config())
    assert frame.cells[1][1] == ("●", render.MARKED)
    assert frame.row_text(0)[1] == " "
    assert "1 marked" in frame.row_text(9)

def test_bulk_delete_prompt():
    s = state_with(note(1, "a"), note(2, "b"))
    s.mode = ConfirmDeleteMarked(frozenset({1, 2}))
    frame = render.render(s, 10, 60, Config())
    assert "Delete 2 marked notes? (y/N)" in frame.row_text(9)
    assert render.help_items(s, Config())[0] == "y confirm"

def test_help_bar_collapses_and_expands():
    s = state_with(note(1, "alpha"))
    config = Config()
    frame = render.render(s, 10, 60, config)
    hint = frame.row_text(8)
    assert hint.startswith(" j/k nav  e edit")
    assert hint.rstrip().endswith("… . more")
    assert frame.row_styles(8)[1] == render.HELP

    s.help_expanded = True
    lines = render.help_lines(s, 10, 60, config)
    assert len(lines) > 1
    assert all(len(line) <= 58 for line in lines)
    assert "A mark all" in "  ".join(lines)
    frame = render.render(s, 10, 60, config)
    assert frame.row_text(9 - len(lines)).startswith(" j/k nav")
    assert "[NORMAL]" in frame.row_text(9)

def test_help_follows_mode_and_marks():
    s = state_with(note(1, "alpha"))
    s.marked = {1}
    assert render.help_items(s, Config())[0] == "D delete (1)"
    s.begin_search()
    assert render.help_items(s, Config()) == ["^n/^p next/prev", "enter accept", "esc cancel"]

def test_status_message_shown_until_expired():
    s = state_with(note(1, "a"))
    s.set_status("Saved")
    config = Config()
    assert "Saved" in render.render(s, 10, 60, config).row_text(9)
    s.tick += config.ui.message_display_ticks + 1
    assert "Saved" not in render.render(s, 10, 60, config).row_text(9)

def test_tiny_terminal():
    frame = render.render(state_with(note(1, "a")), 10, 19, Config())
    assert frame.row_text(0).startswith("Terminal too small")

def test_frame_clips_and_blanks_control_chars():
    frame = render.Frame(2, 5)
    assert frame.put(0, 3, "abc") == 2
    assert frame.put(1, 0, "a\tb") == 3
    assert frame.row_text(0) == "   ab"
    assert frame.row_text(1) == "a b  "
    assert frame.runs(0) == [("   ab", "plain")]
