"""
curses terminal wrapper: key translation, painting frames, and handing the
terminal to a child process.
"""
from __future__ import annotations
import contextlib
import curses
import logging
import os
from typing import Iterator, Optional, Union

from ..config import ThemeConfig
from ..errors import TerminalError
from ..markdown import Style
from .render import BORDER, HELP, MARKED, MATCH, META, SELECTED, STATUS, WARNING, Frame

log = logging.getLogger(__name__)

COLORS = {
    "default": -1,
    "black": curses.COLOR_BLACK,
    "red": curses.COLOR_RED,
    "green": curses.COLOR_GREEN,
    "yellow": curses.COLOR_YELLOW,
    "blue": curses.COLOR_BLUE,
    "magenta": curses.COLOR_MAGENTA,
    "cyan": curses.COLOR_CYAN,
    "white": curses.COLOR_WHITE,
}

SPECIAL_KEYS = {
    curses.KEY_UP: "up",
    curses.KEY_DOWN: "down",
    curses.KEY_LEFT: "left",
    curses.KEY_RIGHT: "right",
    curses.KEY_HOME: "home",
    curses.KEY_END: "end",
    curses.KEY_NPAGE: "pagedown",
    curses.KEY_PPAGE: "pageup",
    curses.KEY_ENTER: "enter",
    curses.KEY_BACKSPACE: "backspace",
    curses.KEY_DC: "delete",
    curses.KEY_RESIZE: "resize",
}


def translate(key: Union[int, str]) -> Optional[str]:
    """
    Map a `get_wch()` result to a key name.

    Printable characters stay themselves; control characters become
    "ctrl-<letter>"; a few have their own names ("enter", "escape",
    "backspace", "tab"). Unknown function keys map to None.
    """
    if isinstance(key, int):
        return SPECIAL_KEYS.get(key)
    if key == "\r":
        return "enter"
    if key == "\x1b":
        return "escape"
    if key in ("\x7f", "\x08"):
        return "backspace"
    if key == "\t":
        return "tab"
    code = ord(key)
    if 1 <= code <= 26:
        return f"ctrl-{chr(code + 96)}"
    if code < 32:
        return None
    return key


class Screen:
    """Full-screen session; use as a context manager."""

    def __init__(self, theme: Optional[ThemeConfig] = None):
        self.theme = theme or ThemeConfig()
        self.stdscr = None
        self.attrs: dict[str, int] = {}

    def __enter__(self) -> "Screen":
        # must be set before initscr or a lone Escape waits a full second
        os.environ.setdefault("ESCDELAY", "25")
        try:
            # initscr exits the process on an unknown $TERM; setupterm raises instead
            curses.setupterm()
            self.stdscr = curses.initscr()
            curses.noecho()
            curses.raw()
            curses.nonl()
            self.stdscr.keypad(True)
        except curses.error as exc:
            self._restore()
            raise TerminalError(f"Cannot initialise terminal: {exc}") from exc
        with contextlib.suppress(curses.error):
            curses.curs_set(0)
        self._init_colors()
        return self

    def __exit__(self, *exc_info) -> None:
        self._restore()

    def _restore(self) -> None:
        if self.stdscr is None:
            return
        with contextlib.suppress(curses.error):
            self.stdscr.keypad(False)
            curses.noraw()
            curses.echo()
            curses.nl()
        try:
            curses.endwin()
        except curses.error as exc:
            log.warning("endwin failed: %s", exc)
        self.stdscr = None

    def _init_colors(self) -> None:
        base = {
            Style.PLAIN.value: curses.A_NORMAL,
            Style.BOLD.value: curses.A_BOLD,
            Style.ITALIC.value: getattr(curses, "A_ITALIC", curses.A_DIM),
            Style.LIST_ITEM.value: curses.A_NORMAL,
            Style.HEADING.value: curses.A_BOLD,
            Style.CODE.value: curses.A_NORMAL,
            SELECTED: curses.A_REVERSE,
            MATCH: curses.A_BOLD,
            META: curses.A_DIM,
            STATUS: curses.A_REVERSE,
            BORDER: curses.A_DIM,
            WARNING: curses.A_BOLD | curses.A_REVERSE,
            MARKED: curses.A_BOLD,
            HELP: curses.A_DIM,
        }
        self.attrs = dict(base)
        if not curses.has_colors():
            return
        try:
            curses.start_color()
            curses.use_default_colors()
        except curses.error:
            log.info("terminal has no default colours; painting without theme")
            return

        th = self.theme
        themed = [
            (Style.HEADING.value, th.heading),
            (Style.CODE.value, th.code),
            (SELECTED, th.selection),
            (MATCH, th.match),
            (META, th.metadata),
            (STATUS, th.status),
            (WARNING, "red"),
            (MARKED, th.selection),
            (HELP, th.metadata),
        ]
        for pair, (name, color) in enumerate(themed, start=1):
            try:
                curses.init_pair(pair, COLORS[color], -1)
            except curses.error:
                continue
            self.attrs[name] = base[name] | curses.color_pair(pair)

    # ---------- i/o ----------

    def size(self) -> tuple[int, int]:
        return self.stdscr.getmaxyx()

    def read_key(self, timeout_ms: int) -> Optional[str]:
        """Wait up to `timeout_ms` for a key; None on timeout or an unmapped key."""
        self.stdscr.timeout(timeout_ms)
        try:
            key = self.stdscr.get_wch()
        except curses.error:
            return None
        except KeyboardInterrupt:
            return "ctrl-c"
        return translate(key)

    def draw(self, frame: Frame) -> None:
        self.stdscr.erase()
        height, width = self.size()
        for y in range(min(frame.height, height)):
            x = 0
            for text, style in frame.runs(y):
                text = text[:max(width - x, 0)]
                if not text:
                    break
                try:
                    self.stdscr.addstr(y, x, text, self.attrs.get(style, curses.A_NORMAL))
                except curses.error:
                    # writing the bottom-right cell moves the cursor off-screen
                    pass
                x += len(text)
        self.stdscr.refresh()

    @contextlib.contextmanager
    def suspended(self) -> Iterator[None]:
        """Give the terminal back to the shell (e.g. for the editor), then reclaim it."""
        curses.def_prog_mode()
        curses.endwin()
        try:
            yield
        finally:
            curses.reset_prog_mode()
            with contextlib.suppress(curses.error):
                curses.curs_set(0)
            self.stdscr.keypad(True)
            self.stdscr.clearok(True)
            self.stdscr.refresh()
