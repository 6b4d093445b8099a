from __future__ import annotations
import re
from dataclasses import dataclass, field
from enum import Enum


class Style(str, Enum):
    HEADING = "heading"
    BOLD = "bold"
    ITALIC = "italic"
    CODE = "code"
    LIST_ITEM = "list_item"
    PLAIN = "plain"


@dataclass(frozen=True)
class Span:
    text: str
    style: Style = Style.PLAIN


@dataclass
class StyledLine:
    spans: list[Span] = field(default_factory=list)
    # 1-6 for headings, 0 otherwise
    level: int = 0

    @property
    def text(self) -> str:
        return "".join(s.text for s in self.spans)


HEADING_RE = re.compile(r"^(#{1,6})(?:\s+(.*?))?\s*$")
LIST_RE = re.compile(r"^(\s*)[-*]\s+(.*)$")
FENCE_RE = re.compile(r"^\s*```")
INLINE_RE = re.compile(
    r"\*\*(?!\s)(.+?)(?<!\s)\*\*"
    r"|\*(?!\s)(.+?)(?<!\s)\*"
    r"|`([^`]+)`"
)
_SPLIT_RE = re.compile(r"(\s+)")


def inline(text: str, base: Style = Style.PLAIN) -> list[Span]:
    """Split `text` into bold / italic / code spans; first match wins, no nesting."""
    spans: list[Span] = []
    pos = 0
    for m in INLINE_RE.finditer(text):
        if m.start() > pos:
            spans.append(Span(text[pos:m.start()], base))
        if m.group(1) is not None:
            spans.append(Span(m.group(1), Style.BOLD))
        elif m.group(2) is not None:
            spans.append(Span(m.group(2), Style.ITALIC))
        else:
            spans.append(Span(m.group(3), Style.CODE))
        pos = m.end()
    if pos < len(text):
        spans.append(Span(text[pos:], base))
    return spans


def _merge(spans: list[Span]) -> list[Span]:
    merged: list[Span] = []
    for span in spans:
        if merged and merged[-1].style == span.style:
            merged[-1] = Span(merged[-1].text + span.text, span.style)
        elif span.text:
            merged.append(span)
    return merged


def _atoms(spans: list[Span]) -> list[tuple[bool, list[Span]]]:
    # (is_space, pieces); a word may straddle several styled spans
    atoms: list[tuple[bool, list[Span]]] = []
    for span in spans:
        for part in _SPLIT_RE.split(span.text):
            if not part:
                continue
            is_space = part.isspace()
            if atoms and atoms[-1][0] == is_space:
                atoms[-1][1].append(Span(part, span.style))
            else:
                atoms.append((is_space, [Span(part, span.style)]))
    return atoms


def wrap_spans(spans: list[Span], width: int, hang: int = 0) -> list[StyledLine]:
    """
    Greedy word wrap of styled spans to `width` cells.

    Words are only split when a single word is wider than a line, in which
    case it is hard-cut. Continuation lines are indented by `hang` spaces.
    """
    width = max(width, 1)
    if hang >= width:
        hang = 0
    lines: list[StyledLine] = []
    cur: list[Span] = []
    cur_len = 0
    line_start = 0

    def flush() -> None:
        nonlocal cur, cur_len, line_start
        while cur and cur[-1].text.isspace():
            cur.pop()
        lines.append(StyledLine(_merge(cur)))
        cur = [Span(" " * hang, Style.LIST_ITEM)] if hang else []
        cur_len = line_start = hang

    for is_space, pieces in _atoms(spans):
        length = sum(len(p.text) for p in pieces)
        if is_space:
            if cur_len == line_start and lines:
                continue
            if cur_len + length <= width:
                cur.extend(pieces)
                cur_len += length
            else:
                flush()
            continue
        if cur_len + length <= width:
            cur.extend(pieces)
            cur_len += length
            continue
        if cur_len > line_start:
            flush()
        if cur_len + length <= width:
            cur.extend(pieces)
            cur_len += length
            continue
        chars = [(ch, p.style) for p in pieces for ch in p.text]
        while chars:
            room = width - cur_len
            if room <= 0:
                flush()
                room = width - cur_len
            take, chars = chars[:room], chars[room:]
            cur.extend(Span(ch, st) for ch, st in take)
            cur_len += len(take)

    if cur_len > line_start or not lines:
        while cur and cur[-1].text.isspace():
            cur.pop()
        lines.append(StyledLine(_merge(cur)))
    return lines


def _hard_wrap(text: str, width: int, style: Style) -> list[StyledLine]:
    if not text:
        return [StyledLine()]
    return [StyledLine([Span(text[i:i + width], style)]) for i in range(0, len(text), width)]


def render(text: str, width: int) -> list[StyledLine]:
    """Render note content into styled display lines no wider than `width`."""
    width = max(width, 1)
    lines: list[StyledLine] = []
    in_code = False
    for raw in text.splitlines():
        raw = raw.expandtabs(4)
        if FENCE_RE.match(raw):
            in_code = not in_code
            continue
        if in_code:
            lines.extend(_hard_wrap(raw, width, Style.CODE))
            continue

        m = HEADING_RE.match(raw)
        if m:
            level = len(m.group(1))
            for line in wrap_spans([Span(m.group(2) or "", Style.HEADING)], width):
                line.level = level
                lines.append(line)
            continue

        m = LIST_RE.match(raw)
        if m:
            prefix = "  " * (len(m.group(1)) // 2) + "• "
            spans = [Span(prefix, Style.LIST_ITEM)] + inline(m.group(2), Style.LIST_ITEM)
            lines.extend(wrap_spans(spans, width, hang=len(prefix)))
            continue

        lines.extend(wrap_spans(inline(raw), width))
    return lines
