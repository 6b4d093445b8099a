from __future__ import annotations
from collections import Counter
from pathlib import Path
from typing import Iterable, Optional
import logging

from sqlmodel import func, or_, select

from .db import session_scope
from .editor import parse_draft, serialize_draft
from .errors import AmbiguousNote, NoteNotFound, ParseError, StoreError
from .models import Note, NoteDraft, SortMode

log = logging.getLogger(__name__)


def _require_title(title: str) -> str:
    title = (title or "").strip()
    if not title:
        raise StoreError("Note title must not be empty")
    if "\n" in title or "\r" in title:
        raise StoreError("Note title must be a single line")
    return title


def _clean_content(content: Optional[str]) -> str:
    return (content or "").replace("\r\n", "\n")


def create_note(title: str, content: str = "", tags: Optional[Iterable[str]] = None) -> Note:
    title = _require_title(title)
    with session_scope() as s:
        note = Note(title=title, content=_clean_content(content))
        note.set_tags(tags)
        s.add(note)
        s.flush()  # get the ID assigned
        s.refresh(note)  # get any defaults set by DB
    log.info("created note id=%s", note.id)
    return note


def list_notes(
    sort: SortMode | str = SortMode.UPDATED,
    tag: Optional[str] = None,
    limit: Optional[int] = None,
) -> list[Note]:
    """
    Return notes ordered by `sort`.
    - updated / created: newest first
    - title: case-insensitive A→Z
    Ties fall back to id so the order is stable between calls.
    """
    sort = SortMode(sort)
    with session_scope() as s:
        stmt = select(Note)
        if sort is SortMode.CREATED:
            stmt = stmt.order_by(Note.created_at.desc(), Note.id.desc())
        elif sort is SortMode.TITLE:
            stmt = stmt.order_by(func.lower(Note.title).asc(), Note.id.asc())
        else:
            stmt = stmt.order_by(Note.updated_at.desc(), Note.id.desc())
        if tag:
            # tags live in a JSON column; filter on the decoded list
            notes = [n for n in s.exec(stmt) if tag.strip() in n.tags]
            return notes[:limit] if limit is not None else notes
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(s.exec(stmt))


def get_note(note_id: int) -> Optional[Note]:
    with session_scope() as s:
        return s.get(Note, int(note_id))


def edit_note(
    note_id: int,
    *,
    title: Optional[str] = None,
    content: Optional[str] = None,
    tags: Optional[Iterable[str]] = None,
) -> Note:
    """
    Update fields and bump updated_at. Returns the updated note.
    """
    with session_scope() as s:
        note = s.get(Note, int(note_id))
        if not note:
            raise NoteNotFound(note_id)
        if title is not None:
            note.title = _require_title(title)
        if content is not None:
            note.content = _clean_content(content)
        if tags is not None:
            note.set_tags(tags)
        note.touch()
        s.add(note)
        s.flush()
        s.refresh(note)
    log.info("updated note id=%s", note_id)
    return note


def update_from_draft(note_id: int, draft: NoteDraft) -> Note:
    return edit_note(note_id, title=draft.title, content=draft.content, tags=draft.tags)


def delete_note(note_id: int) -> None:
    with session_scope() as s:
        note = s.get(Note, int(note_id))
        if not note:
            raise NoteNotFound(note_id)
        s.delete(note)
    log.info("deleted note id=%s", note_id)


def search_notes(query: str) -> list[Note]:
    """Substring search over title, content and tags; title hits rank first."""
    query = (query or "").strip()
    if not query:
        return []
    with session_scope() as s:
        stmt = (
            select(Note)
            .where(or_(
                Note.title.contains(query, autoescape=True),
                Note.content.contains(query, autoescape=True),
                Note.tags_json.contains(query, autoescape=True),
            ))
            .order_by(Note.updated_at.desc(), Note.id.desc())
        )
        notes = list(s.exec(stmt))
    needle = query.lower()
    # stable sort keeps the recency order inside each group
    return sorted(notes, key=lambda n: needle not in n.title.lower())


def list_tags() -> dict[str, int]:
    counts: Counter[str] = Counter()
    for note in list_notes():
        counts.update(note.tags)
    return dict(sorted(counts.items(), key=lambda kv: (-kv[1], kv[0])))


def resolve_note(identifier: int | str) -> Note:
    """Find a note by numeric id or by a unique case-insensitive title fragment."""
    text = str(identifier).strip()
    if text.isdigit():
        note = get_note(int(text))
        if not note:
            raise NoteNotFound(text)
        return note
    needle = text.lower()
    matches = [n for n in list_notes() if needle in n.title.lower()]
    if not matches:
        raise NoteNotFound(text)
    exact = [n for n in matches if n.title.lower() == needle]
    if len(exact) == 1:
        return exact[0]
    if len(matches) > 1:
        raise AmbiguousNote(text, matches)
    return matches[0]


def note_stats() -> dict:
    notes = list_notes()
    if not notes:
        return {"total": 0}
    return {
        "total": len(notes),
        "tags": len({t for n in notes for t in n.tags}),
        "size_kb": sum(len(n.title) + len(n.content) for n in notes) / 1024,
        "oldest": min(notes, key=lambda n: n.created_at),
        "newest": max(notes, key=lambda n: n.updated_at),
    }


# ---------- markdown files ----------

def note_to_markdown(note: Note) -> str:
    """Same layout as the editor file, so exports can be imported again."""
    return serialize_draft(NoteDraft.from_note(note))


def sanitize_filename(title: str) -> str:
    name = "".join(ch if ch.isalnum() else "_" for ch in title.strip())
    return name or "untitled"


def export_note(note: Note, directory: Path | str = ".", filename: Optional[str] = None) -> Path:
    """Write `note` as markdown; never overwrites, appends _1, _2, ... instead."""
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    if filename:
        target = directory / filename
    else:
        stem = sanitize_filename(note.title)
        target = directory / f"{stem}.md"
        n = 1
        while target.exists():
            target = directory / f"{stem}_{n}.md"
            n += 1
    target.write_text(note_to_markdown(note), encoding="utf-8")
    log.info("exported note id=%s to %s", note.id, target)
    return target


def import_markdown(path: Path) -> Optional[Note]:
    """Create a note from a file in the editor format; None if it has no title."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise ParseError(f"{path} is not UTF-8 text") from exc
    draft = parse_draft(text)
    if draft is None:
        return None
    return create_note(draft.title, draft.content, draft.tags)
