from __future__ import annotations
import json
from datetime import datetime, UTC
from enum import Enum
from typing import Iterable, Optional

from pydantic import BaseModel, Field as PydField
from sqlmodel import Field, SQLModel


def normal_tags(tags: Optional[Iterable[str]]) -> list[str]:
    """Split on whitespace, drop empties and dedupe (case-sensitive), keeping first-seen order."""
    if not tags:
        return []
    seen: dict[str, None] = {}
    for t in tags:
        # a tag is one word; "two words" would not survive the editor tag line
        for word in (t or "").split():
            seen.setdefault(word, None)
    return list(seen)


class Note(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(index=True)
    content: str = ""
    # JSON array keeps insertion order, unlike a sorted CSV
    tags_json: str = Field(default="[]")

    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC), index=True)
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC), index=True)

    @property
    def tags(self) -> list[str]:
        if not self.tags_json:
            return []
        return [t for t in json.loads(self.tags_json) if t]

    def set_tags(self, tags: Iterable[str] | None) -> None:
        self.tags_json = json.dumps(normal_tags(tags), ensure_ascii=False)

    def touch(self) -> None:
        self.updated_at = datetime.now(UTC)


class NoteDraft(BaseModel):
    """A note that has not been persisted yet (editor round-trip payload)."""

    title: str = ""
    content: str = ""
    tags: list[str] = PydField(default_factory=list)

    @classmethod
    def from_note(cls, note: Note) -> "NoteDraft":
        return cls(title=note.title, content=note.content, tags=list(note.tags))


class SortMode(str, Enum):
    UPDATED = "updated"
    TITLE = "title"
    CREATED = "created"

    def next(self) -> "SortMode":
        order = [SortMode.UPDATED, SortMode.TITLE, SortMode.CREATED]
        return order[(order.index(self) + 1) % len(order)]

    @property
    def label(self) -> str:
        return {
            SortMode.UPDATED: "Updated ↓",
            SortMode.TITLE: "Title A→Z",
            SortMode.CREATED: "Created ↓",
        }[self]
