from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from notekeeper.storage.notes_store import Note


class ShareLinkOut(BaseModel):
    token: str
    url: str


class ShareLinkStatusOut(BaseModel):
    token: str
    url: str
    is_used: bool
    created_at: datetime
    used_at: Optional[datetime] = None


class SharedNoteOut(BaseModel):
    """What an anonymous reader gets: content only, no ownership or ACL."""

    title: str
    content: str
    category: Optional[str]
    tags: list[str]
    updated_at: datetime

    @classmethod
    def from_note(cls, note: Note) -> "SharedNoteOut":
        return cls(
            title=note.title,
            content=note.content,
            category=note.category,
            tags=list(note.tags),
            updated_at=note.updated_at,
        )
