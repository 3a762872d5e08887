from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from notekeeper.services.lifecycle import DestructOffset
from notekeeper.storage.notes_store import Note


class NoteCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    content: str = Field(default="", max_length=100_000)
    category: Optional[str] = Field(default=None, max_length=100)
    tags: list[str] = Field(default_factory=list, max_length=50)
    pinned: bool = False
    destruct: DestructOffset = DestructOffset.NEVER


class NoteUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    content: Optional[str] = Field(default=None, max_length=100_000)
    # empty string clears the category
    category: Optional[str] = Field(default=None, max_length=100)
    tags: Optional[list[str]] = Field(default=None, max_length=50)
    expected_version: Optional[int] = Field(default=None, ge=1)


class PinIn(BaseModel):
    pinned: bool


class DestructTimerIn(BaseModel):
    offset: DestructOffset


class ReaderIn(BaseModel):
    user_id: str = Field(min_length=1, max_length=64)


class NoteOut(BaseModel):
    id: UUID
    owner_user_id: str
    title: str
    content: str
    category: Optional[str]
    tags: list[str]
    status: str
    pinned: bool
    created_at: datetime
    updated_at: datetime
    destruct_at: Optional[datetime]
    can_access: list[str]
    version: int

    @classmethod
    def from_note(cls, note: Note) -> "NoteOut":
        return cls(
            id=note.id,
            owner_user_id=note.owner_user_id,
            title=note.title,
            content=note.content,
            category=note.category,
            tags=list(note.tags),
            status=note.status.value,
            pinned=note.pinned,
            created_at=note.created_at,
            updated_at=note.updated_at,
            destruct_at=note.destruct_at,
            can_access=list(note.can_access),
            version=note.version,
        )
