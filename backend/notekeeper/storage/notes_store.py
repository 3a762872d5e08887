import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Optional

from notekeeper.clock import format_ts, parse_ts
from notekeeper.storage.documents import DocumentStore, Filter

NOTES = "notes"


class NoteStatus(str, Enum):
    ACTIVE = "active"
    TRASHED = "trashed"


@dataclass(frozen=True)
class Note:
    id: uuid.UUID
    owner_user_id: str
    title: str
    content: str
    created_at: datetime
    updated_at: datetime
    category: Optional[str] = None
    tags: tuple[str, ...] = ()
    status: NoteStatus = NoteStatus.ACTIVE
    pinned: bool = False
    # None is the only "no deadline" representation
    destruct_at: Optional[datetime] = None
    can_access: tuple[str, ...] = ()
    version: int = 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "owner_user_id": self.owner_user_id,
            "title": self.title,
            "content": self.content,
            "category": self.category,
            "tags": list(self.tags),
            "status": self.status.value,
            "pinned": self.pinned,
            "created_at": format_ts(self.created_at),
            "updated_at": format_ts(self.updated_at),
            "destruct_at": format_ts(self.destruct_at),
            "can_access": list(self.can_access),
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "Note":
        return cls(
            id=uuid.UUID(raw["id"]),
            owner_user_id=raw["owner_user_id"],
            title=raw["title"],
            content=raw.get("content", ""),
            category=raw.get("category"),
            tags=tuple(raw.get("tags") or ()),
            status=NoteStatus(raw.get("status", NoteStatus.ACTIVE.value)),
            pinned=bool(raw.get("pinned", False)),
            created_at=parse_ts(raw["created_at"]),
            updated_at=parse_ts(raw["updated_at"]),
            destruct_at=parse_ts(raw.get("destruct_at")),
            can_access=tuple(raw.get("can_access") or (raw["owner_user_id"],)),
            version=int(raw.get("version", 1)),
        )


# Per-operation patches. Each one names exactly the fields it may touch.

@dataclass(frozen=True)
class NoteContentUpdate:
    title: Optional[str] = None
    content: Optional[str] = None
    category: Optional[str] = None
    tags: Optional[tuple[str, ...]] = None
    clear_category: bool = False

    def to_patch(self) -> dict[str, Any]:
        patch: dict[str, Any] = {}
        if self.title is not None:
            patch["title"] = self.title
        if self.content is not None:
            patch["content"] = self.content
        if self.clear_category:
            patch["category"] = None
        elif self.category is not None:
            patch["category"] = self.category
        if self.tags is not None:
            patch["tags"] = list(self.tags)
        return patch


@dataclass(frozen=True)
class PinUpdate:
    pinned: bool

    def to_patch(self) -> dict[str, Any]:
        return {"pinned": self.pinned}


@dataclass(frozen=True)
class StatusUpdate:
    status: NoteStatus
    unpin: bool = False

    def to_patch(self) -> dict[str, Any]:
        patch: dict[str, Any] = {"status": self.status.value}
        if self.unpin:
            patch["pinned"] = False
        return patch


@dataclass(frozen=True)
class DestructUpdate:
    destruct_at: Optional[datetime]

    def to_patch(self) -> dict[str, Any]:
        return {"destruct_at": format_ts(self.destruct_at)}


@dataclass(frozen=True)
class AccessUpdate:
    can_access: tuple[str, ...] = field(default_factory=tuple)

    def to_patch(self) -> dict[str, Any]:
        return {"can_access": list(self.can_access)}


NotePredicate = Callable[[Note], bool]


class NotesStore:
    def __init__(self, docs: DocumentStore):
        self.docs = docs

    def create_note(
        self,
        user_id: str,
        title: str,
        content: str,
        now: datetime,
        category: Optional[str] = None,
        tags: tuple[str, ...] = (),
        pinned: bool = False,
        destruct_at: Optional[datetime] = None,
    ) -> Note:
        note = Note(
            id=uuid.uuid4(),
            owner_user_id=user_id,
            title=title,
            content=content,
            category=category,
            tags=tags,
            pinned=pinned,
            created_at=now,
            updated_at=now,
            destruct_at=destruct_at,
            can_access=(user_id,),
        )
        self.docs.put(NOTES, str(note.id), note.to_dict())
        return note

    def get_note(self, note_id: uuid.UUID) -> Optional[Note]:
        raw = self.docs.get(NOTES, str(note_id))
        if raw is None:
            return None
        return Note.from_dict(raw)

    def query_notes(self, *filters: Filter) -> list[Note]:
        return [Note.from_dict(raw) for raw in self.docs.query(NOTES, filters)]

    def list_accessible(self, principal_id: str) -> list[Note]:
        return self.query_notes(Filter("can_access", "array-contains", principal_id))

    def list_owned(self, user_id: str, status: Optional[NoteStatus] = None) -> list[Note]:
        filters = [Filter("owner_user_id", "==", user_id)]
        if status is not None:
            filters.append(Filter("status", "==", status.value))
        return self.query_notes(*filters)

    def update_where(
        self,
        note_id: uuid.UUID,
        predicate: NotePredicate,
        patch: dict[str, Any],
        now: Optional[datetime] = None,
    ) -> bool:
        """Atomically apply ``patch`` if ``predicate`` holds on the stored note.

        When ``now`` is given the edit counts as a user-visible change:
        ``updated_at`` and ``version`` are bumped in the same write.
        """

        def compute(raw: dict[str, Any]) -> dict[str, Any]:
            changes = dict(patch)
            if now is not None:
                created = parse_ts(raw["created_at"])
                changes["updated_at"] = format_ts(max(now, created))
                changes["version"] = int(raw.get("version", 1)) + 1
            return changes

        return self.docs.conditional_update(
            NOTES,
            str(note_id),
            lambda raw: predicate(Note.from_dict(raw)),
            compute,
        )

    def delete_where(self, note_id: uuid.UUID, predicate: NotePredicate) -> bool:
        return self.docs.delete(NOTES, str(note_id), lambda raw: predicate(Note.from_dict(raw)))

    def add_reader(self, note_id: uuid.UUID, reader_id: str) -> bool:
        # list is re-read under the document lock so concurrent grants compose
        return self.docs.conditional_update(
            NOTES,
            str(note_id),
            lambda raw: reader_id not in (raw.get("can_access") or []),
            lambda raw: AccessUpdate(tuple(raw.get("can_access") or ()) + (reader_id,)).to_patch(),
        )

    def remove_reader(self, note_id: uuid.UUID, reader_id: str) -> bool:
        return self.docs.conditional_update(
            NOTES,
            str(note_id),
            lambda raw: reader_id in (raw.get("can_access") or []) and reader_id != raw["owner_user_id"],
            lambda raw: AccessUpdate(tuple(p for p in raw["can_access"] if p != reader_id)).to_patch(),
        )
