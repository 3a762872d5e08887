from __future__ import annotations

import logging
import uuid
from typing import Iterable, Optional

from notekeeper.clock import Clock
from notekeeper.errors import Conflict, Forbidden, InvalidOperation, NotFound
from notekeeper.services.access import can_read, can_write
from notekeeper.services.lifecycle import (
    DestructOffset,
    destruct_deadline,
    is_expired,
    is_in_trash,
    is_visible,
)
from notekeeper.storage.event_log import Event, EventLog
from notekeeper.storage.notes_store import (
    Note,
    NoteContentUpdate,
    NotesStore,
    NoteStatus,
    PinUpdate,
)
from notekeeper.storage.tags_store import TagsStore

logger = logging.getLogger(__name__)


def normalize_tags(tags: Optional[Iterable[str]]) -> tuple[str, ...]:
    """Strip, drop empties and de-duplicate case-insensitively (first spelling wins)."""
    seen: set[str] = set()
    out: list[str] = []
    for tag in tags or ():
        tag = tag.strip()
        if not tag or tag.casefold() in seen:
            continue
        seen.add(tag.casefold())
        out.append(tag)
    return tuple(out)


def _matches(note: Note, query: Optional[str], category: Optional[str], tag: Optional[str]) -> bool:
    if query:
        q = query.casefold()
        if q not in note.title.casefold() and q not in note.content.casefold():
            return False
    if category and (note.category or "").casefold() != category.casefold():
        return False
    if tag and tag.casefold() not in {t.casefold() for t in note.tags}:
        return False
    return True


def _sort_key(note: Note):
    return (not note.pinned, -note.updated_at.timestamp())


class NotesService:
    def __init__(
        self,
        notes: NotesStore,
        tags: TagsStore,
        clock: Clock,
        event_log: EventLog,
        update_retries: int = 3,
    ):
        self.notes = notes
        self.tags = tags
        self.clock = clock
        self.event_log = event_log
        self.update_retries = update_retries

    # ---- access helpers used by the route layer ----

    def readable(self, principal_id: str, note_id: uuid.UUID) -> Note:
        """Return a note the caller may read, hiding anything else as NotFound.

        Owners can also open their notes while they sit in the trash.
        """
        note = self.notes.get_note(note_id)
        if note is None or not can_read(principal_id, note):
            raise NotFound("Note not found")
        now = self.clock.now()
        if is_visible(note, now):
            return note
        if can_write(principal_id, note) and is_in_trash(note, now):
            return note
        raise NotFound("Note not found")

    def writable(self, principal_id: str, note_id: uuid.UUID) -> Note:
        note = self.notes.get_note(note_id)
        # non-readers must not learn that the note exists
        if note is None or not can_read(principal_id, note) or is_expired(note, self.clock.now()):
            raise NotFound("Note not found")
        if not can_write(principal_id, note):
            raise Forbidden("Only the owner can modify this note")
        return note

    # ---- CRUD ----

    def create_note(
        self,
        user_id: str,
        title: str,
        content: str = "",
        category: Optional[str] = None,
        tags: Optional[Iterable[str]] = None,
        pinned: bool = False,
        destruct: DestructOffset = DestructOffset.NEVER,
    ) -> Note:
        now = self.clock.now()
        clean_tags = normalize_tags(tags)
        note = self.notes.create_note(
            user_id=user_id,
            title=title,
            content=content,
            now=now,
            category=category or None,
            tags=clean_tags,
            pinned=pinned,
            destruct_at=destruct_deadline(destruct, now),
        )
        self.tags.ensure_tags(user_id, clean_tags)
        self.event_log.emit(Event("NOTE_CREATED", user_id=user_id, note_id=str(note.id), meta={"version": note.version}))
        return note

    def list_notes(
        self,
        principal_id: str,
        query: Optional[str] = None,
        category: Optional[str] = None,
        tag: Optional[str] = None,
    ) -> list[Note]:
        now = self.clock.now()
        notes = [
            n for n in self.notes.list_accessible(principal_id)
            if is_visible(n, now) and _matches(n, query, category, tag)
        ]
        return sorted(notes, key=_sort_key)

    def list_trash(self, user_id: str) -> list[Note]:
        now = self.clock.now()
        notes = [n for n in self.notes.list_owned(user_id, NoteStatus.TRASHED) if is_in_trash(n, now)]
        return sorted(notes, key=lambda n: n.updated_at, reverse=True)

    def update_note(
        self,
        user_id: str,
        note_id: uuid.UUID,
        update: NoteContentUpdate,
        expected_version: Optional[int] = None,
    ) -> Note:
        if update.tags is not None:
            update = NoteContentUpdate(
                title=update.title,
                content=update.content,
                category=update.category,
                tags=normalize_tags(update.tags),
                clear_category=update.clear_category,
            )
        patch = update.to_patch()
        attempts = 1 if expected_version is not None else self.update_retries + 1

        for _ in range(attempts):
            current = self.writable(user_id, note_id)
            version = expected_version if expected_version is not None else current.version
            now = self.clock.now()
            if self.notes.update_where(
                note_id,
                lambda n: n.version == version and not is_expired(n, now),
                patch,
                now=now,
            ):
                break
            logger.debug("Optimistic update of note %s lost at version %d", note_id, version)
        else:
            raise Conflict("Note was modified concurrently")

        if update.tags:
            self.tags.ensure_tags(user_id, update.tags)
        note = self.writable(user_id, note_id)
        self.event_log.emit(Event("NOTE_UPDATED", user_id=user_id, note_id=str(note_id), meta={"version": note.version}))
        return note

    def set_pinned(self, user_id: str, note_id: uuid.UUID, pinned: bool) -> Note:
        note = self.writable(user_id, note_id)
        if note.status != NoteStatus.ACTIVE:
            raise InvalidOperation("Notes in the trash cannot be pinned")
        now = self.clock.now()
        if not self.notes.update_where(
            note_id,
            lambda n: n.status == NoteStatus.ACTIVE and not is_expired(n, now),
            PinUpdate(pinned).to_patch(),
        ):
            # trashed or expired since the check above
            self.writable(user_id, note_id)
            raise InvalidOperation("Notes in the trash cannot be pinned")
        return self.writable(user_id, note_id)

    def grant_read(self, user_id: str, note_id: uuid.UUID, reader_id: str) -> Note:
        self.writable(user_id, note_id)
        if self.notes.add_reader(note_id, reader_id):
            logger.info("Granted read access on note %s", note_id)
        return self.writable(user_id, note_id)

    def revoke_read(self, user_id: str, note_id: uuid.UUID, reader_id: str) -> Note:
        note = self.writable(user_id, note_id)
        if reader_id == note.owner_user_id:
            raise InvalidOperation("The owner cannot be removed from the access list")
        if self.notes.remove_reader(note_id, reader_id):
            logger.info("Revoked read access on note %s", note_id)
        return self.writable(user_id, note_id)

    def delete_permanently(self, user_id: str, note_id: uuid.UUID) -> None:
        note = self.writable(user_id, note_id)
        if note.status != NoteStatus.TRASHED:
            raise InvalidOperation("Only notes in the trash can be deleted permanently")
        if not self.notes.delete_where(note_id, lambda n: n.status == NoteStatus.TRASHED):
            raise NotFound("Note not found")
        logger.info("Note %s deleted permanently", note_id)
        self.event_log.emit(Event("NOTE_DELETED", user_id=user_id, note_id=str(note_id)))
