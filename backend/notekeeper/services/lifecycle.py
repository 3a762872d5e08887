"""Note status and destruct-deadline transitions.

Visibility is decided by :func:`is_visible` / :func:`is_in_trash` on every
read path. A note past its ``destruct_at`` is logically purged right away;
the periodic :meth:`NoteLifecycleManager.purge_expired` sweep only reclaims
the storage later.
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from notekeeper.clock import Clock
from notekeeper.errors import DocumentStoreError, NotFound
from notekeeper.storage.event_log import Event, EventLog
from notekeeper.storage.notes_store import (
    DestructUpdate,
    Note,
    NotesStore,
    NoteStatus,
    StatusUpdate,
)

logger = logging.getLogger(__name__)


class DestructOffset(str, Enum):
    NEVER = "never"
    ONE_HOUR = "1hour"
    ONE_DAY = "1day"
    SEVEN_DAYS = "7days"

    @property
    def delta(self) -> Optional[timedelta]:
        return _OFFSETS[self]


_OFFSETS = {
    DestructOffset.NEVER: None,
    DestructOffset.ONE_HOUR: timedelta(hours=1),
    DestructOffset.ONE_DAY: timedelta(days=1),
    DestructOffset.SEVEN_DAYS: timedelta(days=7),
}


def destruct_deadline(offset: DestructOffset, now: datetime) -> Optional[datetime]:
    delta = offset.delta
    return None if delta is None else now + delta


def is_expired(note: Note, now: datetime) -> bool:
    return note.destruct_at is not None and now >= note.destruct_at


def is_visible(note: Note, now: datetime) -> bool:
    return note.status == NoteStatus.ACTIVE and not is_expired(note, now)


def is_in_trash(note: Note, now: datetime) -> bool:
    return note.status == NoteStatus.TRASHED and not is_expired(note, now)


class NoteLifecycleManager:
    def __init__(self, notes: NotesStore, clock: Clock, event_log: EventLog):
        self.notes = notes
        self.clock = clock
        self.event_log = event_log

    def _transition(self, note_id: uuid.UUID, source: NoteStatus, update: StatusUpdate) -> tuple[Note, bool]:
        now = self.clock.now()
        applied = self.notes.update_where(
            note_id,
            lambda n: n.status == source and not is_expired(n, now),
            update.to_patch(),
        )
        # a note already in the target state is left as is
        note = self.notes.get_note(note_id)
        if note is None or is_expired(note, now):
            raise NotFound("Note not found")
        return note, applied

    def soft_delete(self, note_id: uuid.UUID) -> Note:
        """Move a note to the trash. Idempotent for an already-trashed note."""
        note, applied = self._transition(
            note_id, NoteStatus.ACTIVE, StatusUpdate(NoteStatus.TRASHED, unpin=True)
        )
        if applied:
            logger.info("Note %s moved to trash", note_id)
            self.event_log.emit(Event("NOTE_TRASHED", user_id=note.owner_user_id, note_id=str(note_id)))
        return note

    def restore(self, note_id: uuid.UUID) -> Note:
        """Bring a trashed note back, unless its destruct deadline has passed."""
        note, applied = self._transition(note_id, NoteStatus.TRASHED, StatusUpdate(NoteStatus.ACTIVE))
        if applied:
            logger.info("Note %s restored from trash", note_id)
            self.event_log.emit(Event("NOTE_RESTORED", user_id=note.owner_user_id, note_id=str(note_id)))
        return note

    def set_destruct_timer(self, note_id: uuid.UUID, offset: DestructOffset) -> Note:
        # deadline is relative to the call, not to the note's creation
        now = self.clock.now()
        update = DestructUpdate(destruct_deadline(offset, now))
        applied = self.notes.update_where(
            note_id,
            lambda n: not is_expired(n, now),
            update.to_patch(),
            now=now,
        )
        if not applied:
            raise NotFound("Note not found")
        note = self.notes.get_note(note_id)
        if note is None:
            raise NotFound("Note not found")
        return note

    def purge_if_expired(self, note: Note, now: Optional[datetime] = None) -> bool:
        """Physically delete ``note`` if its deadline has passed."""
        now = now or self.clock.now()
        if not is_expired(note, now):
            return False
        deleted = self.notes.delete_where(note.id, lambda n: is_expired(n, now))
        if deleted:
            logger.info("Purged expired note %s", note.id)
            self.event_log.emit(Event("NOTE_PURGED", user_id=note.owner_user_id, note_id=str(note.id)))
        return deleted

    def purge_expired(self) -> int:
        now = self.clock.now()
        purged = 0
        for note in self.notes.query_notes():
            try:
                if self.purge_if_expired(note, now):
                    purged += 1
            except DocumentStoreError:
                logger.exception("Failed to purge note %s", note.id)
        if purged:
            logger.info("Purge sweep removed %d expired notes", purged)
        else:
            logger.debug("Purge sweep found nothing to remove")
        return purged
