"""One-time share links.

A share link points at a :class:`ShareToken` document. Resolving it returns
the note's content at most once: the unused -> used transition is a single
conditional update in the document store, so when several readers race on
the same token exactly one of them wins and every other one gets
:class:`InvalidLink`. Losing that race is never retried.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from notekeeper.clock import Clock
from notekeeper.errors import Forbidden, InvalidLink, NotFound
from notekeeper.services.access import can_read, can_write
from notekeeper.services.lifecycle import is_visible
from notekeeper.storage.event_log import Event, EventLog
from notekeeper.storage.notes_store import Note, NotesStore
from notekeeper.storage.shares_store import SharesStore, ShareToken

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ShareLink:
    token: str
    url: str


def _short(token_id: uuid.UUID) -> str:
    return token_id.hex[:8]


class ShareLinkBroker:
    def __init__(
        self,
        notes: NotesStore,
        shares: SharesStore,
        clock: Clock,
        event_log: EventLog,
        public_base_url: str,
    ):
        self.notes = notes
        self.shares = shares
        self.clock = clock
        self.event_log = event_log
        self.public_base_url = public_base_url.rstrip("/")

    def link_for(self, token: ShareToken) -> ShareLink:
        token_str = str(token.token_id)
        return ShareLink(token=token_str, url=f"{self.public_base_url}/share/{token_str}")

    def _shareable_note(self, owner_id: str, note_id: uuid.UUID) -> Note:
        note = self.notes.get_note(note_id)
        if note is None or not can_read(owner_id, note) or not is_visible(note, self.clock.now()):
            raise NotFound("Note not found")
        if not can_write(owner_id, note):
            raise Forbidden("Only the owner can share this note")
        return note

    def create_share_link(self, owner_id: str, note_id: uuid.UUID) -> ShareLink:
        note = self._shareable_note(owner_id, note_id)
        token = self.shares.create_token(owner_user_id=owner_id, note_id=note.id, now=self.clock.now())
        logger.info("Share link %s... created for note %s", _short(token.token_id), note.id)
        self.event_log.emit(Event(
            "SHARE_LINK_CREATED",
            user_id=owner_id,
            note_id=str(note.id),
            meta={"token_prefix": _short(token.token_id)},
        ))
        return self.link_for(token)

    def list_share_links(self, owner_id: str, note_id: uuid.UUID) -> list[ShareToken]:
        note = self.notes.get_note(note_id)
        if note is None or not can_read(owner_id, note):
            raise NotFound("Note not found")
        if not can_write(owner_id, note):
            raise Forbidden("Only the owner can see share links")
        return self.shares.list_for_note(owner_id, note_id)

    def resolve_share_link(self, token: str) -> Note:
        """Return the shared note exactly once; every failure is InvalidLink."""
        try:
            token_id = uuid.UUID(token)
        except (TypeError, ValueError):
            raise InvalidLink()

        record = self.shares.get_token(token_id)
        if record is None or record.is_used:
            raise InvalidLink()

        now = self.clock.now()
        note = self.notes.get_note(record.note_id)
        if note is None or not is_visible(note, now):
            raise InvalidLink()

        if not self.shares.mark_used(token_id, now):
            logger.info("Share link %s... lost a redemption race", _short(token_id))
            raise InvalidLink()

        logger.info("Share link %s... redeemed for note %s", _short(token_id), note.id)
        self.event_log.emit(Event(
            "SHARE_LINK_REDEEMED",
            user_id=record.owner_user_id,
            note_id=str(note.id),
            meta={"token_prefix": _short(token_id)},
        ))
        return note
