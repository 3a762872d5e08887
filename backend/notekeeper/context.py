from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from notekeeper.clock import Clock, SystemClock
from notekeeper.config import Settings
from notekeeper.services.categories import CategoryService
from notekeeper.services.lifecycle import NoteLifecycleManager
from notekeeper.services.notes import NotesService
from notekeeper.services.share_broker import ShareLinkBroker
from notekeeper.storage.categories_store import CategoriesStore
from notekeeper.storage.documents import DocumentStore
from notekeeper.storage.event_log import EventLog
from notekeeper.storage.notes_store import NotesStore
from notekeeper.storage.shares_store import SharesStore
from notekeeper.storage.tags_store import TagsStore
from notekeeper.storage.users_store import UsersStore
from notekeeper.utils.auth_hash import PasswordHasher


@dataclass
class AppContext:
    """Everything a request handler needs, built once per app instance."""

    settings: Settings
    clock: Clock
    docs: DocumentStore
    users: UsersStore
    notes_store: NotesStore
    tags: TagsStore
    event_log: EventLog
    hasher: PasswordHasher
    notes: NotesService
    lifecycle: NoteLifecycleManager
    broker: ShareLinkBroker
    categories: CategoryService


def build_context(settings: Settings, clock: Optional[Clock] = None) -> AppContext:
    clock = clock or SystemClock()
    data_dir = settings.app_data_dir
    docs = DocumentStore(data_dir / "documents")
    event_log = EventLog(data_dir, clock)
    notes_store = NotesStore(docs)
    tags = TagsStore(docs)
    return AppContext(
        settings=settings,
        clock=clock,
        docs=docs,
        users=UsersStore(docs),
        notes_store=notes_store,
        tags=tags,
        event_log=event_log,
        hasher=PasswordHasher(settings.bcrypt_rounds),
        notes=NotesService(notes_store, tags, clock, event_log, settings.note_update_retries),
        lifecycle=NoteLifecycleManager(notes_store, clock, event_log),
        broker=ShareLinkBroker(notes_store, SharesStore(docs), clock, event_log, settings.public_base_url),
        categories=CategoryService(CategoriesStore(docs), clock),
    )


def get_context(request: Request) -> AppContext:
    return request.app.state.context
