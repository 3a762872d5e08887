from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from notekeeper.context import AppContext, get_context
from notekeeper.models.notes import DestructTimerIn, NoteCreate, NoteOut, NoteUpdate, PinIn, ReaderIn
from notekeeper.models.shares import ShareLinkOut, ShareLinkStatusOut
from notekeeper.storage.notes_store import NoteContentUpdate
from notekeeper.utils.jwt_auth import get_current_user

router = APIRouter(prefix="/notes", tags=["notes"])


@router.post("", response_model=NoteOut, status_code=201)
def create_note(
    payload: NoteCreate,
    user_id: str = Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
) -> NoteOut:
    note = ctx.notes.create_note(
        user_id=user_id,
        title=payload.title,
        content=payload.content,
        category=payload.category,
        tags=payload.tags,
        pinned=payload.pinned,
        destruct=payload.destruct,
    )
    return NoteOut.from_note(note)


@router.get("", response_model=list[NoteOut])
def list_notes(
    q: Optional[str] = Query(default=None, max_length=200),
    category: Optional[str] = None,
    tag: Optional[str] = None,
    user_id: str = Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
) -> list[NoteOut]:
    notes = ctx.notes.list_notes(user_id, query=q, category=category, tag=tag)
    return [NoteOut.from_note(n) for n in notes]


# declared before /{note_id} so "trash" is not parsed as an id
@router.get("/trash", response_model=list[NoteOut])
def list_trash(user_id: str = Depends(get_current_user), ctx: AppContext = Depends(get_context)) -> list[NoteOut]:
    return [NoteOut.from_note(n) for n in ctx.notes.list_trash(user_id)]


@router.get("/{note_id}", response_model=NoteOut)
def get_note(note_id: UUID, user_id: str = Depends(get_current_user), ctx: AppContext = Depends(get_context)) -> NoteOut:
    return NoteOut.from_note(ctx.notes.readable(user_id, note_id))


@router.put("/{note_id}", response_model=NoteOut)
def update_note(
    note_id: UUID,
    payload: NoteUpdate,
    user_id: str = Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
) -> NoteOut:
    update = NoteContentUpdate(
        title=payload.title,
        content=payload.content,
        category=payload.category or None,
        tags=tuple(payload.tags) if payload.tags is not None else None,
        clear_category=payload.category == "",
    )
    note = ctx.notes.update_note(user_id, note_id, update, expected_version=payload.expected_version)
    return NoteOut.from_note(note)


@router.delete("/{note_id}", status_code=204)
def delete_note(note_id: UUID, user_id: str = Depends(get_current_user), ctx: AppContext = Depends(get_context)) -> None:
    ctx.notes.delete_permanently(user_id, note_id)
    return None


@router.put("/{note_id}/pin", response_model=NoteOut)
def set_pinned(
    note_id: UUID,
    payload: PinIn,
    user_id: str = Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
) -> NoteOut:
    return NoteOut.from_note(ctx.notes.set_pinned(user_id, note_id, payload.pinned))


# ---- lifecycle ----

@router.post("/{note_id}/trash", response_model=NoteOut)
def trash_note(note_id: UUID, user_id: str = Depends(get_current_user), ctx: AppContext = Depends(get_context)) -> NoteOut:
    ctx.notes.writable(user_id, note_id)
    return NoteOut.from_note(ctx.lifecycle.soft_delete(note_id))


@router.post("/{note_id}/restore", response_model=NoteOut)
def restore_note(note_id: UUID, user_id: str = Depends(get_current_user), ctx: AppContext = Depends(get_context)) -> NoteOut:
    ctx.notes.writable(user_id, note_id)
    return NoteOut.from_note(ctx.lifecycle.restore(note_id))


@router.put("/{note_id}/destruct", response_model=NoteOut)
def set_destruct_timer(
    note_id: UUID,
    payload: DestructTimerIn,
    user_id: str = Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
) -> NoteOut:
    ctx.notes.writable(user_id, note_id)
    return NoteOut.from_note(ctx.lifecycle.set_destruct_timer(note_id, payload.offset))


# ---- read grants ----

@router.post("/{note_id}/readers", response_model=NoteOut)
def grant_reader(
    note_id: UUID,
    payload: ReaderIn,
    user_id: str = Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
) -> NoteOut:
    return NoteOut.from_note(ctx.notes.grant_read(user_id, note_id, payload.user_id))


@router.delete("/{note_id}/readers/{reader_id}", response_model=NoteOut)
def revoke_reader(
    note_id: UUID,
    reader_id: str,
    user_id: str = Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
) -> NoteOut:
    return NoteOut.from_note(ctx.notes.revoke_read(user_id, note_id, reader_id))


# ---- one-time share links ----

@router.post("/{note_id}/share-links", response_model=ShareLinkOut, status_code=201)
def create_share_link(
    note_id: UUID,
    user_id: str = Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
) -> ShareLinkOut:
    link = ctx.broker.create_share_link(user_id, note_id)
    return ShareLinkOut(token=link.token, url=link.url)


@router.get("/{note_id}/share-links", response_model=list[ShareLinkStatusOut])
def list_share_links(
    note_id: UUID,
    user_id: str = Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
) -> list[ShareLinkStatusOut]:
    out = []
    for token in ctx.broker.list_share_links(user_id, note_id):
        link = ctx.broker.link_for(token)
        out.append(ShareLinkStatusOut(
            token=link.token,
            url=link.url,
            is_used=token.is_used,
            created_at=token.created_at,
            used_at=token.used_at,
        ))
    return out
