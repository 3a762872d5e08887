import asyncio
import uuid
from datetime import timedelta

import pytest

from notekeeper.errors import DocumentStoreError, NotFound
from notekeeper.main import _purge_loop
from notekeeper.services.lifecycle import DestructOffset, destruct_deadline, is_in_trash, is_visible
from notekeeper.storage.notes_store import NoteStatus


def test_note_with_one_hour_deadline_disappears_after_it(services, clock):
    note = services.notes.create_note("alice", "Temp", "x", destruct=DestructOffset.ONE_HOUR)
    start = clock.now()

    assert note.destruct_at == start + timedelta(hours=1)
    assert is_visible(note, start)
    assert not is_visible(note, start + timedelta(minutes=61))


def test_visibility_is_monotonic_around_deadline(services, clock):
    note = services.notes.create_note("alice", "Temp", "x", destruct=DestructOffset.ONE_DAY)
    deadline = note.destruct_at

    assert is_visible(note, deadline - timedelta(microseconds=1))
    for later in (deadline, deadline + timedelta(seconds=1), deadline + timedelta(days=365)):
        assert not is_visible(note, later)


@pytest.mark.parametrize(
    "offset, delta",
    [
        (DestructOffset.NEVER, None),
        (DestructOffset.ONE_HOUR, timedelta(hours=1)),
        (DestructOffset.ONE_DAY, timedelta(days=1)),
        (DestructOffset.SEVEN_DAYS, timedelta(days=7)),
    ],
)
def test_destruct_deadline(offset, delta, clock):
    now = clock.now()
    expected = None if delta is None else now + delta
    assert destruct_deadline(offset, now) == expected


def test_timer_counts_from_call_time_not_creation(services, clock):
    note = services.notes.create_note("alice", "Temp", "x")
    clock.advance(days=3)

    updated = services.lifecycle.set_destruct_timer(note.id, DestructOffset.ONE_HOUR)
    assert updated.destruct_at == clock.now() + timedelta(hours=1)
    assert updated.version == note.version + 1


def test_never_clears_the_deadline(services):
    note = services.notes.create_note("alice", "Temp", "x", destruct=DestructOffset.SEVEN_DAYS)
    updated = services.lifecycle.set_destruct_timer(note.id, DestructOffset.NEVER)
    assert updated.destruct_at is None


def test_trash_round_trip_keeps_content(services):
    note = services.notes.create_note("alice", "Keep", "body", category="Home", tags=["a", "b"], pinned=True)

    trashed = services.lifecycle.soft_delete(note.id)
    assert trashed.status == NoteStatus.TRASHED
    assert trashed.pinned is False

    restored = services.lifecycle.restore(note.id)
    assert restored.status == NoteStatus.ACTIVE
    assert (restored.title, restored.content, restored.category, restored.tags) == (
        note.title, note.content, note.category, note.tags,
    )


def test_trash_and_restore_are_idempotent(services):
    note = services.notes.create_note("alice", "Twice", "x")
    services.lifecycle.soft_delete(note.id)
    assert services.lifecycle.soft_delete(note.id).status == NoteStatus.TRASHED
    services.lifecycle.restore(note.id)
    assert services.lifecycle.restore(note.id).status == NoteStatus.ACTIVE


def test_trash_does_not_start_a_timer(services):
    note = services.notes.create_note("alice", "Trash", "x")
    assert services.lifecycle.soft_delete(note.id).destruct_at is None


def test_cannot_restore_after_deadline(services, clock):
    note = services.notes.create_note("alice", "Gone", "x", destruct=DestructOffset.ONE_HOUR)
    services.lifecycle.soft_delete(note.id)
    assert is_in_trash(services.notes_store.get_note(note.id), clock.now())

    clock.advance(hours=2)
    with pytest.raises(NotFound):
        services.lifecycle.restore(note.id)
    assert services.notes.list_trash("alice") == []


def test_lifecycle_on_missing_note(services):
    missing = uuid.uuid4()
    with pytest.raises(NotFound):
        services.lifecycle.soft_delete(missing)
    with pytest.raises(NotFound):
        services.lifecycle.set_destruct_timer(missing, DestructOffset.ONE_DAY)


def test_purge_if_expired(services, clock):
    note = services.notes.create_note("alice", "Gone", "x", destruct=DestructOffset.ONE_HOUR)

    assert services.lifecycle.purge_if_expired(note) is False
    clock.advance(hours=1)
    assert services.lifecycle.purge_if_expired(note) is True
    assert services.notes_store.get_note(note.id) is None
    assert services.lifecycle.purge_if_expired(note) is False


def test_purge_expired_sweeps_only_elapsed_notes(services, clock):
    keep = services.notes.create_note("alice", "Keep", "x")
    later = services.notes.create_note("alice", "Later", "x", destruct=DestructOffset.SEVEN_DAYS)
    gone = services.notes.create_note("bob", "Gone", "x", destruct=DestructOffset.ONE_HOUR)
    trashed = services.notes.create_note("bob", "Trashed", "x", destruct=DestructOffset.ONE_DAY)
    services.lifecycle.soft_delete(trashed.id)

    clock.advance(days=2)
    assert services.lifecycle.purge_expired() == 2

    remaining = {n.id for n in services.notes_store.query_notes()}
    assert remaining == {keep.id, later.id}
    assert gone.id not in remaining
    events = [e["event_type"] for e in services.event_log.recent("bob")]
    assert events.count("NOTE_PURGED") == 2


def test_expired_note_is_hidden_before_the_sweep_runs(services, clock):
    note = services.notes.create_note("alice", "Gone", "x", destruct=DestructOffset.ONE_HOUR)
    clock.advance(hours=1)

    assert services.notes.list_notes("alice") == []
    with pytest.raises(NotFound):
        services.notes.readable("alice", note.id)
    # still on disk until purged
    assert services.notes_store.get_note(note.id) is not None


def test_purge_loop_survives_a_failed_sweep(services, monkeypatch):
    calls = []

    def flaky_sweep():
        calls.append(1)
        if len(calls) == 1:
            raise DocumentStoreError("disk unavailable")
        return 0

    monkeypatch.setattr(services.lifecycle, "purge_expired", flaky_sweep)

    async def run():
        task = asyncio.create_task(_purge_loop(services, 0.01))
        while len(calls) < 3:
            await asyncio.sleep(0.01)
        task.cancel()

    asyncio.run(asyncio.wait_for(run(), timeout=5))
    assert len(calls) >= 3


def test_repeated_transitions_are_logged_once(services):
    note = services.notes.create_note("alice", "Twice", "x")
    services.lifecycle.soft_delete(note.id)
    services.lifecycle.soft_delete(note.id)
    services.lifecycle.restore(note.id)
    services.lifecycle.restore(note.id)

    types = [e["event_type"] for e in services.event_log.recent("alice")]
    assert types == ["NOTE_RESTORED", "NOTE_TRASHED", "NOTE_CREATED"]
