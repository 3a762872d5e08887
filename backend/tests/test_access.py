import pytest

from notekeeper.errors import Forbidden, InvalidOperation, NotFound
from notekeeper.services.access import can_read, can_write


def test_owner_can_read_and_write(services):
    note = services.notes.create_note("alice", "Mine", "x")
    assert note.can_access == ("alice",)
    assert can_read("alice", note)
    assert can_write("alice", note)


def test_reader_on_access_list_can_only_read(services):
    note = services.notes.create_note("alice", "Mine", "x")
    note = services.notes.grant_read("alice", note.id, "bob")

    assert can_read("bob", note)
    assert not can_write("bob", note)
    assert services.notes.readable("bob", note.id).id == note.id
    with pytest.raises(Forbidden):
        services.notes.writable("bob", note.id)


def test_strangers_see_not_found(services):
    note = services.notes.create_note("alice", "Mine", "x")
    assert not can_read("mallory", note)
    with pytest.raises(NotFound):
        services.notes.readable("mallory", note.id)
    with pytest.raises(NotFound):
        services.notes.writable("mallory", note.id)


def test_reader_does_not_see_trashed_note(services):
    note = services.notes.create_note("alice", "Mine", "x")
    services.notes.grant_read("alice", note.id, "bob")
    services.lifecycle.soft_delete(note.id)

    assert services.notes.readable("alice", note.id).id == note.id
    with pytest.raises(NotFound):
        services.notes.readable("bob", note.id)


def test_grant_is_idempotent_and_revoke_removes(services):
    note = services.notes.create_note("alice", "Mine", "x")
    services.notes.grant_read("alice", note.id, "bob")
    note = services.notes.grant_read("alice", note.id, "bob")
    assert note.can_access == ("alice", "bob")

    note = services.notes.revoke_read("alice", note.id, "bob")
    assert note.can_access == ("alice",)
    with pytest.raises(NotFound):
        services.notes.readable("bob", note.id)


def test_owner_cannot_be_revoked(services):
    note = services.notes.create_note("alice", "Mine", "x")
    with pytest.raises(InvalidOperation):
        services.notes.revoke_read("alice", note.id, "alice")


def test_reader_cannot_grant(services):
    note = services.notes.create_note("alice", "Mine", "x")
    services.notes.grant_read("alice", note.id, "bob")
    with pytest.raises(Forbidden):
        services.notes.grant_read("bob", note.id, "carol")


def test_shared_notes_are_listed_for_reader(services):
    note = services.notes.create_note("alice", "Shared", "x")
    services.notes.create_note("alice", "Private", "y")
    services.notes.grant_read("alice", note.id, "bob")

    assert [n.title for n in services.notes.list_notes("bob")] == ["Shared"]
