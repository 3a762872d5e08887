"""Note-level authorization.

Reading is granted by the note's access list; writing is owner-only. The
access list always contains the owner, so owners can read their notes.
"""
from notekeeper.storage.notes_store import Note


def can_read(principal_id: str, note: Note) -> bool:
    return principal_id in note.can_access


def can_write(principal_id: str, note: Note) -> bool:
    return principal_id == note.owner_user_id
