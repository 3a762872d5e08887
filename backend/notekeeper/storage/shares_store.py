import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from notekeeper.clock import format_ts, parse_ts
from notekeeper.storage.documents import DocumentStore, Filter

SHARED_NOTES = "shared_notes"


@dataclass(frozen=True)
class ShareToken:
    token_id: uuid.UUID
    owner_user_id: str
    note_id: uuid.UUID
    created_at: datetime
    is_used: bool = False
    used_at: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "token_id": str(self.token_id),
            "owner_user_id": self.owner_user_id,
            "note_id": str(self.note_id),
            "is_used": self.is_used,
            "created_at": format_ts(self.created_at),
            "used_at": format_ts(self.used_at),
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "ShareToken":
        return cls(
            token_id=uuid.UUID(raw["token_id"]),
            owner_user_id=raw["owner_user_id"],
            note_id=uuid.UUID(raw["note_id"]),
            is_used=bool(raw.get("is_used", False)),
            created_at=parse_ts(raw["created_at"]),
            used_at=parse_ts(raw.get("used_at")),
        )


class SharesStore:
    """Flat collection of one-time share tokens keyed by token id."""

    def __init__(self, docs: DocumentStore):
        self.docs = docs

    def create_token(self, owner_user_id: str, note_id: uuid.UUID, now: datetime) -> ShareToken:
        while True:
            token = ShareToken(
                token_id=uuid.uuid4(),
                owner_user_id=owner_user_id,
                note_id=note_id,
                created_at=now,
            )
            # exclusive create: an id collision must never overwrite a live token
            if self.docs.create(SHARED_NOTES, token.token_id.hex, token.to_dict()):
                return token

    def get_token(self, token_id: uuid.UUID) -> Optional[ShareToken]:
        raw = self.docs.get(SHARED_NOTES, token_id.hex)
        if raw is None:
            return None
        return ShareToken.from_dict(raw)

    def mark_used(self, token_id: uuid.UUID, now: datetime) -> bool:
        """Flip ``is_used`` false -> true. Returns False if it was already used."""
        return self.docs.conditional_update(
            SHARED_NOTES,
            token_id.hex,
            lambda raw: raw.get("is_used") is False,
            {"is_used": True, "used_at": format_ts(now)},
        )

    def list_for_note(self, owner_user_id: str, note_id: uuid.UUID) -> list[ShareToken]:
        docs = self.docs.query(
            SHARED_NOTES,
            [Filter("owner_user_id", "==", owner_user_id), Filter("note_id", "==", str(note_id))],
        )
        tokens = [ShareToken.from_dict(raw) for raw in docs]
        return sorted(tokens, key=lambda t: t.created_at)
