from __future__ import annotations

import hashlib
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Optional

from notekeeper.clock import format_ts
from notekeeper.storage.documents import DocumentStore

USERS = "users"


def _user_key(user_id: str) -> str:
    # user ids are free-form; the document key must stay path-safe
    return hashlib.sha256(user_id.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class UserRecord:
    user_id: str
    hashed_password: str
    created_at: str


class UsersStore:
    def __init__(self, docs: DocumentStore):
        self.docs = docs

    def get(self, user_id: str) -> Optional[UserRecord]:
        raw = self.docs.get(USERS, _user_key(user_id))
        if raw is None:
            return None
        return UserRecord(
            user_id=raw["user_id"],
            hashed_password=raw["hashed_password"],
            created_at=raw["created_at"],
        )

    def create(self, user_id: str, hashed_password: str, now: datetime) -> UserRecord:
        rec = UserRecord(
            user_id=user_id,
            hashed_password=hashed_password,
            created_at=format_ts(now),
        )
        if not self.docs.create(USERS, _user_key(user_id), asdict(rec)):
            raise FileExistsError("User exists")
        return rec
