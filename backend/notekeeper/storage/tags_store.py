import uuid
from dataclasses import dataclass
from typing import Any

from notekeeper.storage.documents import DocumentStore, Filter

TAGS = "tags"

_TAG_NAMESPACE = uuid.UUID("6f1c2d4e-8a3b-4c5d-9e7f-0a1b2c3d4e5f")


def tag_key(user_id: str, name: str) -> str:
    # identity is (owner, case-folded name)
    return uuid.uuid5(_TAG_NAMESPACE, f"{user_id}\x00{name.casefold()}").hex


@dataclass(frozen=True)
class Tag:
    owner_user_id: str
    name: str

    def to_dict(self) -> dict[str, Any]:
        return {"owner_user_id": self.owner_user_id, "name": self.name, "key": self.name.casefold()}


class TagsStore:
    def __init__(self, docs: DocumentStore):
        self.docs = docs

    def ensure_tags(self, user_id: str, names: tuple[str, ...]) -> None:
        for name in names:
            # first spelling wins; later saves of the same tag are no-ops
            self.docs.create(TAGS, tag_key(user_id, name), Tag(user_id, name).to_dict())

    def list_tags(self, user_id: str) -> list[Tag]:
        docs = self.docs.query(TAGS, [Filter("owner_user_id", "==", user_id)])
        tags = [Tag(owner_user_id=raw["owner_user_id"], name=raw["name"]) for raw in docs]
        return sorted(tags, key=lambda t: t.name.casefold())
