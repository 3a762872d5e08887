import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from notekeeper.clock import format_ts, parse_ts
from notekeeper.storage.documents import DocumentStore, Filter
from notekeeper.storage.users_store import _user_key

CATEGORIES = "categories"
CATEGORY_LOCKS = "category_locks"


@dataclass(frozen=True)
class Category:
    id: uuid.UUID
    owner_user_id: str
    name: str
    created_at: datetime
    description: Optional[str] = None
    parent_id: Optional[uuid.UUID] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "owner_user_id": self.owner_user_id,
            "name": self.name,
            "description": self.description,
            "parent_id": str(self.parent_id) if self.parent_id else None,
            "created_at": format_ts(self.created_at),
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "Category":
        parent = raw.get("parent_id")
        return cls(
            id=uuid.UUID(raw["id"]),
            owner_user_id=raw["owner_user_id"],
            name=raw["name"],
            description=raw.get("description"),
            parent_id=uuid.UUID(parent) if parent else None,
            created_at=parse_ts(raw["created_at"]),
        )


class CategoriesStore:
    def __init__(self, docs: DocumentStore):
        self.docs = docs

    def owner_lock(self, user_id: str):
        """Serialize tree-shape changes (re-parenting, deletes) of one owner's categories."""
        return self.docs.locked(CATEGORY_LOCKS, _user_key(user_id))

    def create_category(
        self,
        user_id: str,
        name: str,
        now: datetime,
        description: Optional[str] = None,
        parent_id: Optional[uuid.UUID] = None,
    ) -> Category:
        category = Category(
            id=uuid.uuid4(),
            owner_user_id=user_id,
            name=name,
            description=description,
            parent_id=parent_id,
            created_at=now,
        )
        self.docs.put(CATEGORIES, str(category.id), category.to_dict())
        return category

    def get_category(self, user_id: str, category_id: uuid.UUID) -> Optional[Category]:
        raw = self.docs.get(CATEGORIES, str(category_id))
        if raw is None or raw.get("owner_user_id") != user_id:
            return None
        return Category.from_dict(raw)

    def list_categories(self, user_id: str) -> list[Category]:
        docs = self.docs.query(CATEGORIES, [Filter("owner_user_id", "==", user_id)])
        return [Category.from_dict(raw) for raw in docs]

    def update_category(self, user_id: str, category_id: uuid.UUID, patch: dict[str, Any]) -> bool:
        return self.docs.conditional_update(
            CATEGORIES,
            str(category_id),
            lambda raw: raw.get("owner_user_id") == user_id,
            patch,
        )

    def detach_children(self, user_id: str, parent_id: uuid.UUID) -> int:
        detached = 0
        for child in self.docs.query(
            CATEGORIES,
            [Filter("owner_user_id", "==", user_id), Filter("parent_id", "==", str(parent_id))],
        ):
            if self.docs.conditional_update(
                CATEGORIES,
                child["id"],
                lambda raw: raw.get("parent_id") == str(parent_id),
                {"parent_id": None},
            ):
                detached += 1
        return detached

    def delete_category(self, user_id: str, category_id: uuid.UUID) -> bool:
        return self.docs.delete(
            CATEGORIES,
            str(category_id),
            lambda raw: raw.get("owner_user_id") == user_id,
        )
