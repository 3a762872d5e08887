from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Optional

from notekeeper.clock import Clock
from notekeeper.errors import InvalidOperation, NotFound
from notekeeper.storage.categories_store import CategoriesStore, Category

logger = logging.getLogger(__name__)

_UNSET = object()


@dataclass
class CategoryNode:
    category: Category
    children: list["CategoryNode"] = field(default_factory=list)


def build_category_tree(categories: list[Category]) -> list[CategoryNode]:
    """Arrange categories as a forest, without recursion.

    A category whose parent is unknown is treated as a root. Nodes caught in
    a parent cycle are unreachable from any root and are left out.
    """
    nodes = {c.id: CategoryNode(c) for c in categories}
    roots: list[CategoryNode] = []
    for c in categories:
        parent = nodes.get(c.parent_id) if c.parent_id else None
        if parent is None:
            roots.append(nodes[c.id])
        else:
            parent.children.append(nodes[c.id])

    stack = list(roots)
    while stack:
        node = stack.pop()
        node.children.sort(key=lambda n: n.category.name.casefold())
        stack.extend(node.children)
    roots.sort(key=lambda n: n.category.name.casefold())
    return roots


class CategoryService:
    def __init__(self, categories: CategoriesStore, clock: Clock):
        self.categories = categories
        self.clock = clock

    def _require(self, user_id: str, category_id: uuid.UUID) -> Category:
        category = self.categories.get_category(user_id, category_id)
        if category is None:
            raise NotFound("Category not found")
        return category

    def _check_parent(self, user_id: str, category_id: Optional[uuid.UUID], parent_id: uuid.UUID) -> None:
        if parent_id == category_id:
            raise InvalidOperation("A category cannot be its own parent")
        by_id = {c.id: c for c in self.categories.list_categories(user_id)}
        if parent_id not in by_id:
            raise NotFound("Parent category not found")
        if category_id is None:
            return
        # walk up from the new parent; meeting category_id means a cycle
        seen: set[uuid.UUID] = set()
        cursor: Optional[uuid.UUID] = parent_id
        while cursor is not None and cursor not in seen:
            if cursor == category_id:
                raise InvalidOperation("Category parent would create a cycle")
            seen.add(cursor)
            node = by_id.get(cursor)
            cursor = node.parent_id if node else None

    def create(
        self,
        user_id: str,
        name: str,
        description: Optional[str] = None,
        parent_id: Optional[uuid.UUID] = None,
    ) -> Category:
        with self.categories.owner_lock(user_id):
            if parent_id is not None:
                self._check_parent(user_id, None, parent_id)
            return self.categories.create_category(
                user_id, name, self.clock.now(), description=description, parent_id=parent_id
            )

    def update(
        self,
        user_id: str,
        category_id: uuid.UUID,
        name: Optional[str] = None,
        description=_UNSET,
        parent_id=_UNSET,
    ) -> Category:
        # cycle check and write must not interleave with another re-parent of this owner
        with self.categories.owner_lock(user_id):
            current = self._require(user_id, category_id)
            patch = {}
            if name is not None:
                patch["name"] = name
            if description is not _UNSET:
                patch["description"] = description
            if parent_id is not _UNSET:
                if parent_id is not None:
                    self._check_parent(user_id, category_id, parent_id)
                patch["parent_id"] = str(parent_id) if parent_id else None
            if patch and not self.categories.update_category(user_id, current.id, patch):
                raise NotFound("Category not found")
            return self._require(user_id, category_id)

    def delete(self, user_id: str, category_id: uuid.UUID) -> None:
        with self.categories.owner_lock(user_id):
            self._require(user_id, category_id)
            if not self.categories.delete_category(user_id, category_id):
                raise NotFound("Category not found")
            # children are kept and become roots
            detached = self.categories.detach_children(user_id, category_id)
        logger.info("Deleted category %s, %d children promoted to roots", category_id, detached)

    def list_categories(self, user_id: str) -> list[Category]:
        return sorted(self.categories.list_categories(user_id), key=lambda c: c.name.casefold())

    def tree(self, user_id: str) -> list[CategoryNode]:
        return build_category_tree(self.categories.list_categories(user_id))
