from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from notekeeper.services.categories import CategoryNode
from notekeeper.storage.categories_store import Category


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    parent_id: Optional[UUID] = None


class CategoryUpdate(BaseModel):
    # fields left out of the request body are not touched
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    parent_id: Optional[UUID] = None


class CategoryOut(BaseModel):
    id: UUID
    name: str
    description: Optional[str]
    parent_id: Optional[UUID]
    created_at: datetime

    @classmethod
    def from_category(cls, c: Category) -> CategoryOut:
        return cls(
            id=c.id,
            name=c.name,
            description=c.description,
            parent_id=c.parent_id,
            created_at=c.created_at,
        )


class CategoryTreeOut(BaseModel):
    id: UUID
    name: str
    description: Optional[str]
    children: list[CategoryTreeOut] = Field(default_factory=list)


def tree_to_out(roots: list[CategoryNode]) -> list[CategoryTreeOut]:
    # iterative: mirror the node forest into response models
    out_roots: list[CategoryTreeOut] = []
    stack: list[tuple[CategoryNode, list[CategoryTreeOut]]] = [(n, out_roots) for n in reversed(roots)]
    while stack:
        node, sink = stack.pop()
        out = CategoryTreeOut(id=node.category.id, name=node.category.name, description=node.category.description)
        sink.append(out)
        stack.extend((child, out.children) for child in reversed(node.children))
    return out_roots
