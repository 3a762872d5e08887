from uuid import UUID

from fastapi import APIRouter, Depends

from notekeeper.context import AppContext, get_context
from notekeeper.models.categories import CategoryCreate, CategoryOut, CategoryTreeOut, CategoryUpdate, tree_to_out
from notekeeper.utils.jwt_auth import get_current_user

router = APIRouter(prefix="/categories", tags=["categories"])


@router.post("", response_model=CategoryOut, status_code=201)
def create_category(
    payload: CategoryCreate,
    user_id: str = Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
) -> CategoryOut:
    c = ctx.categories.create(user_id, payload.name, description=payload.description, parent_id=payload.parent_id)
    return CategoryOut.from_category(c)


@router.get("", response_model=list[CategoryOut])
def list_categories(user_id: str = Depends(get_current_user), ctx: AppContext = Depends(get_context)):
    return [CategoryOut.from_category(c) for c in ctx.categories.list_categories(user_id)]


@router.get("/tree", response_model=list[CategoryTreeOut])
def category_tree(user_id: str = Depends(get_current_user), ctx: AppContext = Depends(get_context)):
    return tree_to_out(ctx.categories.tree(user_id))


@router.patch("/{category_id}", response_model=CategoryOut)
def update_category(
    category_id: UUID,
    payload: CategoryUpdate,
    user_id: str = Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
) -> CategoryOut:
    # only fields present in the body are forwarded; an explicit null parent makes a root
    fields = payload.model_dump(exclude_unset=True)
    c = ctx.categories.update(user_id, category_id, **fields)
    return CategoryOut.from_category(c)


@router.delete("/{category_id}", status_code=204)
def delete_category(category_id: UUID, user_id: str = Depends(get_current_user), ctx: AppContext = Depends(get_context)):
    ctx.categories.delete(user_id, category_id)
    return None
