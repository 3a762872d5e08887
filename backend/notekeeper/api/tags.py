from fastapi import APIRouter, Depends

from notekeeper.context import AppContext, get_context
from notekeeper.models.tags import TagOut
from notekeeper.utils.jwt_auth import get_current_user

router = APIRouter(prefix="/tags", tags=["tags"])


@router.get("", response_model=list[TagOut])
def list_tags(user_id: str = Depends(get_current_user), ctx: AppContext = Depends(get_context)) -> list[TagOut]:
    return [TagOut(name=t.name) for t in ctx.tags.list_tags(user_id)]
