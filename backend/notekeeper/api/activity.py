from fastapi import APIRouter, Depends, Query

from notekeeper.context import AppContext, get_context
from notekeeper.models.activity import ActivityEventOut
from notekeeper.utils.jwt_auth import get_current_user

router = APIRouter(prefix="/activity", tags=["activity"])


@router.get("", response_model=list[ActivityEventOut])
def recent_activity(
    limit: int = Query(default=50, ge=1, le=500),
    user_id: str = Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
) -> list[ActivityEventOut]:
    return [ActivityEventOut(**e) for e in ctx.event_log.recent(user_id, limit=limit)]
