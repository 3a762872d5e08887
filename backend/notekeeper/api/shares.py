from fastapi import APIRouter, Depends

from notekeeper.context import AppContext, get_context
from notekeeper.models.shares import SharedNoteOut

router = APIRouter(prefix="/share", tags=["share"])


# public: the token itself is the credential, and redeeming it consumes it
@router.post("/{token}", response_model=SharedNoteOut)
def redeem_share_link(token: str, ctx: AppContext = Depends(get_context)) -> SharedNoteOut:
    return SharedNoteOut.from_note(ctx.broker.resolve_share_link(token))
