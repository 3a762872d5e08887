from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from notekeeper.context import AppContext, get_context
from notekeeper.models.auth import LoginRequest, RegisterRequest, TokenResponse
from notekeeper.utils.jwt_auth import create_access_token

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(req: RegisterRequest, ctx: AppContext = Depends(get_context)):
    if ctx.users.get(req.user_id) is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User exists")

    hpw = ctx.hasher.hash(req.password)  # never store plaintext
    try:
        ctx.users.create(req.user_id, hpw, ctx.clock.now())
    except FileExistsError:
        # lost a race with a concurrent registration
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User exists")
    return {"user_id": req.user_id}


@router.post("/login", response_model=TokenResponse)
def login(req: LoginRequest, ctx: AppContext = Depends(get_context)):
    rec = ctx.users.get(req.user_id)
    if rec is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    if not ctx.hasher.verify(req.password, rec.hashed_password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    token = create_access_token(req.user_id, ctx.settings)
    return TokenResponse(access_token=token, expires_in=ctx.settings.jwt_exp_minutes * 60)
