from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from notekeeper.config import Settings

bearer = HTTPBearer(auto_error=False)


def _secret(settings: Settings) -> str:
    if not settings.jwt_secret:
        # required for any token operation; tests/dev set it explicitly
        raise RuntimeError("JWT_SECRET is not set")
    return settings.jwt_secret


def create_access_token(subject: str, settings: Settings) -> str:
    # wall-clock time: jose validates "exp" against it
    now = datetime.now(timezone.utc)
    exp = now + timedelta(minutes=settings.jwt_exp_minutes)
    payload = {"sub": subject, "iat": int(now.timestamp()), "exp": int(exp.timestamp())}
    return jwt.encode(payload, _secret(settings), algorithm=settings.jwt_algorithm)


def decode_token(token: str, settings: Settings) -> dict:
    return jwt.decode(token, _secret(settings), algorithms=[settings.jwt_algorithm])


def get_current_user(
    request: Request,
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
) -> str:
    """
    - Prefer JWT (Authorization: Bearer ...)
    - X-User-Id only when ALLOW_HEADER_AUTH is enabled (demo/tests)
    """
    settings: Settings = request.app.state.context.settings

    if creds is not None and creds.scheme.lower() == "bearer":
        try:
            payload = decode_token(creds.credentials, settings)
        except JWTError:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")
        sub = payload.get("sub")
        if not sub:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
        return str(sub)

    if x_user_id and settings.allow_header_auth:
        return x_user_id

    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing credentials")
