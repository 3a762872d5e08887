from pydantic import BaseModel, Field

# principal ids end up in ACLs and activity logs; keep them printable
USER_ID_PATTERN = r"^[A-Za-z0-9_.@-]+$"


class RegisterRequest(BaseModel):
    user_id: str = Field(min_length=3, max_length=64, pattern=USER_ID_PATTERN)
    password: str = Field(min_length=8, max_length=128)


class LoginRequest(BaseModel):
    user_id: str = Field(min_length=3, max_length=64)
    password: str = Field(min_length=8, max_length=128)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
