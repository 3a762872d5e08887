"""Password hashing helpers using passlib.

``PasswordHasher`` wraps a passlib ``CryptContext`` used by the
register/login flow:
- hash(plain: str) -> str
- verify(plain: str, hashed: str) -> bool

bcrypt is preferred. When the bcrypt backend is missing or fails its
self-test, hashing falls back to pbkdf2_sha256 and a RuntimeWarning is
emitted. ``rounds`` (``BCRYPT_ROUNDS``) applies to whichever scheme is
active; ``None`` keeps passlib's default cost.
"""
from __future__ import annotations

import warnings
from typing import Optional

from passlib.context import CryptContext


def _build_context(rounds: Optional[int]) -> CryptContext:
    try:
        if rounds:
            ctx = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)
        else:
            ctx = CryptContext(schemes=["bcrypt"], deprecated="auto")
        ctx.hash("self-test")
        return ctx
    except Exception as exc:
        warnings.warn(
            "bcrypt backend not available or failed to initialize; falling back to pbkdf2_sha256. "
            f"Original error: {exc}",
            RuntimeWarning,
        )
    if rounds:
        return CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto", pbkdf2_sha256__rounds=rounds)
    return CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


class PasswordHasher:
    def __init__(self, rounds: Optional[int] = None):
        self.context = _build_context(rounds)

    def hash(self, plain: str) -> str:
        """Hash a plaintext password and return the encoded hash string."""
        if plain is None:
            raise ValueError("Password must not be None")
        return self.context.hash(plain)

    def verify(self, plain: str, hashed: str) -> bool:
        """Verify a plaintext password against a stored hash.

        Returns True if the password matches, False otherwise (including
        for malformed hashes).
        """
        if plain is None or hashed is None:
            return False
        try:
            return self.context.verify(plain, hashed)
        except (ValueError, TypeError):
            return False
