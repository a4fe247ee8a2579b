"""Password hashing, JWT issuance and the authenticated-user cache."""

from __future__ import annotations

import time
from collections import OrderedDict
from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Any, Callable

import bcrypt
from jose import JWTError, jwt

from conduit.config import settings
from conduit.entities import User


def hash_password(password: str) -> str:
    """Return a bcrypt hash of ``password``."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a plain password against its stored bcrypt hash."""
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash.
        return False


def create_access_token(user: User, expires_delta: timedelta | None = None) -> str:
    """Create a signed JWT identifying ``user`` by email and username."""
    now = datetime.now(timezone.utc)
    if expires_delta is None:
        expires_delta = timedelta(hours=settings.TOKEN_TTL_HOURS)
    payload: dict[str, Any] = {
        "sub": user.email,
        "email": user.email,
        "username": user.username,
        "iat": now,
        "exp": now + expires_delta,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and verify a JWT; raises ``JWTError`` when invalid or expired."""
    claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    if not claims.get("email"):
        raise JWTError("token has no email claim")
    return claims


class AuthenticatedUserCache:
    """
    Users resolved from tokens, keyed by email.

    Entries expire *ttl* seconds after they are stored (never when *ttl* is
    None).  Beyond *max_entries* the oldest entry is evicted.
    """

    def __init__(
        self,
        ttl: float | None = None,
        max_entries: int = 10_000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._users: OrderedDict[str, tuple[User, float | None]] = OrderedDict()
        self._ttl = ttl
        self._max_entries = max_entries
        self._clock = clock
        self._lock = Lock()

    def store(self, user: User) -> None:
        expires_at = None if self._ttl is None else self._clock() + self._ttl
        with self._lock:
            self._users.pop(user.email, None)
            self._users[user.email] = (user, expires_at)
            while len(self._users) > self._max_entries:
                self._users.popitem(last=False)

    def get(self, email: str) -> User | None:
        with self._lock:
            entry = self._users.get(email)
            if entry is None:
                return None
            user, expires_at = entry
            if expires_at is not None and self._clock() >= expires_at:
                del self._users[email]
                return None
            return user

    def delete(self, email: str) -> None:
        with self._lock:
            self._users.pop(email, None)

    def clear(self) -> None:
        with self._lock:
            self._users.clear()


user_cache = AuthenticatedUserCache(
    ttl=settings.CACHE_TTL_USERS, max_entries=settings.USER_CACHE_MAX_ENTRIES
)


__all__ = [
    "AuthenticatedUserCache",
    "JWTError",
    "create_access_token",
    "decode_access_token",
    "hash_password",
    "user_cache",
    "verify_password",
]
