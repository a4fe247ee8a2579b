from dataclasses import dataclass

from fastapi import Depends, Header, Query

from conduit.config import settings
from conduit.database import get_session
from conduit.db import Session
from conduit.entities import User
from conduit.errors import AuthenticationRequiredError, RecordNotFoundError
from conduit.repositories import users as users_repo
from conduit.security import JWTError, decode_access_token, user_cache

TOKEN_SCHEME = "Token"


class PaginationParams:
    """
    Reusable FastAPI dependency that parses and validates ``limit`` /
    ``offset`` query parameters.

    Usage in a router::

        @router.get("/api/articles")
        async def list_articles(pagination: PaginationParams = Depends(PaginationParams)):
            ...

    Attributes
    ----------
    limit:
        Number of items returned, 1 to 100; values outside that range are
        rejected with 422.  ``settings.MAX_PAGE_SIZE`` may lower the ceiling.
    offset:
        Number of items to skip, at most ``settings.MAX_OFFSET``.
    """

    def __init__(
        self,
        limit: int = Query(
            settings.DEFAULT_PAGE_SIZE,
            ge=1,
            le=100,
            description="Number of items returned (max 100).",
        ),
        offset: int = Query(
            0,
            ge=0,
            le=10_000_000,
            description="Number of items to skip.",
        ),
    ) -> None:
        self.limit = min(limit, settings.MAX_PAGE_SIZE)
        self.offset = min(offset, settings.MAX_OFFSET)


@dataclass
class Principal:
    """The authenticated caller and the token they presented."""

    user: User
    token: str


def _parse_authorization(authorization: str) -> str:
    scheme, _, token = authorization.partition(" ")
    if scheme != TOKEN_SCHEME or not token.strip():
        raise AuthenticationRequiredError("Authorization header must be 'Token <jwt>'.")
    return token.strip()


async def _resolve_user(session: Session, token: str) -> User:
    try:
        claims = decode_access_token(token)
    except JWTError as exc:
        raise AuthenticationRequiredError("Invalid or expired token.") from exc

    email = claims["email"]
    user = user_cache.get(email)
    if user is not None:
        return user
    try:
        user = await users_repo.get_user_by_email(session, email)
    except RecordNotFoundError as exc:
        raise AuthenticationRequiredError("Invalid or expired token.") from exc
    user_cache.store(user)
    return user


async def get_optional_principal(
    authorization: str | None = Header(None),
    session: Session = Depends(get_session),
) -> Principal | None:
    """The caller if an Authorization header is present; None for anonymous requests."""
    if not authorization:
        return None
    token = _parse_authorization(authorization)
    return Principal(user=await _resolve_user(session, token), token=token)


async def get_principal(principal: Principal | None = Depends(get_optional_principal)) -> Principal:
    if principal is None:
        raise AuthenticationRequiredError()
    return principal


async def get_optional_user(principal: Principal | None = Depends(get_optional_principal)) -> User | None:
    return principal.user if principal else None


async def get_current_user(principal: Principal = Depends(get_principal)) -> User:
    return principal.user
