"""
User service: registration, login and the current user's account.

Responses carry a freshly issued token, except for ``current_user``,
which echoes the token the caller authenticated with.  Updates drop the
caller's entry from the authenticated-user cache so the next request
sees the new row.
"""
import logging

from conduit.db import Session
from conduit.entities import User
from conduit.errors import InvalidCredentialsError, RecordNotFoundError
from conduit.repositories import users as users_repo
from conduit.schemas import LoginUser, NewUser, UpdateUser
from conduit.security import create_access_token, hash_password, user_cache, verify_password

logger = logging.getLogger(__name__)


def _user_to_dict(user: User, token: str) -> dict:
    return {
        "email": user.email,
        "token": token,
        "username": user.username,
        "bio": user.bio,
        "image": user.image,
    }


async def register(session: Session, data: NewUser) -> dict:
    user = await users_repo.create_user(
        session,
        username=data.username,
        email=data.email,
        password_hash=hash_password(data.password),
    )
    logger.info("Registered user id=%s", user.id)
    return {"user": _user_to_dict(user, create_access_token(user))}


async def login(session: Session, data: LoginUser) -> dict:
    """Authenticate by email and password; unknown email and bad password look the same."""
    try:
        user = await users_repo.get_user_by_email(session, data.email)
    except RecordNotFoundError as exc:
        raise InvalidCredentialsError("Invalid email or password.") from exc
    if not verify_password(data.password, user.password):
        raise InvalidCredentialsError("Invalid email or password.")
    return {"user": _user_to_dict(user, create_access_token(user))}


def current_user(user: User, token: str) -> dict:
    return {"user": _user_to_dict(user, token)}


async def update_user(session: Session, user: User, data: UpdateUser) -> dict:
    """
    Apply the fields explicitly present in *data* to *user*.

    A new token is issued because the email claim may have changed.
    """
    changes = data.model_dump(exclude_unset=True)
    # Required columns; an explicit null leaves them as they are.
    for column in ("username", "email", "password"):
        if column in changes and changes[column] is None:
            del changes[column]
    if "password" in changes:
        changes["password"] = hash_password(changes["password"])

    updated = await users_repo.update_user(session, user.id, **changes)
    user_cache.delete(user.email)
    return {"user": _user_to_dict(updated, create_access_token(updated))}
