"""
User repository: accounts and lookups.

Email and username uniqueness is enforced by the ``users_email_key`` and
``users_username_key`` constraints; violations surface here as
``ConstraintViolation`` and are mapped to the matching duplicate error.
"""
from __future__ import annotations

from typing import NoReturn

from sqlalchemy import Row, bindparam, text

from conduit.db import ConstraintViolation, NoRowsFoundError, Session
from conduit.db import execute_query, execute_single_query
from conduit.entities import User
from conduit.errors import DuplicateEmailError, DuplicateUsernameError, RecordNotFoundError
from conduit.repositories.base import unique_ids

_USER_COLUMNS = "id, username, email, password, bio, image"

_INSERT_USER = f"""
    INSERT INTO users (username, email, password)
    VALUES (:username, :email, :password)
    RETURNING {_USER_COLUMNS}
"""

_SELECT_BY_ID = f"SELECT {_USER_COLUMNS} FROM users WHERE id = :id"
_SELECT_BY_EMAIL = f"SELECT {_USER_COLUMNS} FROM users WHERE email = :email"
_SELECT_BY_USERNAME = f"SELECT {_USER_COLUMNS} FROM users WHERE username = :username"

_SELECT_BY_IDS = text(
    f"SELECT {_USER_COLUMNS} FROM users WHERE id IN :ids"
).bindparams(bindparam("ids", expanding=True))

# Columns a user may change about themselves.
_UPDATABLE_COLUMNS = ("username", "email", "password", "bio", "image")

_DUPLICATE_ERRORS = {
    "users_email_key": DuplicateEmailError,
    "users_username_key": DuplicateUsernameError,
}


def _decode_user(row: Row) -> User:
    return User(
        id=row.id,
        username=row.username,
        email=row.email,
        password=row.password,
        bio=row.bio,
        image=row.image,
    )


def _raise_duplicate(exc: ConstraintViolation) -> NoReturn:
    error_cls = _DUPLICATE_ERRORS.get(exc.constraint or "")
    if error_cls is None:
        raise exc
    raise error_cls() from exc


async def create_user(session: Session, *, username: str, email: str, password_hash: str) -> User:
    try:
        return await execute_single_query(
            session,
            _INSERT_USER,
            _decode_user,
            username=username,
            email=email,
            password=password_hash,
        )
    except ConstraintViolation as exc:
        _raise_duplicate(exc)


async def _get_one(session: Session, statement: str, **params) -> User:
    try:
        return await execute_single_query(session, statement, _decode_user, strict=True, **params)
    except NoRowsFoundError as exc:
        raise RecordNotFoundError("User not found.") from exc


async def get_user_by_id(session: Session, user_id: int) -> User:
    return await _get_one(session, _SELECT_BY_ID, id=user_id)


async def get_user_by_email(session: Session, email: str) -> User:
    return await _get_one(session, _SELECT_BY_EMAIL, email=email)


async def get_user_by_username(session: Session, username: str) -> User:
    return await _get_one(session, _SELECT_BY_USERNAME, username=username)


async def get_users_by_ids(session: Session, user_ids: list[int]) -> list[User]:
    ids = unique_ids(user_ids)
    if not ids:
        return []
    return await execute_query(session, _SELECT_BY_IDS, _decode_user, ids=ids)


async def update_user(session: Session, user_id: int, **changes: str | None) -> User:
    """
    Update the given columns of user *user_id* and return the new row.

    Only keys in ``_UPDATABLE_COLUMNS`` are accepted.  With no changes the
    current row is returned unchanged.
    """
    unknown = set(changes) - set(_UPDATABLE_COLUMNS)
    if unknown:
        raise ValueError(f"cannot update user columns: {sorted(unknown)}")
    if not changes:
        return await get_user_by_id(session, user_id)

    assignments = ", ".join(f"{column} = :{column}" for column in changes)
    statement = f"""
        UPDATE users
        SET {assignments}
        WHERE id = :id
        RETURNING {_USER_COLUMNS}
    """
    try:
        return await execute_single_query(session, statement, _decode_user, id=user_id, **changes)
    except NoRowsFoundError as exc:
        raise RecordNotFoundError("User not found.") from exc
    except ConstraintViolation as exc:
        _raise_duplicate(exc)
