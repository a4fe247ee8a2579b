"""
Profile repository: public profiles and the ``followers`` relation.

In ``followers`` the ``user_id`` column is the followee and
``follower_id`` the user doing the following.
"""
from __future__ import annotations

from sqlalchemy import Row, bindparam, text

from conduit.db import NoRowsFoundError, Session
from conduit.db import execute_delete_query, execute_query, execute_single_query, execute_statement
from conduit.entities import Profile
from conduit.errors import RecordNotFoundError
from conduit.repositories.base import unique_ids

_SELECT_PROFILE = """
    SELECT u.id, u.username, u.bio, u.image,
           EXISTS (
               SELECT 1 FROM followers f
               WHERE f.user_id = u.id AND f.follower_id = :viewer_id
           ) AS is_following
    FROM users AS u
    WHERE u.username = :username
"""

_INSERT_FOLLOW = """
    INSERT INTO followers (user_id, follower_id)
    VALUES (:user_id, :follower_id)
    ON CONFLICT DO NOTHING
"""

_DELETE_FOLLOW = "DELETE FROM followers WHERE user_id = :user_id AND follower_id = :follower_id"

_SELECT_FOLLOWED = text(
    "SELECT user_id FROM followers WHERE follower_id = :follower_id AND user_id IN :user_ids"
).bindparams(bindparam("user_ids", expanding=True))


def _decode_profile(row: Row) -> Profile:
    return Profile(
        id=row.id,
        username=row.username,
        bio=row.bio,
        image=row.image,
        following=bool(row.is_following),
    )


async def get_profile(session: Session, username: str, viewer_id: int | None = None) -> Profile:
    """Return *username*'s profile as seen by *viewer_id* (anonymous if None)."""
    try:
        return await execute_single_query(
            session,
            _SELECT_PROFILE,
            _decode_profile,
            strict=True,
            username=username,
            # No user has id 0, so anonymous viewers follow nobody.
            viewer_id=viewer_id if viewer_id is not None else 0,
        )
    except NoRowsFoundError as exc:
        raise RecordNotFoundError("Profile not found.") from exc


async def follow(session: Session, user_id: int, follower_id: int) -> int:
    """Record that *follower_id* follows *user_id*; idempotent."""
    return await execute_statement(
        session, _INSERT_FOLLOW, user_id=user_id, follower_id=follower_id
    )


async def unfollow(session: Session, user_id: int, follower_id: int) -> int:
    return await execute_delete_query(
        session, _DELETE_FOLLOW, user_id=user_id, follower_id=follower_id
    )


async def get_followed_ids(session: Session, follower_id: int, user_ids: list[int]) -> set[int]:
    """Subset of *user_ids* that *follower_id* follows."""
    ids = unique_ids(user_ids)
    if not ids:
        return set()
    rows = await execute_query(
        session, _SELECT_FOLLOWED, lambda row: row.user_id, follower_id=follower_id, user_ids=ids
    )
    return set(rows)
