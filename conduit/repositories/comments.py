"""Comment repository."""
from __future__ import annotations

from sqlalchemy import Row

from conduit.db import NoRowsFoundError, Session
from conduit.db import execute_delete_query, execute_query, execute_single_query
from conduit.entities import Comment
from conduit.errors import RecordNotFoundError
from conduit.repositories.base import as_datetime

_COMMENT_COLUMNS = "id, body, created_at, updated_at, author_id, article_id"

_INSERT_COMMENT = f"""
    INSERT INTO comments (body, created_at, updated_at, author_id, article_id)
    VALUES (:body, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP, :author_id, :article_id)
    RETURNING {_COMMENT_COLUMNS}
"""

_SELECT_BY_ID = f"SELECT {_COMMENT_COLUMNS} FROM comments WHERE id = :id AND article_id = :article_id"

_SELECT_BY_ARTICLE = f"""
    SELECT {_COMMENT_COLUMNS}
    FROM comments
    WHERE article_id = :article_id
    ORDER BY created_at, id
"""

_DELETE_COMMENT = "DELETE FROM comments WHERE id = :id AND article_id = :article_id"


def _decode_comment(row: Row) -> Comment:
    return Comment(
        id=row.id,
        body=row.body,
        created_at=as_datetime(row.created_at),
        updated_at=as_datetime(row.updated_at),
        author_id=row.author_id,
        article_id=row.article_id,
    )


async def create_comment(session: Session, *, body: str, author_id: int, article_id: int) -> Comment:
    return await execute_single_query(
        session,
        _INSERT_COMMENT,
        _decode_comment,
        body=body,
        author_id=author_id,
        article_id=article_id,
    )


async def get_comment(session: Session, comment_id: int, article_id: int) -> Comment:
    """Comment *comment_id* if it belongs to *article_id*."""
    try:
        return await execute_single_query(
            session, _SELECT_BY_ID, _decode_comment, strict=True, id=comment_id, article_id=article_id
        )
    except NoRowsFoundError as exc:
        raise RecordNotFoundError("Comment not found.") from exc


async def get_comments_by_article(session: Session, article_id: int) -> list[Comment]:
    return await execute_query(session, _SELECT_BY_ARTICLE, _decode_comment, article_id=article_id)


async def delete_comment(session: Session, comment_id: int, article_id: int) -> int:
    return await execute_delete_query(session, _DELETE_COMMENT, id=comment_id, article_id=article_id)
