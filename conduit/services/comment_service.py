"""
Comment service: comments on the Article aggregate.

A comment can be removed by its author or by the author of the article
it belongs to.
"""
import logging

from conduit.db import Session
from conduit.entities import Comment, User
from conduit.errors import PermissionDeniedError
from conduit.repositories import articles as articles_repo
from conduit.repositories import comments as comments_repo
from conduit.repositories import profiles as profiles_repo
from conduit.repositories import users as users_repo
from conduit.schemas import NewComment
from conduit.services.article_service import format_timestamp
from conduit.services.profile_service import author_profile

logger = logging.getLogger(__name__)


async def _comments_to_dicts(session: Session, comments: list[Comment], viewer: User | None) -> list[dict]:
    if not comments:
        return []
    authors = {u.id: u for u in await users_repo.get_users_by_ids(session, [c.author_id for c in comments])}
    following: set[int] = set()
    if viewer is not None:
        following = await profiles_repo.get_followed_ids(session, viewer.id, list(authors))
    return [
        {
            "id": c.id,
            "createdAt": format_timestamp(c.created_at),
            "updatedAt": format_timestamp(c.updated_at),
            "body": c.body,
            "author": author_profile(authors[c.author_id], c.author_id in following),
        }
        for c in comments
    ]


async def list_comments(session: Session, slug: str, viewer: User | None) -> dict:
    """Comments on the article *slug*, oldest first."""
    article = await articles_repo.get_article_by_slug(session, slug)
    comments = await comments_repo.get_comments_by_article(session, article.id)
    return {"comments": await _comments_to_dicts(session, comments, viewer)}


async def add_comment(session: Session, slug: str, author: User, data: NewComment) -> dict:
    async def unit_of_work(tx: Session) -> Comment:
        article = await articles_repo.get_article_by_slug(tx, slug)
        return await comments_repo.create_comment(
            tx, body=data.body, author_id=author.id, article_id=article.id
        )

    comment = await session.do_transactionally(unit_of_work)
    (data_out,) = await _comments_to_dicts(session, [comment], author)
    return {"comment": data_out}


async def delete_comment(session: Session, slug: str, comment_id: int, user: User) -> None:
    async def unit_of_work(tx: Session) -> None:
        article = await articles_repo.get_article_by_slug(tx, slug)
        comment = await comments_repo.get_comment(tx, comment_id, article.id)
        if user.id not in (comment.author_id, article.author_id):
            raise PermissionDeniedError("Only the comment author can delete this comment.")
        await comments_repo.delete_comment(tx, comment.id, article.id)

    await session.do_transactionally(unit_of_work)
    logger.info("Deleted comment id=%s on article slug=%s", comment_id, slug)
