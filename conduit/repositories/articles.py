"""
Article repository: article rows, listing filters and favourites.

Listing filters are composed as ``EXISTS`` sub-queries rather than joins
so an article is returned once no matter how many tags or favourites
match, and the same WHERE clause serves both the page and the count.
"""
from __future__ import annotations

from typing import Any, NoReturn

from sqlalchemy import Row, bindparam, text

from conduit.db import ConstraintViolation, NoRowsFoundError, Session
from conduit.db import execute_delete_query, execute_query, execute_single_query, execute_statement
from conduit.entities import Article
from conduit.errors import DuplicateSlugError, RecordNotFoundError
from conduit.repositories.base import as_datetime, unique_ids

_ARTICLE_COLUMNS = "a.id, a.slug, a.title, a.description, a.body, a.created_at, a.updated_at, a.author_id"

_INSERT_ARTICLE = """
    INSERT INTO articles (slug, title, description, body, created_at, updated_at, author_id)
    VALUES (:slug, :title, :description, :body, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP, :author_id)
    RETURNING id, slug, title, description, body, created_at, updated_at, author_id
"""

_SELECT_BY_SLUG = f"SELECT {_ARTICLE_COLUMNS} FROM articles AS a WHERE a.slug = :slug"

_UPDATE_ARTICLE = """
    UPDATE articles
    SET slug = :slug, title = :title, description = :description, body = :body,
        updated_at = CURRENT_TIMESTAMP
    WHERE id = :id
    RETURNING id, slug, title, description, body, created_at, updated_at, author_id
"""

# Children first; no reliance on ON DELETE CASCADE.
_DELETE_STATEMENTS = (
    "DELETE FROM articles_tags WHERE article_id = :article_id",
    "DELETE FROM favourite_articles WHERE article_id = :article_id",
    "DELETE FROM comments WHERE article_id = :article_id",
)
_DELETE_ARTICLE = "DELETE FROM articles WHERE id = :article_id"

_INSERT_FAVOURITE = """
    INSERT INTO favourite_articles (user_id, article_id)
    VALUES (:user_id, :article_id)
    ON CONFLICT DO NOTHING
"""
_DELETE_FAVOURITE = "DELETE FROM favourite_articles WHERE user_id = :user_id AND article_id = :article_id"

_SELECT_FAVOURITED = text(
    "SELECT article_id FROM favourite_articles WHERE user_id = :user_id AND article_id IN :article_ids"
).bindparams(bindparam("article_ids", expanding=True))

_SELECT_FAVOURITE_COUNTS = text(
    """
    SELECT article_id, COUNT(*) AS favourites
    FROM favourite_articles
    WHERE article_id IN :article_ids
    GROUP BY article_id
    """
).bindparams(bindparam("article_ids", expanding=True))


def _decode_article(row: Row) -> Article:
    return Article(
        id=row.id,
        slug=row.slug,
        title=row.title,
        description=row.description,
        body=row.body,
        created_at=as_datetime(row.created_at),
        updated_at=as_datetime(row.updated_at),
        author_id=row.author_id,
    )


def _raise_for_slug(exc: ConstraintViolation) -> NoReturn:
    if exc.constraint == "articles_slug_key":
        raise DuplicateSlugError() from exc
    raise exc


# ---------------------------------------------------------------------------
# Single-article operations
# ---------------------------------------------------------------------------

async def create_article(
    session: Session,
    *,
    slug: str,
    title: str,
    description: str,
    body: str,
    author_id: int,
) -> Article:
    try:
        return await execute_single_query(
            session,
            _INSERT_ARTICLE,
            _decode_article,
            slug=slug,
            title=title,
            description=description,
            body=body,
            author_id=author_id,
        )
    except ConstraintViolation as exc:
        _raise_for_slug(exc)


async def get_article_by_slug(session: Session, slug: str) -> Article:
    try:
        return await execute_single_query(session, _SELECT_BY_SLUG, _decode_article, strict=True, slug=slug)
    except NoRowsFoundError as exc:
        raise RecordNotFoundError("Article not found.") from exc


async def update_article(session: Session, article: Article) -> Article:
    """Persist slug, title, description and body of *article*; bumps ``updated_at``."""
    try:
        return await execute_single_query(
            session,
            _UPDATE_ARTICLE,
            _decode_article,
            id=article.id,
            slug=article.slug,
            title=article.title,
            description=article.description,
            body=article.body,
        )
    except NoRowsFoundError as exc:
        raise RecordNotFoundError("Article not found.") from exc
    except ConstraintViolation as exc:
        _raise_for_slug(exc)


async def delete_article(session: Session, article_id: int) -> int:
    """
    Delete the article and everything hanging off it.

    Issues several statements; callers run it inside a transaction.
    Returns the number of article rows removed (0 or 1).
    """
    for statement in _DELETE_STATEMENTS:
        await execute_delete_query(session, statement, article_id=article_id)
    return await execute_delete_query(session, _DELETE_ARTICLE, article_id=article_id)


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------

def _filters(
    tag: str | None, author: str | None, favorited: str | None
) -> tuple[str, dict[str, Any]]:
    clauses: list[str] = []
    params: dict[str, Any] = {}
    if tag:
        clauses.append(
            "EXISTS (SELECT 1 FROM articles_tags AS at JOIN tags AS t ON t.id = at.tag_id"
            " WHERE at.article_id = a.id AND t.name = :tag)"
        )
        params["tag"] = tag
    if author:
        clauses.append(
            "EXISTS (SELECT 1 FROM users AS u WHERE u.id = a.author_id AND u.username = :author)"
        )
        params["author"] = author
    if favorited:
        clauses.append(
            "EXISTS (SELECT 1 FROM favourite_articles AS fa JOIN users AS fu ON fu.id = fa.user_id"
            " WHERE fa.article_id = a.id AND fu.username = :favorited)"
        )
        params["favorited"] = favorited
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    return where, params


async def list_articles(
    session: Session,
    *,
    tag: str | None = None,
    author: str | None = None,
    favorited: str | None = None,
    limit: int = 20,
    offset: int = 0,
) -> list[Article]:
    """Most recent articles first, optionally filtered by tag, author and favouriting user."""
    where, params = _filters(tag, author, favorited)
    statement = f"""
        SELECT {_ARTICLE_COLUMNS}
        FROM articles AS a
        {where}
        ORDER BY a.created_at DESC, a.id DESC
        LIMIT :limit OFFSET :offset
    """
    return await execute_query(session, statement, _decode_article, limit=limit, offset=offset, **params)


async def count_articles(
    session: Session,
    *,
    tag: str | None = None,
    author: str | None = None,
    favorited: str | None = None,
) -> int:
    where, params = _filters(tag, author, favorited)
    statement = f"SELECT COUNT(*) AS total FROM articles AS a {where}"
    return await execute_single_query(session, statement, lambda row: int(row.total), **params)


_FEED_WHERE = "WHERE a.author_id IN (SELECT f.user_id FROM followers AS f WHERE f.follower_id = :follower_id)"


async def feed_articles(session: Session, follower_id: int, *, limit: int = 20, offset: int = 0) -> list[Article]:
    """Articles written by users that *follower_id* follows, most recent first."""
    statement = f"""
        SELECT {_ARTICLE_COLUMNS}
        FROM articles AS a
        {_FEED_WHERE}
        ORDER BY a.created_at DESC, a.id DESC
        LIMIT :limit OFFSET :offset
    """
    return await execute_query(
        session, statement, _decode_article, follower_id=follower_id, limit=limit, offset=offset
    )


async def count_feed(session: Session, follower_id: int) -> int:
    statement = f"SELECT COUNT(*) AS total FROM articles AS a {_FEED_WHERE}"
    return await execute_single_query(session, statement, lambda row: int(row.total), follower_id=follower_id)


# ---------------------------------------------------------------------------
# Favourites
# ---------------------------------------------------------------------------

async def favorite_article(session: Session, article_id: int, user_id: int) -> int:
    """Mark *article_id* as a favourite of *user_id*; idempotent."""
    return await execute_statement(session, _INSERT_FAVOURITE, user_id=user_id, article_id=article_id)


async def unfavorite_article(session: Session, article_id: int, user_id: int) -> int:
    return await execute_delete_query(session, _DELETE_FAVOURITE, user_id=user_id, article_id=article_id)


async def get_favorited_ids(session: Session, user_id: int | None, article_ids: list[int]) -> set[int]:
    """Subset of *article_ids* favourited by *user_id*; empty for anonymous users."""
    ids = unique_ids(article_ids)
    if user_id is None or not ids:
        return set()
    rows = await execute_query(
        session, _SELECT_FAVOURITED, lambda row: row.article_id, user_id=user_id, article_ids=ids
    )
    return set(rows)


async def get_favorites_counts(session: Session, article_ids: list[int]) -> dict[int, int]:
    """Favourite count per article id, zero-filled."""
    ids = unique_ids(article_ids)
    counts = {article_id: 0 for article_id in ids}
    if not ids:
        return counts
    rows = await execute_query(
        session,
        _SELECT_FAVOURITE_COUNTS,
        lambda row: (row.article_id, int(row.favourites)),
        article_ids=ids,
    )
    counts.update(rows)
    return counts
