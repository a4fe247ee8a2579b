"""
Article service: business logic for the Article aggregate.

Design notes
------------
- Every write that touches more than one table runs inside
  ``Session.do_transactionally``; the repositories pick the transaction
  up from the context, so a failure anywhere in the unit of work leaves
  no partial rows behind.
- Listings are assembled with one query per related table (tags,
  favourites, counts, authors, follows) over the whole page rather than
  one query per article.
- Writes that add or remove tag links drop the cached tag list.
"""
import logging
import re
from datetime import datetime, timezone

from conduit.cache import cache
from conduit.db import Session
from conduit.entities import Article, User
from conduit.errors import PermissionDeniedError, UnprocessableEntityError
from conduit.repositories import articles as articles_repo
from conduit.repositories import profiles as profiles_repo
from conduit.repositories import tags as tags_repo
from conduit.repositories import users as users_repo
from conduit.schemas import NewArticle, UpdateArticle
from conduit.services.profile_service import author_profile

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_SLUG_STRIP_RE = re.compile(r"[^\w\s-]")
_SLUG_SPACE_RE = re.compile(r"[\s_]+")
_SLUG_DASH_RE = re.compile(r"-+")


def slugify(text: str) -> str:
    """Return a URL-safe, lowercase slug derived from *text*."""
    text = _SLUG_STRIP_RE.sub("", text.lower().strip())
    text = _SLUG_SPACE_RE.sub("-", text)
    return _SLUG_DASH_RE.sub("-", text).strip("-")


def _slug_for(title: str) -> str:
    slug = slugify(title)
    if not slug:
        raise UnprocessableEntityError("Title must contain at least one letter or digit.")
    return slug


def format_timestamp(value: datetime) -> str:
    """ISO 8601 in UTC with millisecond precision, e.g. ``2016-02-18T03:22:56.637Z``."""
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def _clean_tags(names: list[str]) -> list[str]:
    return [name.strip() for name in names if name and name.strip()]


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

async def _articles_to_dicts(session: Session, articles: list[Article], viewer: User | None) -> list[dict]:
    """
    Serialise *articles* as seen by *viewer*.

    Related data for the whole batch is fetched up front: five queries
    regardless of the number of articles.
    """
    if not articles:
        return []
    article_ids = [a.id for a in articles]
    viewer_id = viewer.id if viewer else None

    tags = await tags_repo.get_tags_by_article_ids(session, article_ids)
    favorited = await articles_repo.get_favorited_ids(session, viewer_id, article_ids)
    counts = await articles_repo.get_favorites_counts(session, article_ids)
    authors = {u.id: u for u in await users_repo.get_users_by_ids(session, [a.author_id for a in articles])}
    following: set[int] = set()
    if viewer_id is not None:
        following = await profiles_repo.get_followed_ids(session, viewer_id, list(authors))

    return [
        {
            "slug": a.slug,
            "title": a.title,
            "description": a.description,
            "body": a.body,
            "tagList": [tag.name for tag in tags.get(a.id, [])],
            "createdAt": format_timestamp(a.created_at),
            "updatedAt": format_timestamp(a.updated_at),
            "favorited": a.id in favorited,
            "favoritesCount": counts.get(a.id, 0),
            "author": author_profile(authors[a.author_id], a.author_id in following),
        }
        for a in articles
    ]


async def _article_envelope(session: Session, article: Article, viewer: User | None) -> dict:
    (data,) = await _articles_to_dicts(session, [article], viewer)
    return {"article": data}


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def get_article(session: Session, slug: str, viewer: User | None) -> dict:
    article = await articles_repo.get_article_by_slug(session, slug)
    return await _article_envelope(session, article, viewer)


async def list_articles(
    session: Session,
    viewer: User | None,
    *,
    tag: str | None = None,
    author: str | None = None,
    favorited: str | None = None,
    limit: int = 20,
    offset: int = 0,
) -> dict:
    """
    Most recent articles first, with the total count of matching articles.

    Two SQL statements are issued for the page itself (COUNT and SELECT)
    plus the batch lookups of ``_articles_to_dicts``.
    """
    filters = {"tag": tag, "author": author, "favorited": favorited}
    total = await articles_repo.count_articles(session, **filters)
    articles = await articles_repo.list_articles(session, limit=limit, offset=offset, **filters)
    return {
        "articles": await _articles_to_dicts(session, articles, viewer),
        "articlesCount": total,
    }


async def feed_articles(session: Session, viewer: User, *, limit: int = 20, offset: int = 0) -> dict:
    """Articles by the users *viewer* follows, most recent first."""
    total = await articles_repo.count_feed(session, viewer.id)
    articles = await articles_repo.feed_articles(session, viewer.id, limit=limit, offset=offset)
    return {
        "articles": await _articles_to_dicts(session, articles, viewer),
        "articlesCount": total,
    }


async def create_article(session: Session, author: User, data: NewArticle) -> dict:
    """
    Create the article, its tags and the links between them atomically.

    A title whose slug is already taken is rejected with a 409.
    """
    slug = _slug_for(data.title)
    tag_names = _clean_tags(data.tag_list)

    async def unit_of_work(tx: Session) -> Article:
        tags = await tags_repo.create_tags(tx, tag_names)
        article = await articles_repo.create_article(
            tx,
            slug=slug,
            title=data.title,
            description=data.description,
            body=data.body,
            author_id=author.id,
        )
        await tags_repo.link_tags(tx, article.id, [tag.id for tag in tags])
        return article

    article = await session.do_transactionally(unit_of_work)
    logger.info("Created article id=%s slug=%s", article.id, article.slug)
    if tag_names:
        await cache.invalidate_tags()
    return await _article_envelope(session, article, author)


async def update_article(session: Session, slug: str, editor: User, data: UpdateArticle) -> dict:
    """
    Partially update an article owned by *editor*.

    Only fields explicitly set in the request payload are modified
    (``model_dump(exclude_unset=True)``).  A new title regenerates the
    slug; a tag list, even an empty one, replaces the article's tags.
    """
    changes = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
    tag_names = changes.pop("tag_list", None)
    new_slug = _slug_for(changes["title"]) if "title" in changes else None

    async def unit_of_work(tx: Session) -> Article:
        article = await articles_repo.get_article_by_slug(tx, slug)
        if article.author_id != editor.id:
            raise PermissionDeniedError("Only the author can edit this article.")
        for field, value in changes.items():
            setattr(article, field, value)
        if new_slug is not None:
            article.slug = new_slug
        updated = await articles_repo.update_article(tx, article)

        if tag_names is not None:
            await tags_repo.unlink_tags(tx, article.id)
            tags = await tags_repo.create_tags(tx, _clean_tags(tag_names))
            await tags_repo.link_tags(tx, article.id, [tag.id for tag in tags])
        return updated

    article = await session.do_transactionally(unit_of_work)
    if tag_names is not None:
        await cache.invalidate_tags()
    return await _article_envelope(session, article, editor)


async def delete_article(session: Session, slug: str, user: User) -> None:
    async def unit_of_work(tx: Session) -> None:
        article = await articles_repo.get_article_by_slug(tx, slug)
        if article.author_id != user.id:
            raise PermissionDeniedError("Only the author can delete this article.")
        await articles_repo.delete_article(tx, article.id)

    await session.do_transactionally(unit_of_work)
    logger.info("Deleted article slug=%s", slug)
    await cache.invalidate_tags()


async def favorite_article(session: Session, slug: str, user: User) -> dict:
    async def unit_of_work(tx: Session) -> Article:
        article = await articles_repo.get_article_by_slug(tx, slug)
        await articles_repo.favorite_article(tx, article.id, user.id)
        return article

    article = await session.do_transactionally(unit_of_work)
    return await _article_envelope(session, article, user)


async def unfavorite_article(session: Session, slug: str, user: User) -> dict:
    async def unit_of_work(tx: Session) -> Article:
        article = await articles_repo.get_article_by_slug(tx, slug)
        await articles_repo.unfavorite_article(tx, article.id, user.id)
        return article

    article = await session.do_transactionally(unit_of_work)
    return await _article_envelope(session, article, user)
