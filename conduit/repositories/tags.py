"""
Tag repository: tag upsert and the ``articles_tags`` join table.
"""
from __future__ import annotations

from collections import defaultdict

from sqlalchemy import Row, bindparam, text

from conduit.db import Session, execute_delete_query, execute_query, execute_statement
from conduit.entities import Tag
from conduit.repositories.base import unique_ids, values_clause

_SELECT_BY_ARTICLE_IDS = text(
    """
    SELECT at.article_id, t.id, t.name
    FROM articles_tags AS at
    JOIN tags AS t ON at.tag_id = t.id
    WHERE at.article_id IN :article_ids
    ORDER BY t.name
    """
).bindparams(bindparam("article_ids", expanding=True))

_SELECT_ALL = """
    SELECT t.id, t.name
    FROM tags AS t
    WHERE EXISTS (SELECT 1 FROM articles_tags AS at WHERE at.tag_id = t.id)
    ORDER BY t.name
"""

_DELETE_LINKS = "DELETE FROM articles_tags WHERE article_id = :article_id"


def _decode_tag(row: Row) -> Tag:
    return Tag(id=row.id, name=row.name)


async def create_tags(session: Session, names: list[str]) -> list[Tag]:
    """
    Return a ``Tag`` for each name, inserting the ones that do not exist.

    Repeated names are collapsed; the result follows first-seen order.
    """
    wanted = list(dict.fromkeys(names))
    if not wanted:
        return []

    values, params = values_clause("name", [(name,) for name in wanted])
    # DO UPDATE (not DO NOTHING) so existing rows are returned as well.
    statement = f"""
        INSERT INTO tags (name)
        VALUES {values}
        ON CONFLICT (name) DO UPDATE SET name = EXCLUDED.name
        RETURNING id, name
    """
    returned = await execute_query(session, statement, _decode_tag, **params)

    by_name = {tag.name: tag for tag in returned}
    missing = [name for name in wanted if name not in by_name]
    if missing:
        raise LookupError(f"tags not returned by upsert: {missing}")
    return [by_name[name] for name in wanted]


async def link_tags(session: Session, article_id: int, tag_ids: list[int]) -> int:
    ids = unique_ids(tag_ids)
    if not ids:
        return 0
    values, params = values_clause("link", [(article_id, tag_id) for tag_id in ids])
    statement = f"INSERT INTO articles_tags (article_id, tag_id) VALUES {values}"
    return await execute_statement(session, statement, **params)


async def unlink_tags(session: Session, article_id: int) -> int:
    return await execute_delete_query(session, _DELETE_LINKS, article_id=article_id)


async def get_tags_by_article_ids(session: Session, article_ids: list[int]) -> dict[int, list[Tag]]:
    ids = unique_ids(article_ids)
    if not ids:
        return {}
    rows = await execute_query(
        session,
        _SELECT_BY_ARTICLE_IDS,
        lambda row: (row.article_id, Tag(id=row.id, name=row.name)),
        article_ids=ids,
    )
    grouped: dict[int, list[Tag]] = defaultdict(list)
    for article_id, tag in rows:
        grouped[article_id].append(tag)
    return dict(grouped)


async def list_tags(session: Session) -> list[Tag]:
    """Tags attached to at least one article."""
    return await execute_query(session, _SELECT_ALL, _decode_tag)
