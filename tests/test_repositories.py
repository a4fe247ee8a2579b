"""
Direct repository tests: SQL paths that the endpoint tests only reach
indirectly (tag upsert ordering, batched lookups, cascading deletes).
"""
import pytest

from conduit.db import Session
from conduit.entities import User
from conduit.errors import DuplicateEmailError, RecordNotFoundError
from conduit.repositories import articles as articles_repo
from conduit.repositories import comments as comments_repo
from conduit.repositories import profiles as profiles_repo
from conduit.repositories import tags as tags_repo
from conduit.repositories import users as users_repo


async def _user(session: Session, username: str) -> User:
    return await users_repo.create_user(
        session, username=username, email=f"{username}@mail.com", password_hash="hash"
    )


async def _article(session: Session, author: User, slug: str):
    return await articles_repo.create_article(
        session, slug=slug, title=slug.title(), description="d", body="b", author_id=author.id
    )


@pytest.mark.asyncio
async def test_create_tags_keeps_order_and_reuses_existing(session: Session):
    first = await tags_repo.create_tags(session, ["web", "python"])
    again = await tags_repo.create_tags(session, ["python", "rust", "python", "web"])
    assert [t.name for t in again] == ["python", "rust", "web"]
    assert {t.name: t.id for t in first} == {t.name: t.id for t in again if t.name != "rust"}


@pytest.mark.asyncio
async def test_create_tags_empty(session: Session):
    assert await tags_repo.create_tags(session, []) == []


@pytest.mark.asyncio
async def test_tags_grouped_by_article(session: Session):
    author = await _user(session, "writer")
    one = await _article(session, author, "one")
    two = await _article(session, author, "two")
    python, web = await tags_repo.create_tags(session, ["python", "web"])
    await tags_repo.link_tags(session, one.id, [web.id, python.id])
    await tags_repo.link_tags(session, two.id, [web.id])

    grouped = await tags_repo.get_tags_by_article_ids(session, [one.id, two.id, 999])
    assert [t.name for t in grouped[one.id]] == ["python", "web"]
    assert [t.name for t in grouped[two.id]] == ["web"]
    assert 999 not in grouped

    assert await tags_repo.unlink_tags(session, one.id) == 2
    assert [t.name for t in await tags_repo.list_tags(session)] == ["web"]


@pytest.mark.asyncio
async def test_favourite_counts_are_zero_filled(session: Session):
    author = await _user(session, "writer")
    fan = await _user(session, "fan_one")
    loved = await _article(session, author, "loved")
    ignored = await _article(session, author, "ignored")
    assert await articles_repo.favorite_article(session, loved.id, fan.id) == 1
    assert await articles_repo.favorite_article(session, loved.id, fan.id) == 0

    counts = await articles_repo.get_favorites_counts(session, [loved.id, ignored.id])
    assert counts == {loved.id: 1, ignored.id: 0}
    assert await articles_repo.get_favorited_ids(session, fan.id, [loved.id, ignored.id]) == {loved.id}
    assert await articles_repo.get_favorited_ids(session, None, [loved.id]) == set()


@pytest.mark.asyncio
async def test_delete_article_removes_dependents(session: Session):
    author = await _user(session, "writer")
    article = await _article(session, author, "doomed")
    (tag,) = await tags_repo.create_tags(session, ["gone"])
    await tags_repo.link_tags(session, article.id, [tag.id])
    await articles_repo.favorite_article(session, article.id, author.id)
    await comments_repo.create_comment(session, body="hi", author_id=author.id, article_id=article.id)

    async def unit_of_work(tx: Session) -> int:
        return await articles_repo.delete_article(tx, article.id)

    assert await session.do_transactionally(unit_of_work) == 1
    assert await comments_repo.get_comments_by_article(session, article.id) == []
    assert await articles_repo.get_favorites_counts(session, [article.id]) == {article.id: 0}
    assert await tags_repo.get_tags_by_article_ids(session, [article.id]) == {}
    with pytest.raises(RecordNotFoundError):
        await articles_repo.get_article_by_slug(session, "doomed")


@pytest.mark.asyncio
async def test_profile_following_flag(session: Session):
    celeb = await _user(session, "celeb_user")
    fan = await _user(session, "fan_user")
    await profiles_repo.follow(session, celeb.id, fan.id)

    assert (await profiles_repo.get_profile(session, "celeb_user", fan.id)).following is True
    assert (await profiles_repo.get_profile(session, "celeb_user")).following is False
    assert (await profiles_repo.get_profile(session, "fan_user", celeb.id)).following is False
    assert await profiles_repo.get_followed_ids(session, fan.id, [celeb.id, fan.id]) == {celeb.id}

    assert await profiles_repo.unfollow(session, celeb.id, fan.id) == 1
    assert await profiles_repo.get_followed_ids(session, fan.id, [celeb.id]) == set()


@pytest.mark.asyncio
async def test_feed_lists_followed_authors(session: Session):
    celeb = await _user(session, "celeb_user")
    other = await _user(session, "other_user")
    fan = await _user(session, "fan_user")
    await _article(session, celeb, "celeb-post")
    await _article(session, other, "other-post")
    await profiles_repo.follow(session, celeb.id, fan.id)

    feed = await articles_repo.feed_articles(session, fan.id)
    assert [a.slug for a in feed] == ["celeb-post"]
    assert await articles_repo.count_feed(session, fan.id) == 1


@pytest.mark.asyncio
async def test_update_user(session: Session):
    user = await _user(session, "writer")
    await _user(session, "taken")

    updated = await users_repo.update_user(session, user.id, bio="hello", image=None)
    assert updated.bio == "hello"
    assert await users_repo.update_user(session, user.id) == updated

    with pytest.raises(DuplicateEmailError):
        await users_repo.update_user(session, user.id, email="taken@mail.com")
    with pytest.raises(ValueError):
        await users_repo.update_user(session, user.id, id=42)
    with pytest.raises(RecordNotFoundError):
        await users_repo.update_user(session, 999, bio="ghost")


@pytest.mark.asyncio
async def test_users_by_ids(session: Session):
    a = await _user(session, "user_a")
    b = await _user(session, "user_b")
    found = await users_repo.get_users_by_ids(session, [b.id, a.id, b.id])
    assert sorted(u.username for u in found) == ["user_a", "user_b"]
    assert await users_repo.get_users_by_ids(session, []) == []
