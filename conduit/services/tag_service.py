"""
Tag service: the list of tags in use, served cache-aside from Redis.

The cached entry is dropped by the article service whenever a write
adds or removes tag links.
"""
from conduit.cache import TAGS_KEY, cache
from conduit.config import settings
from conduit.db import Session
from conduit.repositories import tags as tags_repo


async def list_tags(session: Session) -> dict:
    cached = await cache.get(TAGS_KEY)
    if cached is not None:
        return {"tags": cached}

    names = [tag.name for tag in await tags_repo.list_tags(session)]
    await cache.set(TAGS_KEY, names, ttl=settings.CACHE_TTL_TAGS)
    return {"tags": names}
