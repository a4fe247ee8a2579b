"""
Profile service: public profiles and the follow relation.

Follow and unfollow resolve the target user and write the relation in
one transaction so the returned profile reflects the write.
"""
from conduit.db import Session
from conduit.entities import Profile, User
from conduit.errors import UnprocessableEntityError
from conduit.repositories import profiles as profiles_repo
from conduit.repositories import users as users_repo


def profile_to_dict(profile: Profile) -> dict:
    return {
        "username": profile.username,
        "bio": profile.bio,
        "image": profile.image,
        "following": profile.following,
    }


def author_profile(author: User, following: bool) -> dict:
    """Profile dict for *author* as embedded in articles and comments."""
    return {
        "username": author.username,
        "bio": author.bio,
        "image": author.image,
        "following": following,
    }


async def get_profile(session: Session, username: str, viewer: User | None) -> dict:
    profile = await profiles_repo.get_profile(session, username, viewer.id if viewer else None)
    return {"profile": profile_to_dict(profile)}


async def follow(session: Session, username: str, viewer: User) -> dict:
    async def unit_of_work(tx: Session) -> Profile:
        target = await users_repo.get_user_by_username(tx, username)
        if target.id == viewer.id:
            raise UnprocessableEntityError("You cannot follow yourself.")
        await profiles_repo.follow(tx, target.id, viewer.id)
        return await profiles_repo.get_profile(tx, username, viewer.id)

    profile = await session.do_transactionally(unit_of_work)
    return {"profile": profile_to_dict(profile)}


async def unfollow(session: Session, username: str, viewer: User) -> dict:
    async def unit_of_work(tx: Session) -> Profile:
        target = await users_repo.get_user_by_username(tx, username)
        await profiles_repo.unfollow(tx, target.id, viewer.id)
        return await profiles_repo.get_profile(tx, username, viewer.id)

    profile = await session.do_transactionally(unit_of_work)
    return {"profile": profile_to_dict(profile)}
