from fastapi import APIRouter, Depends
from conduit.database import get_session
from conduit.db import Session
from conduit.dependencies import get_current_user, get_optional_user
from conduit.entities import User
from conduit.services import profile_service

router = APIRouter(prefix="/api/profiles", tags=["profiles"])

@router.get("/{username}")
async def get_profile(
    username: str,
    viewer: User | None = Depends(get_optional_user),
    session: Session = Depends(get_session),
):
    return await profile_service.get_profile(session, username, viewer)

@router.post("/{username}/follow")
async def follow(
    username: str,
    viewer: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return await profile_service.follow(session, username, viewer)

@router.delete("/{username}/follow")
async def unfollow(
    username: str,
    viewer: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return await profile_service.unfollow(session, username, viewer)
