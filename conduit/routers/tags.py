from fastapi import APIRouter, Depends
from conduit.database import get_session
from conduit.db import Session
from conduit.services import tag_service

router = APIRouter(prefix="/api/tags", tags=["tags"])

@router.get("")
async def list_tags(session: Session = Depends(get_session)):
    return await tag_service.list_tags(session)
