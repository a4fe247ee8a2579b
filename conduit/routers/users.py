from fastapi import APIRouter, Depends
from conduit.database import get_session
from conduit.db import Session
from conduit.dependencies import Principal, get_principal
from conduit.schemas import LoginUserRequest, NewUserRequest, UpdateUserRequest
from conduit.services import user_service

router = APIRouter(prefix="/api", tags=["users"])

@router.post("/users", status_code=201)
async def register(data: NewUserRequest, session: Session = Depends(get_session)):
    return await user_service.register(session, data.user)

@router.post("/users/login")
async def login(data: LoginUserRequest, session: Session = Depends(get_session)):
    return await user_service.login(session, data.user)

@router.get("/user")
async def current_user(principal: Principal = Depends(get_principal)):
    return user_service.current_user(principal.user, principal.token)

@router.put("/user")
async def update_user(
    data: UpdateUserRequest,
    principal: Principal = Depends(get_principal),
    session: Session = Depends(get_session),
):
    return await user_service.update_user(session, principal.user, data.user)
