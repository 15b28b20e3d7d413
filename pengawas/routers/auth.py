from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

from pengawas.core.config import Settings
from pengawas.core.rate_limiter import RateLimiter, enforce_limit
from pengawas.repositories.json_storage import JSONRecordStore
from pengawas.routers.deps import (
    bearer_token,
    current_user_id,
    get_rate_limiter,
    get_sessions,
    get_settings_dep,
    get_store,
    get_user_service,
)
from pengawas.services.session_service import SessionService
from pengawas.services.user_service import InvalidCredentialsError, UserService, public_view

router = APIRouter(prefix="/api/auth", tags=["auth"])


class RegisterIn(BaseModel):
    username: str
    password: str
    fullName: str


class LoginIn(BaseModel):
    username: str
    password: str


@router.post("/register")
def register(
    payload: RegisterIn,
    users: UserService = Depends(get_user_service),
    sessions: SessionService = Depends(get_sessions),
):
    user = users.register(payload.username, payload.password, payload.fullName)
    token = sessions.issue(user["id"])
    return {"token": token, "user": public_view(user)}


@router.post("/login")
def login(
    payload: LoginIn,
    request: Request,
    users: UserService = Depends(get_user_service),
    sessions: SessionService = Depends(get_sessions),
    settings: Settings = Depends(get_settings_dep),
    limiter: RateLimiter = Depends(get_rate_limiter),
):
    enforce_limit(limiter, request, "login", limit=settings.login_rate_limit, window_seconds=60)
    try:
        user = users.authenticate(payload.username, payload.password)
    except InvalidCredentialsError:
        raise HTTPException(401, "Invalid credentials")
    token = sessions.issue(user["id"])
    return {"token": token, "user": public_view(user)}


@router.post("/logout")
def logout(request: Request, sessions: SessionService = Depends(get_sessions)):
    sessions.revoke(bearer_token(request))
    return {"success": True}


@router.get("/me")
def me(user_id: str = Depends(current_user_id), store: JSONRecordStore = Depends(get_store)):
    user = store.get_user(user_id)
    if not user:
        raise HTTPException(404, "User not found")
    return public_view(user)
