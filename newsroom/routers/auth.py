from typing import Optional

from fastapi import APIRouter, Cookie, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from newsroom.cookies import clear_auth_cookies, set_auth_cookies
from newsroom.database import get_db
from newsroom.dependencies import Identity, get_current_identity
from newsroom.schemas import (
    AuthResponse,
    LoginRequest,
    MessageResponse,
    ProfileResponse,
    RegisterRequest,
)
from newsroom.services import auth_service

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", status_code=201, response_model=AuthResponse)
async def register(data: RegisterRequest, response: Response, db: AsyncSession = Depends(get_db)):
    user, tokens = await auth_service.register(db, data)
    set_auth_cookies(response, tokens.access_token, tokens.refresh_token)
    return {"message": "Registration successful", "user": user}


@router.post("/login", response_model=AuthResponse)
async def login(data: LoginRequest, response: Response, db: AsyncSession = Depends(get_db)):
    user, tokens = await auth_service.login(db, data)
    set_auth_cookies(response, tokens.access_token, tokens.refresh_token)
    return {"message": "Login successful", "user": user}


@router.post("/refresh", response_model=MessageResponse)
async def refresh(
    response: Response,
    refresh_token: Optional[str] = Cookie(None),
    db: AsyncSession = Depends(get_db),
):
    tokens = await auth_service.refresh(db, refresh_token)
    set_auth_cookies(response, tokens.access_token, tokens.refresh_token)
    return {"message": "Refreshed"}


@router.post("/logout", response_model=MessageResponse)
async def logout(
    response: Response,
    refresh_token: Optional[str] = Cookie(None),
    db: AsyncSession = Depends(get_db),
):
    await auth_service.logout(db, refresh_token)
    clear_auth_cookies(response)
    return {"message": "Logged out successfully"}


@router.get("/me", response_model=ProfileResponse)
async def me(
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    return {"user": await auth_service.get_profile(db, identity.user_id)}
