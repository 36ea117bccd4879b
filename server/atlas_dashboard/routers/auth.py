"""Shared-password login for the dashboard."""

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from loguru import logger
from pydantic import BaseModel

from ..config import Settings
from ..deps import get_app_settings
from ..security import SESSION_COOKIE, check_password, session_token, valid_session

router = APIRouter(prefix="/auth", tags=["auth"])


class LoginRequest(BaseModel):
    """Login form."""
    password: str


@router.post("/login")
async def login(
    body: LoginRequest,
    response: Response,
    settings: Settings = Depends(get_app_settings),
):
    """Exchange the dashboard password for a session cookie."""
    if not settings.dashboard_password:
        return {"authenticated": True}

    if not check_password(body.password, settings.dashboard_password):
        logger.warning("Rejected dashboard login")
        raise HTTPException(status_code=401, detail="Invalid password")

    response.set_cookie(
        SESSION_COOKIE,
        session_token(settings.dashboard_password),
        max_age=settings.session_max_age,
        httponly=True,
        samesite="lax",
    )
    return {"authenticated": True}


@router.post("/logout")
async def logout(response: Response):
    response.delete_cookie(SESSION_COOKIE)
    return {"authenticated": False}


@router.get("/session")
async def session(request: Request, settings: Settings = Depends(get_app_settings)):
    return {
        "authenticated": valid_session(request.cookies.get(SESSION_COOKIE), settings.dashboard_password),
        "passwordRequired": bool(settings.dashboard_password),
    }
