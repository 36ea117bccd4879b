"""IP allow-list and shared-password session for the dashboard."""

import hashlib
import hmac
from typing import Optional

from fastapi import HTTPException, Request
from fastapi.responses import PlainTextResponse
from loguru import logger

from .config import Settings


SESSION_COOKIE = "dashboard_session"
SESSION_LABEL = b"atlas-dashboard-session"

# Paths served without checking the caller's address
EXEMPT_PREFIXES = ("/assets/", "/static/")
EXEMPT_PATHS = {"/favicon.ico"}


def client_ip(request: Request, trust_forwarded_for: bool = True) -> Optional[str]:
    """First ``X-Forwarded-For`` hop when trusted, else the socket peer."""
    if trust_forwarded_for:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def is_exempt(path: str) -> bool:
    return path in EXEMPT_PATHS or path.startswith(EXEMPT_PREFIXES)


def ip_allowed(ip: Optional[str], allowed: list[str]) -> bool:
    if not allowed:
        return True
    return ip is not None and ip in allowed


async def ip_allow_list(request: Request, call_next):
    """HTTP middleware rejecting callers outside ``allowed_ips`` with 403."""
    settings: Settings = request.app.state.settings
    allowed = settings.allowed_ip_list
    if allowed and not is_exempt(request.url.path):
        ip = client_ip(request, settings.trust_forwarded_for)
        if not ip_allowed(ip, allowed):
            logger.warning("Blocked request from {} to {}", ip, request.url.path)
            return PlainTextResponse("Access restricted", status_code=403)
    return await call_next(request)


def session_token(password: str) -> str:
    return hmac.new(password.encode("utf-8"), SESSION_LABEL, hashlib.sha256).hexdigest()


def check_password(candidate: str, password: str) -> bool:
    return hmac.compare_digest(candidate.encode("utf-8"), password.encode("utf-8"))


def valid_session(token: Optional[str], password: str) -> bool:
    """No password configured means every caller has a session."""
    if not password:
        return True
    if not token:
        return False
    return hmac.compare_digest(token, session_token(password))


def require_session(request: Request) -> None:
    """Dependency guarding the data routers behind the login."""
    settings: Settings = request.app.state.settings
    if not valid_session(request.cookies.get(SESSION_COOKIE), settings.dashboard_password):
        raise HTTPException(status_code=401, detail="Authentication required")
