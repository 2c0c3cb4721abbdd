"""
Session authentication routes.

Users register with a username, email and password. Logging in issues an
opaque session token, sent back both as a cookie and in the body so API
clients can use it as a bearer token.
"""

import hashlib
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from .db import get_session
from .models import User
from .schemas import LoginRequest, LoginResponse, RegisterRequest, SuccessResponse, UserRead, UserResponse
from .settings import get_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])
security = HTTPBearer(auto_error=False)
SessionDep = Depends(get_session)

# In-process session store: token -> (user_id, expires_at)
_sessions: dict[str, tuple[int, datetime]] = {}

PBKDF2_ITERATIONS = 260_000


def hash_password(password: str, *, salt: str | None = None, iterations: int = PBKDF2_ITERATIONS) -> str:
    """Salted PBKDF2-SHA256, encoded as ``pbkdf2_sha256$iterations$salt$hash``."""
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), iterations).hex()
    return f"pbkdf2_sha256${iterations}${salt}${digest}"


def verify_password(password: str, encoded: str) -> bool:
    try:
        algorithm, iterations, salt, _ = encoded.split("$", 3)
    except ValueError:
        return False
    if algorithm != "pbkdf2_sha256":
        return False
    candidate = hash_password(password, salt=salt, iterations=int(iterations))
    return secrets.compare_digest(candidate, encoded)


def _generate_token() -> str:
    """Generate a secure random token."""
    return secrets.token_urlsafe(32)


def _cleanup_expired_sessions():
    """Remove expired sessions from memory."""
    now = datetime.now(timezone.utc)
    expired = [t for t, (_, exp) in _sessions.items() if exp < now]
    for t in expired:
        del _sessions[t]


def create_session(user_id: int) -> tuple[str, datetime]:
    _cleanup_expired_sessions()
    token = _generate_token()
    expires_at = datetime.now(timezone.utc) + timedelta(hours=get_settings().session_ttl_hours)
    _sessions[token] = (user_id, expires_at)
    return token, expires_at


def resolve_token(token: str | None) -> int:
    """User id behind a session token, or 0 for none / expired."""
    if not token:
        return 0
    _cleanup_expired_sessions()
    entry = _sessions.get(token)
    return entry[0] if entry else 0


def _token_from_request(request: Request, credentials: Optional[HTTPAuthorizationCredentials]) -> str | None:
    if credentials:
        return credentials.credentials
    return request.cookies.get(get_settings().session_cookie_name)


def get_viewer_id(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> int:
    """Dependency: id of the requesting user, 0 when anonymous."""
    return resolve_token(_token_from_request(request, credentials))


async def get_current_user(
    viewer_id: int = Depends(get_viewer_id),
    session: AsyncSession = SessionDep,
) -> User | None:
    if not viewer_id:
        return None
    return await session.get(User, viewer_id)


async def require_user(user: User | None = Depends(get_current_user)) -> User:
    """Dependency that requires authentication."""
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return user


async def require_admin(user: User = Depends(require_user)) -> User:
    if not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(data: RegisterRequest, session: AsyncSession = SessionDep):
    existing = await session.execute(
        select(User.id).where(or_(User.username == data.username, User.email == str(data.email)))
    )
    if existing.first():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Username or email already in use")

    user = User(
        username=data.username,
        email=str(data.email),
        password_hash=hash_password(data.password),
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    logger.info(f"[auth] registered user {user.id} ({user.username})")
    return UserResponse(user=UserRead.model_validate(user))


@router.post("/login", response_model=LoginResponse)
async def login(data: LoginRequest, response: Response, session: AsyncSession = SessionDep):
    """
    Login with username and password.
    Sets the session cookie and returns the same token for bearer use.
    """
    res = await session.execute(select(User).where(User.username == data.username))
    user = res.scalars().first()
    if user is None or not verify_password(data.password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid username or password")

    settings = get_settings()
    token, expires_at = create_session(user.id)
    response.set_cookie(
        settings.session_cookie_name,
        token,
        max_age=settings.session_ttl_hours * 3600,
        httponly=True,
        samesite="lax",
        secure=settings.environment == "production",
    )
    return LoginResponse(token=token, expires_at=expires_at.isoformat(), user=UserRead.model_validate(user))


@router.post("/logout", response_model=SuccessResponse)
async def logout(
    request: Request,
    response: Response,
    credentials: HTTPAuthorizationCredentials = Depends(security),
):
    """Invalidate current session."""
    token = _token_from_request(request, credentials)
    if token:
        _sessions.pop(token, None)
    response.delete_cookie(get_settings().session_cookie_name)
    return SuccessResponse(message="logged out")


@router.get("/me", response_model=UserResponse)
async def me(user: User = Depends(require_user)):
    return UserResponse(user=UserRead.model_validate(user))
