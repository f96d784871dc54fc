"""
API Dependencies Module

This module provides FastAPI dependency functions for authentication, the CSRF
gate and the share notification service.
Authentication supports both bearer tokens (for API clients) and HTTP-only
cookies (for browser clients).
"""
import logging
from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError
from pydantic import ValidationError
from sqlmodel import Session, select

from edfolio.core.config import settings
from edfolio.db.session import get_db
from edfolio.models.note import Note
from edfolio.models.user import User
from edfolio.schemas.auth import TokenData
from edfolio.services.authorization import resolve_note_access
from edfolio.services.notifications import Notifier, default_notifier
from fastapi import Request

logger = logging.getLogger(__name__)

CSRF_HEADER = "X-CSRF-Token"
SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})

# auto_error=False allows us to check cookies as a fallback
reusable_oauth2 = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_V1_STR}/auth/login",
    auto_error=False  # Don't raise error immediately if Authorization header is missing
)


def _token_from_request(request: Request, token: Optional[str]) -> Optional[str]:
    # Authorization header first, then the "Bearer <token>" cookie
    if token:
        return token
    cookie = request.cookies.get("access_token")
    if cookie and cookie.startswith("Bearer "):
        return cookie[len("Bearer "):]
    return cookie or None


def _user_from_token(db: Session, token: str) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(
            token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM]
        )
        token_data = TokenData(email=payload.get("sub"))  # Extract email from token
    except (JWTError, ValidationError):
        raise credentials_exception

    if not token_data.email:
        raise credentials_exception

    user = db.exec(select(User).where(User.email == token_data.email)).first()
    if not user:
        # Account removed after the token was issued
        raise credentials_exception
    return user


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
    token: Optional[str] = Depends(reusable_oauth2)
) -> User:
    """
    Dependency that retrieves and validates the current authenticated user.

    Supports dual authentication methods:
    1. Bearer token in Authorization header (for API clients)
    2. HTTP-only cookie (for browser clients)

    Raises:
        HTTPException 401: If no token is provided, the token is invalid or
            expired, or the user it names no longer exists
    """
    token = _token_from_request(request, token)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return _user_from_token(db, token)


def get_optional_user(
    request: Request,
    db: Session = Depends(get_db),
    token: Optional[str] = Depends(reusable_oauth2)
) -> Optional[User]:
    """
    Like get_current_user, but anonymous callers get None.

    A stale or invalid session is treated as anonymous, so routes that also
    accept share access tokens keep working for signed-out invitees.
    """
    token = _token_from_request(request, token)
    if not token:
        return None
    try:
        return _user_from_token(db, token)
    except HTTPException:
        logger.debug("Ignoring invalid session on %s", request.url.path)
        return None


def get_note_access(db: Session, note_id: int, user: Optional[User], access_token: Optional[str] = None):
    """
    Load a note and the caller's access to it.

    Missing notes and notes the caller cannot read both answer 404, so the
    response never reveals whether a note exists.

    Returns:
        tuple[Note, NoteAccess]
    """
    note = db.get(Note, note_id)
    if note is None:
        raise HTTPException(status_code=404, detail="Note not found")
    access = resolve_note_access(db, note, user, access_token)
    if not access.can_read:
        raise HTTPException(status_code=404, detail="Note not found")
    return note, access


def get_current_active_user(
    current_user: User = Depends(get_current_user),
) -> User:
    """
    Dependency that requires any authenticated user.

    Currently it just ensures the user is authenticated.
    """
    return current_user


def require_csrf_token(request: Request) -> None:
    """
    Router-level CSRF gate for session-authenticated mutations.

    Token issuance and session binding happen outside this API; the gate only
    rejects state-changing requests whose X-CSRF-Token header is missing or
    malformed, before the handler runs.
    """
    if request.method in SAFE_METHODS:
        return

    csrf_token = (request.headers.get(CSRF_HEADER) or "").strip()
    if len(csrf_token) < settings.CSRF_MIN_TOKEN_LENGTH:
        logger.warning("CSRF validation failed for %s %s", request.method, request.url.path)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "error": "CSRF validation failed",
                "code": "CSRF_TOKEN_INVALID",
                "message": "Invalid or missing CSRF token. Please refresh the page and try again.",
            },
        )


def get_notifier() -> Notifier:
    return default_notifier


def get_base_url(request: Request) -> str:
    """Base URL for links sent to invitees: APP_URL, else the request's own."""
    if settings.APP_URL:
        return settings.APP_URL.rstrip("/")
    return str(request.base_url).rstrip("/")
