from datetime import datetime
from typing import Optional

from fastapi import Depends, Security
from fastapi.security import APIKeyCookie, APIKeyHeader
from sqlalchemy.orm import Session

from salesboard.constants import SESSION_COOKIE_NAME, SESSION_HEADER_NAME
from salesboard.database import get_db
from salesboard.exceptions import AccessDeniedException, NotAuthenticatedException
from salesboard.models import AuthSession, User
from salesboard.schemas import AuthenticatedUser

# Session token issued by the auth provider, sent as a header (mobile) or cookie (web)
session_header = APIKeyHeader(name=SESSION_HEADER_NAME, auto_error=False)
session_cookie = APIKeyCookie(name=SESSION_COOKIE_NAME, auto_error=False)


def resolve_session(db: Session, token: Optional[str]) -> Optional[AuthenticatedUser]:
    """Look up the user behind a session token; None if missing, expired or inactive"""
    if not token:
        return None

    session = db.query(AuthSession).filter(AuthSession.token == token).first()
    if not session:
        return None
    if session.expires_at and session.expires_at <= datetime.now():
        return None

    user = db.query(User).filter(User.id == session.user_id).first()
    if not user or not user.is_active:
        return None

    return AuthenticatedUser(id=user.id, email=user.email, role=user.role)


def get_current_user(
    header_token: Optional[str] = Security(session_header),
    cookie_token: Optional[str] = Security(session_cookie),
    db: Session = Depends(get_db)
) -> Optional[AuthenticatedUser]:
    """Current user or None; never raises"""
    return resolve_session(db, header_token or cookie_token)


def require_user(
    user: Optional[AuthenticatedUser] = Depends(get_current_user)
) -> AuthenticatedUser:
    """Current user, or a 'Not authenticated' result for the request"""
    if user is None:
        raise NotAuthenticatedException()
    return user


def ensure_role(user: AuthenticatedUser, roles: tuple, reason: str = "Access denied") -> None:
    """Raise AccessDeniedException unless the user holds one of the roles"""
    if user.role not in roles:
        raise AccessDeniedException(reason)
