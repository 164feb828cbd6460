"""
FastAPI Authentication Dependencies
This module provides FastAPI dependency functions that can be injected into route handlers
to authenticate the caller from a bearer token or the session cookie.
Usage in endpoints:
    @router.get("/protected")
    def protected_route(user: User = Depends(get_current_user)):
        return {"user": user.id}
Flow (any failed step raises, nothing is attached to the request):
1. _extract_token() reads `Authorization: Bearer <token>`, falling back to the cookie
2. decode_access_token() checks signature and expiry (jwt_utils.py)
3. find_session_by_token() requires a live, unrevoked session for that exact token
4. the identity is loaded and must match the token subject and role
5. banned identities are rejected with their own error
6. the identity is attached to request.state.user
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import AccountBanned, AdminRequired, InvalidOrExpiredToken, NotAuthenticated
from app.core.jwt_utils import decode_access_token
from app.core.roles import Role
from app.db.session import get_db
from app.models.auth import AuthSession
from app.models.users import User
from app.services.sessions import find_session_by_token
from app.services.users import get_user

logger = logging.getLogger(__name__)


@dataclass
class AuthContext:
    """Authenticated caller: identity, the session backing it and the raw token."""

    user: User
    session: AuthSession
    token: str


def _extract_token(request: Request, authorization: Optional[str]) -> Optional[str]:
    """
    Extract the token from the Authorization header, then from the session cookie.
    Returns None when neither carries one.
    """
    if authorization:
        authorization = authorization.strip()
        if authorization.lower().startswith("bearer "):
            token = authorization[7:].strip()
            if token:
                return token

    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    return token or None


def authenticate_token(db: Session, token: str) -> AuthContext:
    """Run a present token through the validation chain. Raises on the first failure."""
    claims = decode_access_token(token)
    if claims is None:
        raise InvalidOrExpiredToken()

    session = find_session_by_token(db, token)
    if session is None or session.user_id != claims.sub:
        raise InvalidOrExpiredToken()

    user = get_user(db, claims.sub)
    if user is None:
        raise InvalidOrExpiredToken()

    if user.role != claims.role:
        raise InvalidOrExpiredToken()

    if user.is_banned:
        logger.info("rejected request from banned identity %s", user.id)
        raise AccountBanned()

    return AuthContext(user=user, session=session, token=token)


def get_auth_context(
    request: Request,
    authorization: Optional[str] = Header(None, alias="Authorization"),
    db: Session = Depends(get_db),
) -> AuthContext:
    """Require an authenticated caller."""
    token = _extract_token(request, authorization)
    if token is None:
        raise NotAuthenticated()

    context = authenticate_token(db, token)
    request.state.user = context.user
    return context


def get_current_user(context: AuthContext = Depends(get_auth_context)) -> User:
    """
    returning the authenticated identity.
    """
    return context.user


def get_optional_user(
    request: Request,
    authorization: Optional[str] = Header(None, alias="Authorization"),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """
    Personalize without requiring login: no token, or a token that fails any
    check, yields an anonymous caller (None) instead of an error.
    """
    token = _extract_token(request, authorization)
    if token is None:
        return None

    try:
        context = authenticate_token(db, token)
    except (InvalidOrExpiredToken, AccountBanned):
        return None

    request.state.user = context.user
    return context.user


def require_admin(user: User = Depends(get_current_user)) -> User:
    """Require an authenticated caller on the elevated tier."""
    if user.role != Role.ADMIN:
        raise AdminRequired()
    return user
