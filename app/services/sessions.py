"""
Session ledger.

A token is honored only while a session row with the exact token value exists and
has not expired. Expired rows are treated as missing; nothing sweeps them eagerly.

The revoke helpers do not commit so callers can fold them into a larger transaction.
"""

import logging
import time
from typing import Optional

from sqlalchemy import delete
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.auth import AuthSession

logger = logging.getLogger(__name__)


def create_session(db: Session, user_id: str, token: str, ttl: Optional[int] = None) -> AuthSession:
    """Record an issued token for a user. Commits."""
    now = int(time.time())
    ttl = settings.ACCESS_TOKEN_EXPIRE_SECONDS if ttl is None else ttl
    session = AuthSession(user_id=user_id, token=token, created_at=now, expires_at=now + ttl)
    db.add(session)
    db.commit()
    db.refresh(session)
    return session


def find_session_by_token(db: Session, token: str) -> Optional[AuthSession]:
    """Return the live session for a token, or None if it is missing or expired."""
    if not token:
        return None
    now = int(time.time())
    return (
        db.query(AuthSession)
        .filter(AuthSession.token == token, AuthSession.expires_at > now)
        .first()
    )


def revoke_session(db: Session, session_id: str) -> None:
    db.execute(
        delete(AuthSession)
        .where(AuthSession.id == session_id)
        .execution_options(synchronize_session=False)
    )


def revoke_all_for_user(db: Session, user_id: str) -> int:
    """Delete every session of a user. Returns the number of revoked sessions."""
    result = db.execute(
        delete(AuthSession)
        .where(AuthSession.user_id == user_id)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount:
        logger.info("revoked %d session(s) for identity %s", result.rowcount, user_id)
    return result.rowcount
