"""
Password reset flow.

request:  email -> (if registered) random token, 1 hour expiry -> email with link
redeem:   token + new password -> new hash, token used, all sessions revoked

The HTTP handler answers before any of the request branch runs (see
process_reset_request), so registered and unregistered emails are
indistinguishable by response body and by response time.
"""

import logging
import secrets
import time
from typing import Callable

from sqlalchemy import update
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.passwords import hash_password
from app.models.auth import PasswordResetToken
from app.services import mailer
from app.services.sessions import revoke_all_for_user
from app.services.users import get_user, get_user_by_email

logger = logging.getLogger(__name__)

RESET_TOKEN_NUM_BYTES = 32  # 64 hex characters
RESET_REQUEST_MESSAGE = "If an account exists, a reset email has been sent"


def generate_reset_token() -> str:
    return secrets.token_hex(RESET_TOKEN_NUM_BYTES)


def request_reset(db: Session, email: str) -> bool:
    """
    Issue a reset token for the account behind `email` and mail the link.

    Returns False, without writing or sending anything, when no account has
    that email. Mail failures are logged and do not undo the stored token.
    """
    user = get_user_by_email(db, email)
    if user is None:
        return False

    token = generate_reset_token()
    now = int(time.time())
    db.add(
        PasswordResetToken(
            user_id=user.id,
            token=token,
            created_at=now,
            expires_at=now + settings.PASSWORD_RESET_EXPIRY_SECONDS,
            used=False,
        )
    )
    db.commit()
    logger.info("password reset requested for %s", mailer.redact_email(user.email))

    if not mailer.send_password_reset_email(user.email, mailer.build_reset_link(token)):
        logger.warning("password reset email for identity %s was not delivered", user.id)
    return True


def process_reset_request(session_factory: Callable[[], Session], email: str) -> None:
    """Background entry point: run request_reset() in its own session, logging any failure."""
    db = session_factory()
    try:
        request_reset(db, email)
    except Exception:
        db.rollback()
        logger.exception("password reset request failed for %s", mailer.redact_email(email))
    finally:
        db.close()


def redeem_reset(db: Session, token: str, new_password: str) -> bool:
    """
    Redeem a reset token and set a new password.

    Consuming the token, writing the new hash and revoking every session of the
    identity happen in one transaction. Returns False for any unusable token
    (absent, used or expired) without saying which.
    """
    now = int(time.time())
    record = (
        db.query(PasswordResetToken)
        .filter(
            PasswordResetToken.token == token,
            PasswordResetToken.used.is_(False),
            PasswordResetToken.expires_at > now,
        )
        .first()
    )
    if record is None:
        return False

    password_hash = hash_password(new_password)
    try:
        result = db.execute(
            update(PasswordResetToken)
            .where(PasswordResetToken.id == record.id, PasswordResetToken.used.is_(False))
            .values(used=True)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            db.rollback()
            return False

        user = get_user(db, record.user_id)
        if user is None:
            db.rollback()
            return False

        user.password_hash = password_hash
        revoke_all_for_user(db, user.id)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("password reset redeemed for identity %s", record.user_id)
    return True
