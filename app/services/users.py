"""
Identity store: lookups and mutations of the users table used by the auth routes.
"""

import logging
import secrets
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.roles import Role, determine_role
from app.models.users import User

logger = logging.getLogger(__name__)

WALLET_USERNAME_PREFIX = "normie_"
WALLET_CREATE_ATTEMPTS = 3


def normalize_email(email: str) -> str:
    return email.strip().lower()


def get_user(db: Session, user_id: str) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == normalize_email(email)).first()


def get_user_by_username(db: Session, username: str) -> Optional[User]:
    return db.query(User).filter(User.username == username).first()


def get_user_by_wallet(db: Session, wallet_address: str) -> Optional[User]:
    return db.query(User).filter(User.wallet_address == wallet_address).first()


def _wallet_username(db: Session, wallet_address: str) -> str:
    """`normie_<first 8 chars>`, with a random suffix when that name is taken."""
    username = f"{WALLET_USERNAME_PREFIX}{wallet_address[:8]}"
    while get_user_by_username(db, username) is not None:
        username = f"{WALLET_USERNAME_PREFIX}{wallet_address[:8]}_{secrets.token_hex(3)}"
    return username


def create_email_user(db: Session, email: str, password_hash: str, username: str) -> User:
    """Create an identity reachable by email+password. Always the ordinary tier."""
    user = User(
        email=normalize_email(email),
        password_hash=password_hash,
        username=username,
        role=Role.USER,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("created email identity %s", user.id)
    return user


def get_or_create_wallet_user(db: Session, wallet_address: str) -> User:
    """
    Load the identity owning a wallet, creating it on first login.

    The role is resolved at creation and re-checked on every login so the
    operator wallet gains the elevated tier without migrating its identity.
    Existing identities are only ever elevated here, never demoted.

    Concurrent first logins for one wallet race on the unique wallet column;
    the loser rolls back and continues with the winner's identity. A lost race
    on the generated username is retried with a fresh name.
    """
    role = determine_role(wallet_address)
    user = get_user_by_wallet(db, wallet_address)

    attempts = 0
    while user is None:
        attempts += 1
        candidate = User(
            wallet_address=wallet_address,
            username=_wallet_username(db, wallet_address),
            role=role,
        )
        db.add(candidate)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            user = get_user_by_wallet(db, wallet_address)
            if user is None and attempts >= WALLET_CREATE_ATTEMPTS:
                raise
            continue
        db.refresh(candidate)
        logger.info("created wallet identity %s (role=%s)", candidate.id, candidate.role.value)
        return candidate

    if user.role != Role.ADMIN and role == Role.ADMIN:
        user.role = Role.ADMIN
        db.commit()
        db.refresh(user)
        logger.info("elevated identity %s to admin", user.id)

    return user


def update_user(db: Session, user: User, updates: Dict[str, Any]) -> User:
    for attr, value in updates.items():
        setattr(user, attr, value)
    db.commit()
    db.refresh(user)
    return user


def set_banned(db: Session, user: User, banned: bool) -> User:
    user.banned_at = datetime.now(timezone.utc) if banned else None
    db.commit()
    db.refresh(user)
    logger.info("identity %s %s", user.id, "banned" if banned else "unbanned")
    return user
