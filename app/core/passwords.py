"""
Password credential handling: bcrypt hashing plus the acceptance policy.

The policy is enforced by the request schemas before anything reaches hash_password().
"""

import re
from functools import lru_cache
from typing import Optional

import bcrypt

from app.core.config import settings

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_BYTES = 72  # bcrypt input limit
PASSWORD_POLICY_MESSAGE = "Password must be at least 8 characters with lowercase, uppercase, and number"

_LOWER = re.compile(r"[a-z]")
_UPPER = re.compile(r"[A-Z]")
_DIGIT = re.compile(r"\d")


def check_password_policy(password: str) -> str:
    """Return the password unchanged, or raise ValueError if it is too weak."""
    if (
        len(password) < PASSWORD_MIN_LENGTH
        or not _LOWER.search(password)
        or not _UPPER.search(password)
        or not _DIGIT.search(password)
    ):
        raise ValueError(PASSWORD_POLICY_MESSAGE)
    if len(password.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise ValueError("Password must be at most 72 bytes")
    return password


def hash_password(password: str, rounds: Optional[int] = None) -> str:
    """Hash a password for storage using bcrypt."""
    salt = bcrypt.gensalt(rounds=rounds or settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    """Check a password against a stored bcrypt hash. Malformed hashes never match."""
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    return hash_password("Dummy-password-0")


def burn_password_check(password: str) -> None:
    """Spend one bcrypt comparison so an unknown account costs as much as a known one."""
    verify_password(password, _dummy_hash())
