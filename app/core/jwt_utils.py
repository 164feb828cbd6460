"""
JWT Token Utilities

This module handles JSON Web Token (JWT) creation and verification for both login paths.
After a user proves a wallet signature or a password, this module creates a signed token
that is stored in the session ledger and handed to the client as a cookie and in the body.

Flow:
1. User logs in -> create_access_token() builds claims and signs them
2. User makes API request with the token -> verify_token() validates it
3. Protected endpoints use get_current_user() from dependencies.py, which additionally
   requires an active session row for the token

The token contains:
- sub: The identity id
- wallet_address / email: The login identifiers (nullable)
- role: The privilege tier at issuance
- jti: Random id, keeps tokens unique even when issued in the same second
- iat: Issued at timestamp
- exp: Expiration timestamp (configurable via ACCESS_TOKEN_EXPIRE_SECONDS)

Key handling stays behind issue_token()/verify_token(); switching to an asymmetric
algorithm only changes the key material passed in.
"""

import binascii
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from jwt.utils import base64url_decode, base64url_encode
from pydantic import BaseModel, Field, ValidationError

from app.core.config import settings
from app.core.roles import Role


if not settings.ENCODE_KEY:
    raise RuntimeError("ENCODE_KEY is not configured")

logger = logging.getLogger(__name__)

REQUIRED_CLAIMS = ["sub", "role", "iat", "exp"]


class TokenClaims(BaseModel):
    """Identity claims carried by an access token."""

    sub: str
    wallet_address: Optional[str] = None
    email: Optional[str] = None
    role: Role
    iat: int
    exp: int
    jti: str = Field(default_factory=lambda: secrets.token_hex(16))


def build_claims(
    user_id: str,
    role: Role,
    wallet_address: Optional[str] = None,
    email: Optional[str] = None,
    expires_in: Optional[int] = None,
) -> TokenClaims:
    """Build a claim set valid from now for `expires_in` seconds."""
    if not user_id:
        raise ValueError("user_id is required")

    now = datetime.now(timezone.utc)
    ttl = settings.ACCESS_TOKEN_EXPIRE_SECONDS if expires_in is None else expires_in
    return TokenClaims(
        sub=user_id,
        wallet_address=wallet_address,
        email=email,
        role=role,
        iat=int(now.timestamp()),
        exp=int((now + timedelta(seconds=ttl)).timestamp()),
    )


def issue_token(claims: TokenClaims, secret: str, algorithm: str = settings.ENCODE_ALGORITHM) -> str:
    """Sign a claim set into a compact token string."""
    if not secret:
        raise ValueError("secret is required")
    return jwt.encode(claims.model_dump(mode="json"), secret, algorithm=algorithm)


def _has_canonical_signature(token: str) -> bool:
    """Reject signature segments that only decode to the right bytes thanks to ignored padding bits."""
    segments = token.split(".")
    if len(segments) != 3:
        return False
    try:
        signature = base64url_decode(segments[2])
    except (binascii.Error, ValueError):
        return False
    return base64url_encode(signature).decode("ascii") == segments[2]


def verify_token(
    token: str, secret: str, algorithm: str = settings.ENCODE_ALGORITHM
) -> Optional[TokenClaims]:
    """
    Verify and decode a token.

    Returns the claims, or None when the token is malformed, carries a bad
    signature, misses a required claim, names an unknown role or has expired.
    No partially trusted payload is ever returned.
    """
    if not token or not secret:
        return None

    if not _has_canonical_signature(token):
        return None

    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            options={"require": REQUIRED_CLAIMS},
        )
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None

    try:
        return TokenClaims.model_validate(payload)
    except ValidationError:
        logger.warning("token with valid signature carried an invalid claim set")
        return None


def create_access_token(
    user_id: str,
    role: Role,
    wallet_address: Optional[str] = None,
    email: Optional[str] = None,
) -> str:
    """
    Create a signed access token for an authenticated identity using the deployment secret.

    Args:
        user_id: The identity id (becomes the `sub` claim)
        role: Privilege tier resolved for this login
        wallet_address: Wallet the identity logged in with, if any
        email: Email of the identity, if any

    Returns:
        A token string usable as `Authorization: Bearer <token>` or as the session cookie
    """
    claims = build_claims(user_id, role, wallet_address=wallet_address, email=email)
    return issue_token(claims, settings.ENCODE_KEY)


def decode_access_token(token: str) -> Optional[TokenClaims]:
    """Verify a token against the deployment secret."""
    return verify_token(token, settings.ENCODE_KEY)
