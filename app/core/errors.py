"""
Error kinds raised by the auth routes and dependencies.

Every kind is an HTTPException so FastAPI renders it as {"detail": ...} with the
right status. Messages are fixed per kind so callers cannot tell which internal
check failed.
"""

from typing import Optional

from fastapi import HTTPException, status


class AuthError(HTTPException):
    """Base class for auth failures with a fixed status and message."""

    status_code_default = status.HTTP_401_UNAUTHORIZED
    detail_default = "Authentication failed"

    def __init__(self, detail: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(
            status_code=status_code or self.status_code_default,
            detail=detail or self.detail_default,
        )


class NotAuthenticated(AuthError):
    detail_default = "Authentication required"


class InvalidCredentials(AuthError):
    """Wrong password and unknown email share this response."""

    detail_default = "Invalid credentials"


class InvalidOrExpiredToken(AuthError):
    """Bad signature, used or expired challenge, reset token or session token."""

    detail_default = "Invalid or expired token"


class AccountBanned(AuthError):
    status_code_default = status.HTTP_403_FORBIDDEN
    detail_default = "Account banned"


class AdminRequired(AuthError):
    status_code_default = status.HTTP_403_FORBIDDEN
    detail_default = "Admin access required"


class Conflict(AuthError):
    status_code_default = status.HTTP_400_BAD_REQUEST
    detail_default = "Already exists"


class BadRequest(AuthError):
    status_code_default = status.HTTP_400_BAD_REQUEST
    detail_default = "Bad request"


class RateLimitExceeded(HTTPException):
    """Rate limit exceeded exception."""

    def __init__(
        self,
        detail: str = "Too many authentication attempts, try again later",
        retry_after: Optional[int] = None,
    ):
        headers = {}
        if retry_after is not None:
            headers["Retry-After"] = str(retry_after)

        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=detail,
            headers=headers if headers else None,
        )
        self.retry_after = retry_after
