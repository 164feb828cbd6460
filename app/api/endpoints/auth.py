import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Response, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.dependencies import AuthContext, get_auth_context, get_current_user, get_optional_user
from app.core.errors import AccountBanned, BadRequest, Conflict, InvalidCredentials, InvalidOrExpiredToken
from app.core.jwt_utils import create_access_token
from app.core.passwords import burn_password_check, hash_password, verify_password
from app.core.rate_limit import limit_auth_requests
from app.db.session import get_db, get_session_factory
from app.models.users import User
from app.schemas.my_base_model import Message
import app.schemas.auth as schemas
from app.schemas.user import OptionalUserEnvelope, ProfileUpdateRequest, UserEnvelope, UserResponse
from app.services import challenges, password_reset, sessions, users

logger = logging.getLogger(__name__)

router = APIRouter()
group_tags = ["Auth"]
# routes that take credentials share the per-client attempt budget
rate_limited = [Depends(limit_auth_requests)]


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=settings.ACCESS_TOKEN_EXPIRE_SECONDS,
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
    )


def _start_session(db: Session, user: User, response: Response) -> str:
    """Issue a token for the identity, record its session and deliver it as a cookie."""
    token = create_access_token(
        user.id,
        user.role,
        wallet_address=user.wallet_address,
        email=user.email,
    )
    sessions.create_session(db, user.id, token)
    _set_session_cookie(response, token)
    return token


# =====================================================
# Wallet Authentication
# =====================================================


@router.post(
    "/wallet/challenge",
    dependencies=rate_limited,
    tags=group_tags,
    response_model=schemas.ChallengeResponse,
)
def request_challenge(body: schemas.ChallengeRequest, db: Session = Depends(get_db)) -> schemas.ChallengeResponse:
    """Generate and store a single use challenge for a wallet address."""
    challenge = challenges.create_challenge(db, body.wallet_address)
    return schemas.ChallengeResponse(challenge=challenge)


@router.post(
    "/wallet/verify",
    dependencies=rate_limited,
    tags=group_tags,
    response_model=schemas.AuthResponse,
)
def verify_wallet(
    body: schemas.WalletVerifyRequest, response: Response, db: Session = Depends(get_db)
) -> schemas.AuthResponse:
    """Verify a signed challenge, log the wallet in (registering it on first use) and return a token."""
    wallet_address = body.wallet_address.strip()
    if not challenges.verify_and_consume(
        db, wallet_address, body.challenge, body.signature, body.public_key
    ):
        raise InvalidOrExpiredToken("Invalid signature or expired challenge")

    user = users.get_or_create_wallet_user(db, wallet_address)
    if user.is_banned:
        raise AccountBanned()

    token = _start_session(db, user, response)
    logger.info("wallet login for identity %s", user.id)
    return schemas.AuthResponse(user=UserResponse.from_record(user), token=token)


# =====================================================
# Email/Password Authentication
# =====================================================


@router.post(
    "/register",
    dependencies=rate_limited,
    tags=group_tags,
    response_model=schemas.AuthResponse,
    status_code=status.HTTP_201_CREATED,
)
def register(
    body: schemas.RegisterRequest, response: Response, db: Session = Depends(get_db)
) -> schemas.AuthResponse:
    """Create an email/password identity and log it in."""
    if users.get_user_by_email(db, body.email) is not None:
        raise Conflict("Email already registered")

    if users.get_user_by_username(db, body.username) is not None:
        raise Conflict("Username already taken")

    try:
        user = users.create_email_user(db, body.email, hash_password(body.password), body.username)
    except IntegrityError:
        db.rollback()
        raise Conflict("Email or username already registered")
    token = _start_session(db, user, response)
    return schemas.AuthResponse(user=UserResponse.from_record(user), token=token)


@router.post(
    "/login",
    dependencies=rate_limited,
    tags=group_tags,
    response_model=schemas.AuthResponse,
)
def login(body: schemas.LoginRequest, response: Response, db: Session = Depends(get_db)) -> schemas.AuthResponse:
    """Log in with email and password."""
    user = users.get_user_by_email(db, body.email)
    if user is None or not user.password_hash:
        burn_password_check(body.password)
        raise InvalidCredentials()

    if not verify_password(body.password, user.password_hash):
        logger.info("failed password login for identity %s", user.id)
        raise InvalidCredentials()

    if user.is_banned:
        raise AccountBanned()

    token = _start_session(db, user, response)
    return schemas.AuthResponse(user=UserResponse.from_record(user), token=token)


@router.post(
    "/logout",
    tags=group_tags,
    response_model=Message,
)
def logout(
    response: Response,
    context: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
) -> Message:
    """End the current session."""
    sessions.revoke_session(db, context.session.id)
    db.commit()
    response.delete_cookie(
        settings.SESSION_COOKIE_NAME,
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
    )
    return Message(message="Logged out successfully")


# =====================================================
# Password Reset
# =====================================================


@router.post(
    "/request-reset",
    dependencies=rate_limited,
    tags=group_tags,
    response_model=Message,
)
def request_reset(
    body: schemas.PasswordResetRequest,
    background_tasks: BackgroundTasks,
    session_factory=Depends(get_session_factory),
) -> Message:
    """
    Start a password reset. The answer is the same whether or not the email is
    registered; the lookup, token storage and email all happen after the response.
    """
    background_tasks.add_task(password_reset.process_reset_request, session_factory, body.email)
    return Message(message=password_reset.RESET_REQUEST_MESSAGE)


@router.post(
    "/reset-password",
    dependencies=rate_limited,
    tags=group_tags,
    response_model=Message,
)
def reset_password(body: schemas.PasswordResetRedeem, db: Session = Depends(get_db)) -> Message:
    """Redeem a reset token with a new password. Signs the identity out everywhere."""
    if not password_reset.redeem_reset(db, body.token, body.password):
        raise InvalidOrExpiredToken("Invalid or expired reset token", status_code=status.HTTP_400_BAD_REQUEST)
    return Message(message="Password reset successfully")


# =====================================================
# Current User
# =====================================================


@router.get(
    "/me",
    tags=group_tags,
    response_model=UserEnvelope,
)
def get_me(user: User = Depends(get_current_user)) -> UserEnvelope:
    return UserEnvelope(user=UserResponse.from_record(user))


@router.patch(
    "/profile",
    tags=group_tags,
    response_model=UserEnvelope,
)
def update_profile(
    body: ProfileUpdateRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> UserEnvelope:
    """Update username, bio, avatar and holdings visibility. Only fields sent are touched."""
    updates = body.model_dump(include=body.model_fields_set)

    if "username" in updates:
        if updates["username"] == user.username:
            updates.pop("username")
        else:
            existing = users.get_user_by_username(db, updates["username"])
            if existing is not None and existing.id != user.id:
                raise Conflict("Username already taken")

    if not updates:
        raise BadRequest("No valid fields to update")

    try:
        user = users.update_user(db, user, updates)
    except IntegrityError:
        db.rollback()
        raise Conflict("Username already taken")
    return UserEnvelope(user=UserResponse.from_record(user))


@router.post(
    "/change-password",
    dependencies=rate_limited,
    tags=group_tags,
    response_model=schemas.TokenMessage,
)
def change_password(
    body: schemas.ChangePasswordRequest,
    response: Response,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> schemas.TokenMessage:
    """
    Rotate the password. Every existing session of the identity, the current one
    included, is revoked; the caller continues on a freshly issued token.
    """
    if not user.password_hash:
        raise BadRequest("Password change not available for wallet-only accounts")

    if not verify_password(body.current_password, user.password_hash):
        raise InvalidCredentials("Current password is incorrect")

    user.password_hash = hash_password(body.new_password)
    sessions.revoke_all_for_user(db, user.id)
    db.commit()
    db.refresh(user)

    token = _start_session(db, user, response)
    logger.info("password changed for identity %s", user.id)
    return schemas.TokenMessage(message="Password changed successfully", token=token)


@router.get(
    "/status",
    tags=group_tags,
    response_model=OptionalUserEnvelope,
)
def get_status(user: Optional[User] = Depends(get_optional_user)) -> OptionalUserEnvelope:
    """Current identity if the caller is logged in, otherwise `user: null`. Never rejects."""
    if user is None:
        return OptionalUserEnvelope(user=None)
    return OptionalUserEnvelope(user=UserResponse.from_record(user))
