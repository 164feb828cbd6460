import re
from datetime import datetime
from typing import Optional

from pydantic import Field, HttpUrl, TypeAdapter, ValidationError, field_validator

from app.core.roles import Role
from app.schemas.my_base_model import CustomBaseModel

USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]{3,50}$")
BIO_MAX_LENGTH = 500

_http_url = TypeAdapter(HttpUrl)


def check_username(value: str) -> str:
    if not USERNAME_PATTERN.match(value):
        raise ValueError("Username must be 3-50 alphanumeric characters with underscores")
    return value


class UserResponse(CustomBaseModel):
    """Public view of an identity
    Example:
    {
        "id": "550e8400-e29b-41d4-a716-446655440000",
        "username": "normie_7xKXtg2C",
        "email": null,
        "walletAddress": "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU",
        "role": "user",
        "avatarUrl": null,
        "bio": null,
        "holdingsVisible": true,
        "createdAt": "2024-01-01T12:00:00"
    }
    """

    id: str
    username: str
    email: Optional[str] = None
    wallet_address: Optional[str] = None
    role: Role = Role.USER
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    holdings_visible: bool = True
    created_at: Optional[datetime] = None


class UserEnvelope(CustomBaseModel):
    user: UserResponse


class ProfileUpdateRequest(CustomBaseModel):
    """Partial profile update. Omitted fields are left alone; empty bio/avatarUrl clear the field."""

    username: Optional[str] = None
    bio: Optional[str] = Field(default=None, description="At most 500 characters")
    avatar_url: Optional[str] = Field(default=None, description="http(s) URL")
    holdings_visible: Optional[bool] = None

    @field_validator("username")
    @classmethod
    def _username(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            raise ValueError("Username must be 3-50 alphanumeric characters with underscores")
        return check_username(value)

    @field_validator("bio")
    @classmethod
    def _bio(cls, value: Optional[str]) -> Optional[str]:
        if value is None or value == "":
            return None
        if len(value) > BIO_MAX_LENGTH:
            raise ValueError("Bio must be 500 characters or less")
        return value

    @field_validator("avatar_url")
    @classmethod
    def _avatar_url(cls, value: Optional[str]) -> Optional[str]:
        if value is None or value == "":
            return None
        try:
            _http_url.validate_python(value)
        except ValidationError:
            raise ValueError("Avatar must be a valid URL")
        return value

    @field_validator("holdings_visible")
    @classmethod
    def _holdings_visible(cls, value: Optional[bool]) -> bool:
        if value is None:
            raise ValueError("Holdings visibility must be true or false")
        return value


class OptionalUserEnvelope(CustomBaseModel):
    user: Optional[UserResponse] = None
