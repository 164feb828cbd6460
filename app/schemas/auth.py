from pydantic import EmailStr, Field, field_validator

from app.core.passwords import check_password_policy
from app.core.wallet_auth import is_wallet_address
from app.schemas.my_base_model import CustomBaseModel
from app.schemas.user import UserResponse, check_username


class ChallengeRequest(CustomBaseModel):
    """Request model for challenge generation - input validation"""

    wallet_address: str = Field(..., description="Wallet address (base58 public key)")

    @field_validator("wallet_address")
    @classmethod
    def _wallet_address(cls, value: str) -> str:
        value = value.strip()
        if not is_wallet_address(value):
            raise ValueError("Invalid wallet address")
        return value


class ChallengeResponse(CustomBaseModel):
    """Response model for challenge generation - output"""

    challenge: str = ""


class WalletVerifyRequest(CustomBaseModel):
    """Request model for wallet verification - input validation"""

    wallet_address: str = Field(..., min_length=1, description="Wallet address")
    challenge: str = Field(..., min_length=1, description="Challenge text that was signed")
    signature: str = Field(..., min_length=1, description="Signature of the challenge (base64 or hex)")
    public_key: str = Field(..., min_length=1, description="Public key (base64 or hex)")


class RegisterRequest(CustomBaseModel):
    email: EmailStr
    password: str
    username: str

    @field_validator("password")
    @classmethod
    def _password(cls, value: str) -> str:
        return check_password_policy(value)

    @field_validator("username")
    @classmethod
    def _username(cls, value: str) -> str:
        return check_username(value)


class LoginRequest(CustomBaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class PasswordResetRequest(CustomBaseModel):
    email: EmailStr


class PasswordResetRedeem(CustomBaseModel):
    token: str = Field(..., min_length=1)
    password: str

    @field_validator("password")
    @classmethod
    def _password(cls, value: str) -> str:
        return check_password_policy(value)


class ChangePasswordRequest(CustomBaseModel):
    current_password: str = Field(..., min_length=1, description="Current password is required")
    new_password: str

    @field_validator("new_password")
    @classmethod
    def _new_password(cls, value: str) -> str:
        return check_password_policy(value)


class AuthResponse(CustomBaseModel):
    """Response model for a successful login - output"""

    user: UserResponse
    token: str


class TokenMessage(CustomBaseModel):
    message: str = ""
    token: str
