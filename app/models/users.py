import uuid

from sqlalchemy import Boolean, Column, DateTime, Enum, String, Text
from sqlalchemy.sql import func

from app.core.roles import Role
from app.db.base import Base, table_args


class User(Base):
    """Model for users table (account identity)
    Example:
    {
        "id": "550e8400-e29b-41d4-a716-446655440000",
        "wallet_address": "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU",
        "email": null,
        "password_hash": null,
        "username": "normie_7xKXtg2C",
        "role": "user",
        "banned_at": null,
        "bio": null,
        "avatar_url": null,
        "holdings_visible": true,
        "created_at": "2024-01-01T12:00:00",
        "updated_at": "2024-01-01T12:00:00"
    }
    """

    __tablename__ = "users"
    __table_args__ = table_args()

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    wallet_address = Column(String(64), nullable=True, unique=True)
    email = Column(String(255), nullable=True, unique=True)
    password_hash = Column(Text, nullable=True)
    username = Column(String(50), nullable=False, unique=True)
    role = Column(
        Enum(Role, name="user_role", native_enum=False, values_callable=lambda roles: [r.value for r in roles]),
        nullable=False,
        default=Role.USER,
    )
    banned_at = Column(DateTime(timezone=True), nullable=True)
    bio = Column(Text, nullable=True)
    avatar_url = Column(Text, nullable=True)
    holdings_visible = Column(Boolean, nullable=False, default=True)
    created_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    @property
    def is_banned(self) -> bool:
        return self.banned_at is not None
