import uuid

from sqlalchemy import BigInteger, Boolean, Column, ForeignKey, Index, Integer, String

from app.db.base import Base, fk, table_args


class AuthChallenge(Base):
    """Model for storing wallet authentication challenges (single use)."""

    __tablename__ = "auth_challenges"
    __table_args__ = table_args(Index("ix_auth_challenges_wallet_challenge", "wallet_address", "challenge"))

    id = Column(Integer, primary_key=True, autoincrement=True)
    wallet_address = Column(String(64), nullable=False)
    challenge = Column(String(255), nullable=False)
    created_at = Column(BigInteger, nullable=False)
    expires_at = Column(BigInteger, nullable=False)
    used = Column(Boolean, nullable=False, default=False)


class AuthSession(Base):
    """Server side record of an issued token. Deleting it revokes the token."""

    __tablename__ = "sessions"
    __table_args__ = table_args()

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey(fk("users.id"), ondelete="CASCADE"), nullable=False, index=True)
    token = Column(String(2048), nullable=False, unique=True)
    created_at = Column(BigInteger, nullable=False)
    expires_at = Column(BigInteger, nullable=False)


class PasswordResetToken(Base):
    """Single use, time boxed password reset token."""

    __tablename__ = "password_reset_tokens"
    __table_args__ = table_args()

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), ForeignKey(fk("users.id"), ondelete="CASCADE"), nullable=False, index=True)
    token = Column(String(128), nullable=False, unique=True)
    created_at = Column(BigInteger, nullable=False)
    expires_at = Column(BigInteger, nullable=False)
    used = Column(Boolean, nullable=False, default=False)
