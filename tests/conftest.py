import base64
import os
from typing import Generator, Optional

import base58
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey


def public_key_bytes(private_key: Ed25519PrivateKey) -> bytes:
    return private_key.public_key().public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )


class Wallet:
    """Client side wallet used to sign challenges in tests"""

    def __init__(self, private_key: Optional[Ed25519PrivateKey] = None):
        self.private_key = private_key or Ed25519PrivateKey.generate()
        self.public_key = public_key_bytes(self.private_key)
        self.address = base58.b58encode(self.public_key).decode()

    @property
    def public_key_b64(self) -> str:
        return base64.b64encode(self.public_key).decode()

    def sign(self, message: str) -> str:
        return base64.b64encode(self.private_key.sign(message.encode("utf-8"))).decode()


ADMIN_WALLET = Wallet(Ed25519PrivateKey.from_private_bytes(bytes(range(32))))

# settings are read at import time, so the environment must be ready first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENCODE_KEY"] = "test-secret-key-for-token-signing-0123456789"
os.environ["ADMIN_WALLET_ADDRESS"] = ADMIN_WALLET.address
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["AUTH_RATE_LIMIT"] = "1000"
os.environ["REDIS_HOST"] = ""
os.environ["ENVIRONMENT"] = "test"
os.environ.pop("SENDGRID_API_KEY", None)
os.environ.pop("SENDGRID_FROM_EMAIL", None)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from main import app
from app.core.rate_limit import auth_rate_limiter
from app.db.base import Base
from app.db.session import get_db, get_session_factory
from app.services import mailer


# Create in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db() -> Generator:
    """Override database dependency for testing"""
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def database():
    """Fresh schema and rate limit counters for every test"""
    Base.metadata.create_all(bind=engine)
    auth_rate_limiter.reset()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session() -> Generator[Session, None, None]:
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client() -> TestClient:
    """Create a test client for the FastAPI application"""
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: TestingSessionLocal
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def wallet() -> Wallet:
    return Wallet()


@pytest.fixture
def admin_wallet() -> Wallet:
    return ADMIN_WALLET


@pytest.fixture
def sent_emails(monkeypatch):
    """Capture password reset emails instead of sending them"""
    sent = []

    def fake_send(to_email: str, reset_link: str) -> bool:
        sent.append({"to": to_email, "link": reset_link})
        return True

    monkeypatch.setattr(mailer, "send_password_reset_email", fake_send)
    return sent


@pytest.fixture
def make_wallet():
    return Wallet


@pytest.fixture
def wallet_login(client: TestClient):
    """Run the challenge/verify round trip for a wallet and return the verify response"""

    def login(wallet: Wallet):
        challenge = client.post("/auth/wallet/challenge", json={"walletAddress": wallet.address}).json()["challenge"]
        return client.post(
            "/auth/wallet/verify",
            json={
                "walletAddress": wallet.address,
                "challenge": challenge,
                "signature": wallet.sign(challenge),
                "publicKey": wallet.public_key_b64,
            },
        )

    return login


@pytest.fixture
def register_user(client: TestClient):
    """Register an email identity through the API"""

    def register(email: str = "a@x.com", password: str = "Abcdef12", username: str = "alice"):
        return client.post("/auth/register", json={"email": email, "password": password, "username": username})

    return register


@pytest.fixture
def session_factory():
    return TestingSessionLocal
