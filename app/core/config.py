from typing import List

from dotenv import load_dotenv
from pydantic_settings import BaseSettings

load_dotenv()


class Settings(BaseSettings):
    PROJECT_NAME: str = "Normie Nation"
    # Application settings
    VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    HOST: str = "127.0.0.1"
    PORT: int = 8000
    DOC_PASSWORD: str | None = None
    CORS_ORIGINS: str = "http://localhost:5173"
    APP_URL: str = "http://localhost:5173"
    LOG_LEVEL: str = "INFO"

    # SSL settings
    SSL_KEY: str | None = None
    SSL_CERT: str | None = None

    # SQLAlchemy database URL
    DATABASE_URL: str
    DB_SCHEMA: str | None = None

    # Login configuration
    ENCODE_KEY: str | None = None
    ENCODE_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_SECONDS: int = 7 * 24 * 60 * 60  # 7 days
    NONCE_EXPIRY_SECONDS: int = 300  # 5 minutes
    PASSWORD_RESET_EXPIRY_SECONDS: int = 3600  # 1 hour
    BCRYPT_ROUNDS: int = 10
    ADMIN_WALLET_ADDRESS: str = ""
    SESSION_COOKIE_NAME: str = "authToken"

    # Mail settings
    SENDGRID_API_KEY: str | None = None
    SENDGRID_FROM_EMAIL: str | None = None

    # Redis settings (auth rate limiting)
    REDIS_HOST: str | None = None
    REDIS_PORT: int = 6379
    REDIS_MAX_CONNECTIONS: int = 10
    REDIS_SSL: bool = False
    REDIS_RECHECK_INTERVAL: int = 30 * 60  # 30 minutes in seconds
    AUTH_RATE_LIMIT: int = 10
    AUTH_RATE_WINDOW_SECONDS: int = 15 * 60

    # Debug settings
    DEBUG: bool = False

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    class Config:
        env_file = ".env"
        extra = "ignore"

# Instantiate the settings
settings = Settings()
