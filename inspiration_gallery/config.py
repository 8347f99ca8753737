"""Configuration management and validation using Pydantic."""

import os
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator


class Settings(BaseSettings):
    """Application configuration settings loaded from environment variables or .env files."""

    @staticmethod
    def get_env_file() -> str | None:
        """Determine which .env file to load based on environment variables.

        Returns:
            None if SKIP_ENV_FILE is set (Docker/direct env vars)
            .env.{APP_ENV} if it exists, otherwise .env if it exists, otherwise None
        """
        if os.getenv("SKIP_ENV_FILE"):
            return None
        env = os.getenv("APP_ENV", "dev")
        env_file = f".env.{env}"
        if os.path.exists(env_file):
            return env_file
        return ".env" if os.path.exists(".env") else None

    model_config = SettingsConfigDict(
        env_file=get_env_file.__func__(),
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # ==================== Application Settings ====================
    APP_NAME: str = "Inspiration Gallery"
    APP_ENV: str = "dev"  # dev, test, production
    HOST: str = "0.0.0.0"
    PORT: int = 5000
    DB_URL: str  # Required, defined in .env files
    DB_CREATE_TABLES: bool = False  # Create schema at startup instead of running Alembic

    # ==================== Database Connection Pooling ====================
    DB_POOL_SIZE: int = 10  # Persistent connections in pool (PostgreSQL only)
    DB_MAX_OVERFLOW: int = 10  # Additional connections beyond pool size
    DB_POOL_TIMEOUT: int = 30  # Seconds to wait for available connection
    DB_POOL_RECYCLE: int = 3600  # Recycle connections after 1 hour

    # ==================== Database Resilience ====================
    DB_RETRY_MAX_ATTEMPTS: int = 3  # Max retry attempts for failed connectivity checks
    DB_RETRY_BASE_DELAY: float = 0.5  # Base delay for exponential backoff (seconds)
    DB_QUERY_TIMEOUT: int = 60  # Query execution timeout (seconds)
    DB_CONNECT_TIMEOUT: int = 10  # Connection establishment timeout (seconds)

    # ==================== CORS Settings ====================
    CORS_ORIGINS: str = "http://localhost:3000"  # Comma-separated allowed origins

    # ==================== Field Validation ====================
    USER_NAME_MAX_LENGTH: int = 100
    USER_EMAIL_MAX_LENGTH: int = 255
    PASSWORD_MIN_LENGTH: int = 6
    TITLE_MAX_LENGTH: int = 200

    # ==================== Session Tokens ====================
    JWT_SECRET_KEY: str  # Required, defined in .env files
    JWT_ALGORITHM: str = "HS256"
    SESSION_TTL_DAYS: int = 7
    SESSION_COOKIE_NAME: str = "token"

    # ==================== Image Hosting (Cloudinary) ====================
    CLOUDINARY_CLOUD_NAME: str | None = None
    CLOUDINARY_API_KEY: str | None = None
    CLOUDINARY_API_SECRET: str | None = None
    CLOUDINARY_FOLDER: str = "inspiration_gallery"
    CLOUDINARY_TIMEOUT: float = 30.0  # Seconds to wait for the upload response
    MAX_IMAGE_BYTES: int = 10 * 1024 * 1024  # 10MB upload limit

    # ==================== Rate Limiting ====================
    RATE_LIMIT_ENABLED: bool = True

    # ==================== Logging ====================
    LOG_LEVEL: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    LOG_FILE: str | None = None  # Path to enable file logging
    LOG_FORMAT: str = "console"  # "console" for dev, "json" for production

    @field_validator('DB_URL')
    @classmethod
    def validate_db_url(cls, v: str) -> str:
        """Validate that DB_URL is provided and uses a supported async driver."""
        if not v:
            raise ValueError("DB_URL is required but not provided in environment variables")
        if not v.startswith(("postgresql+asyncpg://", "sqlite+aiosqlite://")):
            raise ValueError(
                "DB_URL must be a postgresql+asyncpg:// or sqlite+aiosqlite:// connection string"
            )
        return v

    @field_validator('JWT_SECRET_KEY')
    @classmethod
    def validate_jwt_secret(cls, v: str) -> str:
        """Validate that JWT_SECRET_KEY is provided and sufficiently long."""
        if not v:
            raise ValueError("JWT_SECRET_KEY is required but not provided in environment variables")
        if len(v) < 32:
            raise ValueError("JWT_SECRET_KEY must be at least 32 characters long for security")
        return v

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"

    @property
    def uses_sqlite(self) -> bool:
        return self.DB_URL.startswith("sqlite")

    @property
    def cloudinary_configured(self) -> bool:
        """True when all three Cloudinary credentials are present."""
        return bool(
            self.CLOUDINARY_CLOUD_NAME
            and self.CLOUDINARY_API_KEY
            and self.CLOUDINARY_API_SECRET
        )

    def get_cors_origins(self) -> list[str]:
        """Parse CORS_ORIGINS into a list of allowed origins."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]
