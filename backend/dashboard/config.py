from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    # Database - Handle Heroku/Render style postgres:// URLs
    DATABASE_URL: str = "sqlite:///./dashboard.db"

    # Redis (list caching)
    REDIS_URL: str = "redis://localhost:6379"
    CACHE_TTL_SECONDS: int = 300

    # CORS - comma-separated list of origins
    CORS_ORIGINS: str = "http://localhost:5173"
    FRONTEND_URL: str = "http://localhost:5173"

    # Used by the sync client when no base URL is passed explicitly
    API_BASE_URL: str = "http://localhost:8000"

    MAX_BODY_SIZE: int = 2 * 1024 * 1024  # 2MB

    # Credentials (Fernet key, urlsafe base64, 32 bytes)
    CREDENTIALS_ENCRYPTION_KEY: Optional[str] = None
    CREDENTIAL_TEST_TIMEOUT: float = 10.0

    # Stale-question follow-up
    FOLLOW_UP_INACTIVITY_HOURS: float = 2.0
    FOLLOW_UP_DELAY_SECONDS: float = 1.0

    # Sync client /ws reconnects
    NOTIFICATION_RECONNECT_ATTEMPTS: int = 5
    NOTIFICATION_RECONNECT_MAX_DELAY: float = 30.0

    # Error Tracking (Sentry)
    SENTRY_DSN: Optional[str] = None
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    @property
    def database_url_fixed(self) -> str:
        """Fix postgres:// to postgresql:// for SQLAlchemy"""
        url = self.DATABASE_URL
        if url.startswith("postgres://"):
            url = url.replace("postgres://", "postgresql://", 1)
        return url

    @property
    def cors_origins_list(self) -> list:
        """Parse CORS origins from comma-separated string"""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
