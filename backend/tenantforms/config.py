"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database (defaults to SQLite for local dev, use PostgreSQL in production)
    database_url: str = "sqlite:///./tenantforms.db"

    # Authentication
    secret_key: str = "dev-secret-key-change-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 1440  # 24 hours

    # CORS
    cors_origins: str = "http://localhost:5173,http://localhost:3000"

    # Public URL of the web app, used in invitation links
    app_url: str = "http://localhost:3000"

    # File storage
    upload_dir: str = "./storage/uploads"
    max_upload_size: int = 10 * 1024 * 1024  # 10MB

    # Spreadsheet imports
    max_import_rows: int = 10000

    # Team invitations
    invitation_expiry_days: int = 7

    # Password reset links
    password_reset_expiry_minutes: int = 120

    # Email (optional, sending is skipped when not configured)
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    from_email: str = "noreply@tenantforms.local"

    log_level: str = "INFO"

    # Log every SQL statement
    sql_echo: bool = False

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    class Config:
        env_file = ".env"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
