"""
Centralized configuration for the SmartBin backend.

All settings are loaded from environment variables with sensible defaults.
Module-specific settings should be namespaced (e.g., SUPABASE_*, JWT_*).
"""

from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "SmartBin Ledger API"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False

    # CORS settings
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    # Supabase
    supabase_url: str = ""
    supabase_anon_key: str = ""
    supabase_service_role_key: str = ""
    supabase_db_url: str = ""

    # Backends ("memory" or "supabase"; notifications "log" or "outbox")
    store_backend: str = "memory"
    credential_backend: str = "memory"
    notification_backend: str = "log"

    # Session tokens
    jwt_secret: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60

    # Bin hardware authentication
    bin_api_keys: list[str] = []

    # Accounts registered with these emails are granted the admin role
    admin_emails: list[str] = []

    # Frontend URLs (for verification links)
    frontend_url: str = "http://localhost:5173"

    # Verification
    email_link_ttl_seconds: int = 24 * 60 * 60
    phone_otp_ttl_seconds: int = 5 * 60
    otp_length: int = 6
    resend_cooldown_seconds: int = 30
    password_reset_ttl_seconds: int = 60 * 60
    min_password_length: int = 6

    # Store
    transaction_max_retries: int = 5

    # Registration
    pending_registration_ttl_hours: int = 72


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
