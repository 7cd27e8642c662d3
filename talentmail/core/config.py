"""Application configuration (settings and environment).

Single source of truth for all configuration. Uses pydantic-settings
with .env support. Required fields (SECRET_KEY, ENCRYPTION_SALT) are
validated at load time; OAuth client credentials and the ESP key are
optional here and checked where they are used.
"""

from functools import lru_cache

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment and .env.

    All settings are optional with defaults except secret_key and
    encryption_salt (validated in validate_required).
    """

    # App
    app_name: str = "talentmail"
    app_version: str = "1.0.0"
    debug: bool = False
    app_base_url: str = "http://localhost:8000"

    # Database (SQLAlchemy async URL, e.g. postgresql+asyncpg://...). Empty = not configured.
    database_url: str = ""
    database_echo: bool = False
    db_pool_size: int | None = None
    db_max_overflow: int | None = None

    # Security
    secret_key: SecretStr = SecretStr("")
    encryption_salt: SecretStr = SecretStr("")
    # Separate secret for stored email credentials so signing-key rotation does not break them.
    credential_encryption_secret: SecretStr | None = None

    # CORS
    allowed_origins: str = "http://localhost:3000"

    # Request
    request_id_header: str = "X-Request-ID"
    company_header_name: str = "X-Company-ID"

    # OAuth clients (absence surfaces as ConfigurationError at refresh/connect time)
    google_client_id: str | None = None
    google_client_secret: SecretStr | None = None
    microsoft_client_id: str | None = None
    microsoft_client_secret: SecretStr | None = None
    microsoft_tenant_id: str = "common"
    # Frontend page the OAuth callback redirects to (?connected=<provider> or ?error=<code>).
    oauth_completion_redirect_url: str = "http://localhost:3000/settings/email"

    # Hosted sending API (Resend)
    resend_api_key: SecretStr | None = None

    # Delivery
    email_http_timeout_seconds: float = 30.0
    smtp_timeout_seconds: float = 30.0
    token_refresh_buffer_seconds: int = 60

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def validate_required(self) -> "Settings":
        """Validate secrets needed for state signing and credential encryption."""
        if not self.secret_key.get_secret_value():
            raise ValueError(
                "SECRET_KEY is required. Generate with: openssl rand -hex 32."
            )
        if not self.encryption_salt.get_secret_value():
            raise ValueError(
                "ENCRYPTION_SALT is required. Generate with: openssl rand -hex 16."
            )
        if self.token_refresh_buffer_seconds < 0:
            raise ValueError("TOKEN_REFRESH_BUFFER_SECONDS must be >= 0")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings (single instance per process).

    Validation runs on first call, not at import time. In tests, call
    get_settings.cache_clear() before overriding env vars so the next
    get_settings() uses the new values.
    """
    return Settings()
