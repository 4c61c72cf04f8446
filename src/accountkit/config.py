"""Application configuration using pydantic-settings."""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # Exchange
    # ======================
    api_name: str = Field(default="accountkit", description="Exchange name (CSV filenames, token issuer)")
    supported_coins: str = Field(
        default="btc,eth,usdt,xht", description="Comma-separated list of subscribed coins"
    )

    # ======================
    # Database
    # ======================
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/accountkit.db",
        description="Database connection URL",
    )

    # ======================
    # API
    # ======================
    api_host: str = Field(default="0.0.0.0", description="API server host")
    api_port: int = Field(default=10010, description="API server port")
    api_prefix: str = Field(default="/v2", description="Route prefix for account endpoints")

    # ======================
    # Environment
    # ======================
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=True, description="Enable debug mode")

    # ======================
    # Sessions
    # ======================
    secret_key: str = Field(default="change-me", description="Session token signing secret")
    token_expiry_hours: int = Field(default=24, description="Session token lifetime in hours")
    reset_code_ttl_minutes: int = Field(default=5, description="Password reset code lifetime")
    hmac_token_limit: int = Field(default=5, description="Maximum active HMAC tokens per user")

    # ======================
    # Captcha
    # ======================
    captcha_secret: str = Field(default="", description="reCAPTCHA secret (empty = disabled)")
    captcha_verify_url: str = Field(
        default="https://www.google.com/recaptcha/api/siteverify",
        description="reCAPTCHA verification endpoint",
    )

    # ======================
    # Mail
    # ======================
    smtp_host: str = Field(default="", description="SMTP server host")
    smtp_port: int = Field(default=465, description="SMTP server port")
    smtp_user: str = Field(default="", description="SMTP username")
    smtp_password: str = Field(default="", description="SMTP password")
    smtp_from: str = Field(default="", description="Sender address")
    default_domain: str = Field(
        default="http://localhost:3000", description="Web domain used in email links"
    )

    # ======================
    # Helpdesk SSO
    # ======================
    freshdesk_url: Optional[str] = Field(default=None, description="Freshdesk portal URL")
    freshdesk_key: Optional[str] = Field(default=None, description="Freshdesk SSO shared secret")
    zendesk_url: Optional[str] = Field(default=None, description="Zendesk portal URL")
    zendesk_key: Optional[str] = Field(default=None, description="Zendesk JWT shared secret")

    @property
    def coins(self) -> list[str]:
        """Parse supported coins into a list of lowercase symbols."""
        if not self.supported_coins:
            return []
        return [c.strip().lower() for c in self.supported_coins.split(",") if c.strip()]

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def smtp_configured(self) -> bool:
        return bool(self.smtp_host and self.smtp_user and self.smtp_password and self.smtp_from)

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        return {
            "api_name": self.api_name,
            "environment": self.environment,
            "debug": self.debug,
            "api_host": self.api_host,
            "api_port": self.api_port,
            "api_prefix": self.api_prefix,
            "database_url": self._redact_url(self.database_url),
            "coins": self.coins,
            "captcha": "enabled" if self.captcha_secret else "disabled",
            "smtp": "configured" if self.smtp_configured else "(not set)",
            "sso": {
                "freshdesk": bool(self.freshdesk_url and self.freshdesk_key),
                "zendesk": bool(self.zendesk_url and self.zendesk_key),
            },
        }

    @staticmethod
    def _redact_url(url: str) -> str:
        """Redact sensitive parts of database URL."""
        if "://" in url and "@" in url:
            proto, rest = url.split("://", 1)
            if "@" in rest:
                creds, host = rest.rsplit("@", 1)
                if ":" in creds:
                    user, _ = creds.split(":", 1)
                    return f"{proto}://{user}:***@{host}"
        return url


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
