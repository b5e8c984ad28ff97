"""Application settings and configuration.

This module defines all configuration options for the CardHub gateway.
Settings are loaded once from environment variables (and an optional `.env`
file) and shared by reference with every component for the lifetime of the
process. Optional security features degrade open: leaving a secret unset
disables the corresponding check instead of blocking traffic.
"""

import json
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Gateway settings loaded from environment variables."""

    # Application metadata
    app_name: str = Field(default="CardHub Gateway", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Relational store for synced snapshots, route log and push bindings
    database_url: str = Field(default="sqlite:///./cardhub.db", alias="DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")
    auto_create_tables: bool = Field(default=True, alias="AUTO_CREATE_TABLES")

    # Key/value store for nonces and rate windows. "memory://" keeps them
    # in-process; an empty value disables replay and rate checks.
    redis_url: str | None = Field(default=None, alias="REDIS_URL")

    # Desktop client bearer token for /ping and /sync
    api_key: str | None = Field(default=None, alias="API_KEY")

    # Query signing and captcha
    client_sign_key: str | None = Field(default=None, alias="CLIENT_SIGN_KEY")
    sign_window_seconds: int = Field(default=300, alias="SIGN_WINDOW_SECONDS")
    captcha_secret: str | None = Field(default=None, alias="CAPTCHA_SECRET")
    captcha_ttl_seconds: int = Field(default=300, alias="CAPTCHA_TTL_SECONDS")
    captcha_required_for_query: bool = Field(
        default=False,
        alias="CAPTCHA_REQUIRED_FOR_QUERY",
    )

    # Fixed-window rate limiting per client IP
    rate_limit_max: int = Field(default=20, alias="RATE_LIMIT_MAX")
    rate_limit_window_seconds: int = Field(default=60, alias="RATE_LIMIT_WINDOW_SECONDS")

    # WeChat official account (subscriber binding and template push)
    wechat_appid: str | None = Field(default=None, alias="WECHAT_APPID")
    wechat_secret: str | None = Field(default=None, alias="WECHAT_SECRET")
    wechat_template_id: str | None = Field(default=None, alias="WECHAT_TEMPLATE_ID")
    wechat_api_base_url: str = Field(
        default="https://api.weixin.qq.com",
        alias="WECHAT_API_BASE_URL",
    )
    wechat_http_timeout_seconds: float = Field(
        default=10.0,
        alias="WECHAT_HTTP_TIMEOUT_SECONDS",
    )

    # Public site metadata and static assets
    site_filing: str | None = Field(default=None, alias="SITE_FILING")
    static_dir: str | None = Field(default=None, alias="STATIC_DIR")

    # CORS configuration for the query frontend
    cors_origins: list[str] = Field(default=["*"], alias="CORS_ORIGINS")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def wechat_subscribe_enabled(self) -> bool:
        """Return True when subscribers can bind a callsign through OAuth."""
        return bool(self.wechat_appid and self.wechat_secret)

    @property
    def wechat_push_enabled(self) -> bool:
        """Return True when template notifications can be delivered."""
        return bool(self.wechat_subscribe_enabled and self.wechat_template_id)

    @property
    def captcha_enabled(self) -> bool:
        """Return True when the query frontend should present a captcha."""
        return bool(self.client_sign_key and self.captcha_secret)

    @property
    def filing(self) -> Any:
        """Return the parsed site filing metadata, or None if unset or invalid."""
        if not self.site_filing:
            return None
        try:
            return json.loads(self.site_filing)
        except ValueError:
            return None


settings = Settings()


def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return settings
