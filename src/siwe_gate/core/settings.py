"""Application settings and configuration.

This module defines all configuration options for the SIWE Gate service.
Settings are loaded from environment variables with sensible defaults.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="SIWE Gate", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Session credential signing
    secret_key: str = Field(alias="SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )

    # Database configuration (used by the sql nonce backend)
    database_url: str = Field(default="sqlite:///./siwe_gate.db", alias="DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Nonce lifecycle
    nonce_backend: Literal["memory", "sql"] = Field(default="memory", alias="NONCE_BACKEND")
    nonce_ttl_seconds: int = Field(default=600, gt=0, alias="NONCE_TTL_SECONDS")
    nonce_sweep_enabled: bool = Field(default=True, alias="NONCE_SWEEP_ENABLED")
    nonce_sweep_interval_seconds: float = Field(
        default=60.0,
        gt=0,
        alias="NONCE_SWEEP_INTERVAL_SECONDS",
    )

    # Sign-In with Ethereum message fields
    siwe_domain: str = Field(default="localhost", alias="SIWE_DOMAIN")
    siwe_uri: str = Field(default="http://localhost/", alias="SIWE_URI")
    siwe_statement: str = Field(
        default="Sign in to prove control of this address.",
        alias="SIWE_STATEMENT",
    )
    siwe_version: str = Field(default="1", alias="SIWE_VERSION")
    # Sepolia testnet
    siwe_chain_id: int = Field(default=11155111, alias="SIWE_CHAIN_ID")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def access_token_expire_seconds(self) -> int:
        """Return the session credential lifetime in seconds."""
        return self.access_token_expire_minutes * 60


settings = Settings()  # type: ignore[call-arg]
