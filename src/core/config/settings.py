# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Application configuration settings using Pydantic Settings.

This module provides centralized configuration management for the
AgriConnect authentication service. Settings are loaded from environment
variables with sensible defaults.

The Settings class is the main entry point and aggregates all subsettings.
A singleton instance is provided via get_settings() for dependency injection.

Example:
    >>> from src.core.config.settings import get_settings
    >>> settings = get_settings()
    >>> print(settings.environment)
    'development'
"""

from functools import lru_cache
from typing import Literal, Self

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_JWT_SECRET = "change-this-in-production"


class CentralDatabaseSettings(BaseSettings):
    """Credential store database configuration.

    The central database stores:
    - Account records (status, verification, role)
    - One-time codes
    - E-mail verification tokens

    Attributes:
        user: PostgreSQL username.
        password: PostgreSQL password.
        host: Database host address.
        port: Database port number.
        database: Database name.
        pool_size: Connection pool size.
        max_overflow: Maximum overflow connections.
        auto_create_schema: Create missing tables at startup.
    """

    model_config = SettingsConfigDict(
        env_prefix="CENTRAL_DB_",
        extra="ignore",
    )

    user: str = "agriconnect"
    password: SecretStr = SecretStr("agriconnect_password")
    host: str = "localhost"
    port: int = 5432
    database: str = "agriconnect_auth"
    pool_size: int = 10
    max_overflow: int = 20
    auto_create_schema: bool = False

    @property
    def url(self) -> str:
        """Build the async database URL from components."""
        pwd = self.password.get_secret_value()
        return f"postgresql+asyncpg://{self.user}:{pwd}@{self.host}:{self.port}/{self.database}"


class RedisSettings(BaseSettings):
    """Redis configuration for the blocklist and reference tokens.

    Attributes:
        host: Redis server host.
        port: Redis server port.
        password: Redis password.
        database: Redis database number.
        max_connections: Maximum connection pool size.
        socket_timeout: Socket read/write timeout in seconds.
        operation_timeout: Upper bound for a single cache call in seconds.
        failure_threshold: Consecutive failures before the circuit opens.
        reset_timeout: Seconds an open circuit waits before a trial call.
    """

    model_config = SettingsConfigDict(
        env_prefix="REDIS_",
        extra="ignore",
    )

    host: str = "localhost"
    port: int = 6379
    password: SecretStr | None = None
    database: int = 0
    max_connections: int = 50
    socket_timeout: float = 2.0
    operation_timeout: float = 0.5
    failure_threshold: int = 5
    reset_timeout: float = 30.0

    @property
    def url(self) -> str:
        """Build the Redis connection URL."""
        if self.password is None:
            return f"redis://{self.host}:{self.port}/{self.database}"
        pwd = self.password.get_secret_value()
        return f"redis://:{pwd}@{self.host}:{self.port}/{self.database}"


class JWTSettings(BaseSettings):
    """Session token configuration.

    Attributes:
        secret_key: Symmetric key for signing tokens.
        algorithm: JWT signing algorithm.
        expire_minutes: Session token lifetime (default 5 days).
    """

    model_config = SettingsConfigDict(
        env_prefix="JWT_",
        extra="ignore",
    )

    secret_key: SecretStr = SecretStr(DEFAULT_JWT_SECRET)
    algorithm: str = "HS256"
    expire_minutes: int = 5 * 24 * 60


class ReferenceTokenSettings(BaseSettings):
    """Reference token configuration.

    Attributes:
        ttl_seconds: Upper bound for a reference mapping's lifetime.
        key_prefix: Cache key prefix for reference mappings.
        token_bytes: Entropy of generated reference tokens.
    """

    model_config = SettingsConfigDict(
        env_prefix="REFERENCE_TOKEN_",
        extra="ignore",
    )

    ttl_seconds: int = 5 * 24 * 60 * 60
    key_prefix: str = "auth:ref:"
    token_bytes: int = 32


class OTPSettings(BaseSettings):
    """One-time code configuration.

    Attributes:
        expire_minutes: Absolute validity window from creation.
        length: Number of digits in a generated code.
    """

    model_config = SettingsConfigDict(
        env_prefix="OTP_",
        extra="ignore",
    )

    expire_minutes: int = 5
    length: int = 6


class VerificationSettings(BaseSettings):
    """E-mail verification link configuration.

    Attributes:
        token_expire_minutes: Lifetime of a verification link token.
        base_url: Public base URL used to build verification links.
    """

    model_config = SettingsConfigDict(
        env_prefix="VERIFICATION_",
        extra="ignore",
    )

    token_expire_minutes: int = 60
    base_url: str = "http://localhost:8080"


class SMTPSettings(BaseSettings):
    """Outbound e-mail configuration.

    The e-mail channel is skipped when host, username, password or
    sender address is missing.
    """

    model_config = SettingsConfigDict(
        env_prefix="SMTP_",
        extra="ignore",
    )

    host: str | None = None
    port: int = 587
    username: str | None = None
    password: SecretStr | None = None
    use_tls: bool = True
    from_email: str = "no-reply@smartagriadvisor.com"
    from_name: str = "AgriConnect"

    @property
    def is_configured(self) -> bool:
        """Check whether all required SMTP fields are present."""
        return bool(self.host and self.username and self.password and self.from_email)


class TwilioSettings(BaseSettings):
    """Outbound SMS configuration.

    Attributes:
        account_sid: Twilio account SID.
        auth_token: Twilio auth token.
        from_number: Sender phone number.
    """

    model_config = SettingsConfigDict(
        env_prefix="TWILIO_",
        extra="ignore",
    )

    account_sid: str | None = None
    auth_token: SecretStr | None = None
    from_number: str | None = None

    @property
    def is_configured(self) -> bool:
        """Check whether all required Twilio fields are present."""
        return bool(self.account_sid and self.auth_token and self.from_number)


class RateLimitSettings(BaseSettings):
    """Rate limiting configuration.

    Attributes:
        requests_per_minute: Maximum requests per minute per client.
        auth_per_minute: Maximum credential-bearing requests per minute per IP.
        enabled: Whether limits are enforced.
        storage_uri: slowapi storage backend.
    """

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        extra="ignore",
    )

    requests_per_minute: int = 120
    enabled: bool = True
    auth_per_minute: int = 20
    storage_uri: str = "memory://"


class CORSSettings(BaseSettings):
    """CORS configuration for API.

    Attributes:
        origins: Comma-separated list of allowed origins.
        allow_credentials: Whether to allow credentials.
        allow_methods: Allowed HTTP methods.
        allow_headers: Allowed HTTP headers.
    """

    model_config = SettingsConfigDict(
        env_prefix="CORS_",
        extra="ignore",
    )

    origins: str = "http://localhost:3000,http://localhost:5173"
    allow_credentials: bool = True
    allow_methods: list[str] = ["*"]
    allow_headers: list[str] = ["*"]

    @property
    def origins_list(self) -> list[str]:
        """Parse origins string into a list."""
        return [origin.strip() for origin in self.origins.split(",") if origin.strip()]


class APISettings(BaseSettings):
    """API server configuration."""

    model_config = SettingsConfigDict(
        env_prefix="API_",
        extra="ignore",
    )

    host: str = "0.0.0.0"
    port: int = 8080
    workers: int = 2
    reload: bool = False


class Settings(BaseSettings):
    """Main application settings aggregating all subsettings.

    Use get_settings() to obtain a cached singleton instance.

    Attributes:
        environment: Current environment (development, staging, production).
        debug: Enable debug mode.
        log_level: Logging level.
        central_db: Credential store database settings.
        redis: Redis settings.
        jwt: Session token settings.
        reference_token: Reference token settings.
        otp: One-time code settings.
        verification: E-mail verification link settings.
        smtp: Outbound e-mail settings.
        twilio: Outbound SMS settings.
        rate_limit: Rate limiting settings.
        cors: CORS settings.
        api: API server settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "DEBUG"

    # Subsettings - loaded with their own env prefixes
    central_db: CentralDatabaseSettings = Field(default_factory=CentralDatabaseSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    jwt: JWTSettings = Field(default_factory=JWTSettings)
    reference_token: ReferenceTokenSettings = Field(default_factory=ReferenceTokenSettings)
    otp: OTPSettings = Field(default_factory=OTPSettings)
    verification: VerificationSettings = Field(default_factory=VerificationSettings)
    smtp: SMTPSettings = Field(default_factory=SMTPSettings)
    twilio: TwilioSettings = Field(default_factory=TwilioSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    cors: CORSSettings = Field(default_factory=CORSSettings)
    api: APISettings = Field(default_factory=APISettings)

    @model_validator(mode="after")
    def validate_production_settings(self) -> Self:
        """Validate that production settings are properly configured.

        Raises:
            ValueError: If running in production with insecure defaults.
        """
        if self.environment == "production":
            if self.jwt.secret_key.get_secret_value() == DEFAULT_JWT_SECRET:
                raise ValueError(
                    "JWT secret key must be changed from default in production. "
                    "Set JWT_SECRET_KEY environment variable."
                )
            if self.debug:
                raise ValueError("DEBUG must be disabled in production.")
        return self

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call clear_settings_cache() if you need to reload settings.

    Returns:
        Cached Settings instance.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Call this if you need to reload settings from environment.
    Useful for testing or dynamic configuration updates.
    """
    get_settings.cache_clear()
