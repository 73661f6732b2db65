"""
Configuration management for MedConnect application.

This module provides centralized configuration using Pydantic Settings
for environment-based configuration management.
"""

from typing import List, Optional

import os
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Database configuration settings."""

    model_config = SettingsConfigDict(env_prefix="MONGO_")

    uri: str = Field(
        default="mongodb://localhost:27017", description="MongoDB connection URI"
    )
    db_name: str = Field(default="medconnect", description="MongoDB database name")
    server_selection_timeout_ms: int = Field(
        default=15000, description="Motor server selection timeout"
    )

    @field_validator("uri")
    @classmethod
    def validate_mongo_uri(cls, v: str) -> str:
        """Validate MongoDB URI format."""
        if not v:
            raise ValueError("MongoDB URI is required. Please set MONGO_URI environment variable.")
        if not v.startswith(("mongodb://", "mongodb+srv://")):
            raise ValueError(
                "MongoDB URI must start with 'mongodb://' or 'mongodb+srv://'"
            )
        return v


class SecuritySettings(BaseSettings):
    """Token signing and lifetime settings."""

    model_config = SettingsConfigDict(env_prefix="SECURITY_")

    secret_key: str = Field(
        default="your-secret-key-change-in-production", description="Token signing secret"
    )
    access_token_expire_minutes: int = Field(
        default=60 * 24, description="Login token lifetime"
    )
    verification_token_expire_minutes: int = Field(
        default=60 * 24, description="Email verification link lifetime"
    )
    reset_token_expire_minutes: int = Field(
        default=15, description="Password reset link lifetime"
    )
    password_hash_iterations: int = Field(
        default=100_000, description="PBKDF2 iterations for password hashing"
    )

    @field_validator("secret_key")
    @classmethod
    def validate_secret_key(cls, v: str) -> str:
        """Validate secret key strength."""
        if len(v) < 32:
            raise ValueError("Secret key must be at least 32 characters long")
        return v


class CORSSettings(BaseSettings):
    """CORS configuration settings."""

    model_config = SettingsConfigDict(env_prefix="CORS_")

    allowed_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:3001"],
        description="Allowed CORS origins (doctor panel, user panel)",
    )
    allowed_methods: List[str] = Field(
        default=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        description="Allowed HTTP methods",
    )
    allowed_headers: List[str] = Field(
        default=["*"], description="Allowed HTTP headers"
    )
    allow_credentials: bool = Field(
        default=True, description="Allow credentials in CORS"
    )

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def parse_allowed_origins(cls, v):
        """Parse allowed origins from string or list."""
        if isinstance(v, str):
            if v.startswith("[") and v.endswith("]"):
                import json

                try:
                    return json.loads(v)
                except json.JSONDecodeError:
                    return [v.strip()]
            return [o.strip() for o in v.split(",") if o.strip()]
        return v


class LoggingSettings(BaseSettings):
    """Logging configuration settings."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: str = Field(default="INFO", description="Logging level")
    format: str = Field(default="json", description="Log format (json or text)")

    @field_validator("level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate logging level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        if v.lower() not in ("json", "text"):
            raise ValueError("Log format must be 'json' or 'text'")
        return v.lower()


class MailSettings(BaseSettings):
    """Outbound mail configuration settings."""

    model_config = SettingsConfigDict(env_prefix="MAIL_")

    backend: str = Field(default="log", description="Mail backend (log or smtp)")
    host: str = Field(default="localhost", description="SMTP host")
    port: int = Field(default=587, description="SMTP port")
    username: str = Field(default="", description="SMTP username")
    password: str = Field(default="", description="SMTP password")
    use_tls: bool = Field(default=True, description="Use STARTTLS")
    sender: str = Field(default="MedConnect <no-reply@medconnect.local>", description="From header")
    timeout_seconds: float = Field(default=10.0, description="SMTP socket timeout")

    @field_validator("backend")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        valid = ["log", "smtp"]
        if v.lower() not in valid:
            raise ValueError(f"Mail backend must be one of: {valid}")
        return v.lower()


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # Application settings
    app_name: str = Field(default="MedConnect", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    app_env: str = Field(default="development", description="Application environment")
    debug: bool = Field(default=False, description="Debug mode")
    port: int = Field(default=8000, description="Application port")
    host: str = Field(default="0.0.0.0", description="Application host")
    api_prefix: str = Field(default="/api/v1", description="Prefix for versioned routes")
    frontend_url: str = Field(
        default="http://localhost:3000",
        description="Doctor panel base URL used in emailed links",
    )

    # Sub-settings
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    cors: CORSSettings = Field(default_factory=CORSSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    mail: MailSettings = Field(default_factory=MailSettings)

    @field_validator("app_env")
    @classmethod
    def validate_app_env(cls, v: str) -> str:
        """Validate application environment."""
        valid_envs = ["development", "staging", "production", "testing"]
        if v.lower() not in valid_envs:
            raise ValueError(f"App environment must be one of: {valid_envs}")
        return v.lower()

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate port number."""
        if not 1 <= v <= 65535:
            raise ValueError("Port must be between 1 and 65535")
        return v

    @field_validator("api_prefix")
    @classmethod
    def normalize_api_prefix(cls, v: str) -> str:
        v = (v or "").strip().rstrip("/")
        if v and not v.startswith("/"):
            v = "/" + v
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app_env == "production"

    @property
    def is_testing(self) -> bool:
        """Check if running in testing mode."""
        return self.app_env == "testing"


# Global settings instance (loaded after attempting to read .env)
_settings: Optional[Settings] = None


def _load_env_file_if_available() -> None:
    """Best-effort load of .env by searching current and parent directories.

    Already-set environment variables are never overridden.
    """
    from dotenv import load_dotenv

    cwd = Path(os.getcwd()).resolve()
    for parent in [cwd, *cwd.parents]:
        candidate = parent / ".env"
        if candidate.exists():
            load_dotenv(dotenv_path=str(candidate), override=False)
            break


def get_settings() -> Settings:
    """Get application settings instance (lazy-init with .env discovery)."""
    global _settings
    if _settings is None:
        _load_env_file_if_available()
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
