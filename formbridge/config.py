"""
FormBridge Backend — Application Configuration
================================================

What:  Centralized configuration management using Pydantic Settings.
How:   Pydantic Settings reads from environment variables (or a .env file),
       validates types/ranges, and provides a singleton `settings` object.
Who:   Imported by the app factory, the Firestore connector and middleware.
When:  Loaded once at module import time.

Credential sources:
    FIREBASE_SERVICE_ACCOUNT_FILE  → path to a service-account JSON document
    FIREBASE_SERVICE_ACCOUNT       → the same document inline, as a JSON string
    The file path wins when both are set.
"""

from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have defaults suitable for local development except the
    Firebase credential, which must be supplied through one of the two
    FIREBASE_SERVICE_ACCOUNT* variables.
    """

    # ── Server ────────────────────────────────────────────────────────────
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000, ge=1, le=65535)

    # ── Firebase / Firestore ──────────────────────────────────────────────
    # Relative paths are resolved against the process working directory
    firebase_service_account_file: Optional[str] = Field(
        default=None,
        description="Path to a Firebase service-account JSON file",
    )
    firebase_service_account: Optional[str] = Field(
        default=None,
        description="Inline Firebase service-account JSON document",
    )

    # When True, a failed credential check during startup aborts the process.
    # When False, the server starts anyway and retries on each request.
    firebase_required_at_startup: bool = Field(default=True)

    # Name of the firebase_admin App instance owned by this process
    firebase_app_name: str = Field(default="formbridge")

    submissions_collection: str = Field(default="form_submissions")

    # ── Request Limits ────────────────────────────────────────────────────
    # 10MB = 10 * 1024 * 1024
    max_body_size: int = Field(default=10_485_760, ge=1024)

    # ── CORS ──────────────────────────────────────────────────────────────
    # Comma-separated list; "*" opens the API to every origin
    cors_origins: str = Field(default="*")
    cors_methods: str = Field(default="GET,POST,PUT,DELETE")
    cors_headers: str = Field(default="Content-Type,Authorization")

    @property
    def cors_origins_list(self) -> List[str]:
        return _split_csv(self.cors_origins)

    @property
    def cors_methods_list(self) -> List[str]:
        return _split_csv(self.cors_methods)

    @property
    def cors_headers_list(self) -> List[str]:
        return _split_csv(self.cors_headers)

    # ── Logging ───────────────────────────────────────────────────────────
    # Valid: DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    @field_validator("firebase_service_account_file", "firebase_service_account")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        """An empty variable (FOO=) counts as not configured."""
        if v is not None and not v.strip():
            return None
        return v

    # ── Pydantic Settings Config ──────────────────────────────────────────
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,  # PORT and port both work
        "extra": "ignore",
    }


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


# Singleton instance: the default configuration for create_app()
settings = Settings()
