"""
Configuration — typed, validated settings loaded from environment/.env.

Uses pydantic-settings to:
  - Load from environment variables (prefix OCSP_CHECKER_)
  - Fall back to .env file
  - Validate types and constraints at startup

Only AppSettings is a BaseSettings instance. Sub-settings are plain BaseModel
classes populated via env_nested_delimiter="__", so the env var
OCSP_CHECKER_TRUST_STORE__TRUSTED_DIR maps to trust_store.trusted_dir.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve the .env file relative to the project root (two levels above this file),
# so settings load correctly regardless of the working directory at runtime.
_ENV_FILE = Path(__file__).parent.parent.parent / ".env"

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


def _existing_directory(value: Path | None) -> Path | None:
    if value is not None and not value.is_dir():
        raise ValueError(f"Directory does not exist: {value}")
    return value


class TrustStoreSettings(BaseModel):
    """
    Where the responder trust anchors come from.

    trusted_dir holds the roots; intermediate_dir (optional) holds CA
    certificates usable to build a path but not trusted on their own.
    """

    trusted_dir: Path = Field(description="Directory of trusted root certificates")
    intermediate_dir: Path | None = Field(
        default=None, description="Directory of intermediate CA certificates"
    )

    @field_validator("trusted_dir", "intermediate_dir")
    @classmethod
    def validate_directory(cls, value: Path | None) -> Path | None:
        """Reject directories that do not exist at startup."""
        return _existing_directory(value)


class PathValidationSettings(BaseModel):
    """Responder certificate path validation."""

    max_path_length: int = Field(default=10, ge=0, description="Maximum intermediates in a path")
    require_ocsp_signing: bool = Field(
        default=False, description="Require id-kp-OCSPSigning on the responder certificate"
    )


class AppSettings(BaseSettings):
    """
    Root application settings — aggregates all sub-settings.

    Load order (highest priority first):
      1. Environment variables
      2. .env file
      3. Default values
    """

    model_config = SettingsConfigDict(
        env_prefix="OCSP_CHECKER_",
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    trust_store: TrustStoreSettings
    path_validation: PathValidationSettings = Field(
        default_factory=lambda: PathValidationSettings()
    )

    reject_duplicate_serials: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(
                f"Unknown log level {value!r}; expected one of {', '.join(_LOG_LEVELS)}"
            )
        return level
