"""
Library settings.

Values are read from `MIMECOMPOSE_*` environment variables (and an optional
`.env` file) through pydantic-settings.
"""

import logging
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Line-length limits and boundary size used while rendering messages."""

    # 1000 octets per line including the trailing CRLF (RFC 5322 2.1.1)
    max_line_length: int = Field(default=998, ge=1)
    base64_line_length: int = Field(default=76, ge=4)
    # binascii.b2a_qp wraps at its own fixed width, kept here for reference
    quoted_printable_line_length: int = 76
    boundary_length: int = Field(default=68, ge=1, le=70)
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="MIMECOMPOSE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    global _settings  # pylint: disable=global-statement
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Forget the cached settings so the next access re-reads the environment."""
    global _settings  # pylint: disable=global-statement
    _settings = None


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging at the configured (or given) level."""
    logging.basicConfig(
        level=(level or get_settings().log_level).upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
