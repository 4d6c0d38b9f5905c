"""
Configuration — typed, validated settings loaded from environment/.env.

Uses pydantic-settings to:
  - Load from MDM_INSPECTOR_* environment variables
  - Fall back to a .env file in the working directory
  - Validate types and constraints before any inspection starts

Sub-settings are plain BaseModel classes populated through
env_nested_delimiter="__": MDM_INSPECTOR_KEYCHAIN__COMMAND maps to
keychain.command. Command-line options override these values.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class KeychainSettings(BaseModel):
    """
    macOS keychain lookup.

    `paths` limits the search to specific keychain files; empty searches the
    user's default keychain list.
    """

    command: str = Field(default="security", description="Path or name of the security tool")
    paths: list[str] = Field(default_factory=list, description="Keychain files to search")


class AppSettings(BaseSettings):
    """
    Root application settings.

    Load order (highest priority first):
      1. Environment variables
      2. .env file
      3. Default values
    """

    model_config = SettingsConfigDict(
        env_prefix="MDM_INSPECTOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    keychain: KeychainSettings = Field(default_factory=KeychainSettings)
    inspection_timeout_seconds: float = Field(default=5.0, gt=0)
    log_level: str = Field(default="WARNING")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Accept standard logging level names, case-insensitively."""
        level = value.strip().upper()
        if not isinstance(logging.getLevelNamesMapping().get(level), int):
            raise ValueError(f"Unknown log level {value!r}")
        return level
