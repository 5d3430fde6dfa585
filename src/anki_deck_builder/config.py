"""Settings for the deck builder using pydantic-settings."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .error_codes import ErrorCode
from .exceptions import ConfigurationError
from .utils.logging import LOG_LEVEL_NAMES


class BuilderSettings(BaseSettings):
    """Build and logging settings.

    Read from ``ANKI_DECK_BUILDER_*`` environment variables or a ``.env``
    file. Nothing in a build reads these implicitly; callers pass them to
    ``DeckBuilder.from_settings`` and ``configure_logging``.
    """

    model_config = SettingsConfigDict(
        env_prefix="ANKI_DECK_BUILDER_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=False,
        extra="ignore",
        validate_assignment=True,
    )

    # Logging
    log_level: str = Field(default="INFO", description="Console log level")
    log_file: Path | None = Field(
        default=None, description="Optional rotating JSON log file"
    )
    json_logs: bool = Field(default=False, description="Render console logs as JSON")

    # Build
    media_base_path: Path | None = Field(
        default=None,
        description="Directory that relative media paths are resolved against",
    )
    compression_level: int | None = Field(
        default=None,
        ge=0,
        le=9,
        description="Deflate level for archive entries (zipfile default if unset)",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> str:
        """Upper-case and check the level name."""
        level = str(v).upper()
        if level not in LOG_LEVEL_NAMES:
            msg = f"log_level must be one of {sorted(LOG_LEVEL_NAMES)}, got {v!r}"
            raise ValueError(msg)
        return level

    @field_validator("log_file", "media_base_path", mode="before")
    @classmethod
    def parse_path(cls, v: Any) -> Path | None:
        """Convert string to Path, expanding ``~``."""
        if v is None or v == "":
            return None
        if isinstance(v, (str, Path)):
            return Path(v).expanduser()
        msg = f"Path field must be string or Path, got {type(v).__name__}"
        raise ValueError(msg)

    @classmethod
    def load(cls, **overrides: Any) -> BuilderSettings:
        """Load settings, raising ConfigurationError on invalid values.

        Args:
            **overrides: Values taking precedence over the environment

        Raises:
            ConfigurationError: If any value fails validation
        """
        try:
            return cls(**overrides)
        except ValidationError as e:
            msg = f"Invalid builder settings: {e.error_count()} error(s)"
            raise ConfigurationError(
                msg,
                suggestion="Check ANKI_DECK_BUILDER_* environment variables",
                error_code=ErrorCode.CFG_INVALID.value,
                context={"errors": e.errors(include_url=False)},
            ) from e
