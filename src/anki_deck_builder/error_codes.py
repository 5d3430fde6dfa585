"""Structured error codes for machine-readable error handling.

Error codes follow the format: {DOMAIN}-{CATEGORY}-{NUMBER}

Error Domains:
    DEF - Deck definition precondition errors
    IO  - Environment errors (store, media, archive)
    CFG - Configuration errors

Usage:
    from anki_deck_builder.error_codes import ErrorCode

    raise MediaReadError(
        "Cannot read media file",
        error_code=ErrorCode.IO_MEDIA_UNREADABLE.value,
        context={"path": str(path)},
    )
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Structured error codes for machine-readable handling.

    All error codes inherit from str for JSON serialization compatibility.
    """

    # =========================================================================
    # Definition Errors (DEF-xxx-xxx)
    # =========================================================================
    DEF_MODEL_NOT_FOUND = "DEF-MODEL-001"
    """A note references a model missing from the definition."""

    DEF_DECK_NOT_FOUND = "DEF-DECK-001"
    """A note references a deck missing from the definition."""

    # =========================================================================
    # Environment Errors (IO-xxx-xxx)
    # =========================================================================
    IO_STORE_FAILED = "IO-STORE-001"
    """The transient SQLite collection store could not be built."""

    IO_MEDIA_UNREADABLE = "IO-MEDIA-001"
    """A media source file is missing or unreadable."""

    IO_ARCHIVE_WRITE_FAILED = "IO-ARCHIVE-001"
    """The output archive could not be written."""

    IO_ARCHIVE_UNREADABLE = "IO-ARCHIVE-002"
    """An archive handed to the inspector is not a readable package."""

    # =========================================================================
    # Configuration Errors (CFG-xxx-xxx)
    # =========================================================================
    CFG_INVALID = "CFG-INVALID-001"
    """Settings failed validation."""


def get_error_domain(code: ErrorCode) -> str:
    """Extract the domain from an error code.

    Args:
        code: The error code

    Returns:
        The domain prefix (e.g., "DEF", "IO", "CFG")
    """
    return code.value.split("-")[0]


def is_environment_error_code(code: ErrorCode) -> bool:
    """Check if an error code blames the environment rather than the input.

    Environment errors may succeed on a plain retry of the whole build;
    definition errors never will.
    """
    return get_error_domain(code) == "IO"


__all__ = ["ErrorCode", "get_error_domain", "is_environment_error_code"]
