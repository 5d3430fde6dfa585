"""Centralized exception hierarchy for anki-deck-builder.

All errors raised by a build inherit from DeckBuilderError. The two main
branches let callers tell bad input apart from a broken environment.

Exception Hierarchy:
    DeckBuilderError (base)
     ConfigurationError - Settings loading/validation errors
     DefinitionError - Precondition violations in the deck definition
        ModelNotFoundError - Note references an undeclared model
        DeckNotFoundError - Note references an undeclared deck
     PackageIOError - Environment failures while building
         CollectionStoreError - Transient SQLite store failures
         MediaReadError - Media source missing or unreadable
         ArchiveWriteError - Output archive could not be written or read

Usage Examples:
    # Catch all build errors
    try:
        builder.write_apkg("deck.apkg")
    except DeckBuilderError as e:
        logger.error("build_failed", **e.to_dict())

    # Retry only when the environment was at fault
    try:
        builder.write_apkg("deck.apkg")
    except DefinitionError:
        raise
    except PackageIOError as e:
        print(f"Environment problem: {e}")
"""

from typing import Any


class DeckBuilderError(Exception):
    """Base exception for all build-related errors.

    Attributes:
        message: Human-readable error message
        suggestion: Optional suggestion for resolving the error
        error_code: Structured error code for machine-readable handling
        context: Additional context for debugging (e.g., file paths, names)
    """

    def __init__(
        self,
        message: str,
        suggestion: str | None = None,
        error_code: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        """Initialize the exception.

        Args:
            message: Human-readable error message
            suggestion: Optional suggestion for resolving the error
            error_code: Structured error code (e.g., "IO-MEDIA-001")
            context: Additional context for debugging
        """
        self.message = message
        self.suggestion = suggestion
        self.error_code = error_code
        self.context = context or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the error message with error code and suggestion if available."""
        parts = []
        if self.error_code:
            parts.append(f"[{self.error_code}] {self.message}")
        else:
            parts.append(self.message)
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for structured logging.

        Returns:
            Dictionary with error details
        """
        return {
            "message": self.message,
            "error_code": self.error_code,
            "suggestion": self.suggestion,
            "context": self.context,
            "type": type(self).__name__,
        }


# Configuration Errors


class ConfigurationError(DeckBuilderError):
    """Settings loading or validation errors.

    Raised when:
    - An environment variable holds an invalid value
    - A settings override fails validation
    """


# Definition Errors


class DefinitionError(DeckBuilderError):
    """Precondition violations in the deck definition.

    The definition is validated upstream; these errors mean a caller handed
    the builder a definition that never passed that validation.
    """


class ModelNotFoundError(DefinitionError):
    """A note references a model that is not declared."""

    def __init__(self, model_name: str, **kwargs: Any):
        self.model_name = model_name
        kwargs.setdefault("context", {"model": model_name})
        super().__init__(f"model not found: {model_name}", **kwargs)


class DeckNotFoundError(DefinitionError):
    """A note references a deck that is not declared."""

    def __init__(self, deck_name: str, **kwargs: Any):
        self.deck_name = deck_name
        kwargs.setdefault("context", {"deck": deck_name})
        super().__init__(f"deck not found: {deck_name}", **kwargs)


# Environment Errors


class PackageIOError(DeckBuilderError):
    """Base class for environment failures during a build.

    Any output already at the target path must be treated as untrusted
    after one of these is raised.
    """


class CollectionStoreError(PackageIOError):
    """Transient collection store failures.

    Raised when:
    - The temporary directory cannot be created
    - SQLite fails to create the schema or insert rows
    """


class MediaReadError(PackageIOError):
    """Media source file is missing or unreadable."""


class ArchiveWriteError(PackageIOError):
    """The output archive could not be written (or read back)."""


__all__ = [
    "ArchiveWriteError",
    "CollectionStoreError",
    "ConfigurationError",
    "DeckBuilderError",
    "DeckNotFoundError",
    "DefinitionError",
    "MediaReadError",
    "ModelNotFoundError",
    "PackageIOError",
]
