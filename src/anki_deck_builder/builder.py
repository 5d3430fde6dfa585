"""High-level entry point: deck definition in, .apkg file out."""

from __future__ import annotations

import time
from pathlib import Path

from .apkg import ApkgAssembler
from .config import BuilderSettings
from .definition import DeckDefinition, FieldConverter
from .exceptions import DeckBuilderError
from .materializer import MaterializedCollection, materialize
from .utils.logging import get_logger

logger = get_logger(__name__)


class DeckBuilder:
    """Builds .apkg packages from a validated deck definition.

    Each call to ``write_apkg`` is an independent build: it takes its own
    timestamp, its own id sequences, and its own temporary store.

    Example:
        builder = DeckBuilder(definition).with_media_base_path("decks/media")
        builder.write_apkg("vocabulary.apkg")
    """

    def __init__(
        self,
        definition: DeckDefinition,
        media_base_path: str | Path | None = None,
        field_converter: FieldConverter | None = None,
        compression_level: int | None = None,
    ):
        """Initialize the builder.

        Args:
            definition: Validated deck definition
            media_base_path: Directory for resolving relative media paths
            field_converter: Applied to each model's ``markdown_fields``
            compression_level: Deflate level (0-9) for archive entries
        """
        self._definition = definition
        self.media_base_path = Path(media_base_path) if media_base_path else None
        self.field_converter = field_converter
        self.compression_level = compression_level

    @classmethod
    def from_settings(
        cls,
        definition: DeckDefinition,
        settings: BuilderSettings,
        field_converter: FieldConverter | None = None,
    ) -> DeckBuilder:
        """Create a builder using the build options of ``settings``."""
        return cls(
            definition,
            media_base_path=settings.media_base_path,
            field_converter=field_converter,
            compression_level=settings.compression_level,
        )

    @property
    def definition(self) -> DeckDefinition:
        """The deck definition being built."""
        return self._definition

    def with_media_base_path(self, path: str | Path) -> DeckBuilder:
        """Set the directory relative media paths are resolved against."""
        self.media_base_path = Path(path)
        return self

    def materialize(self, timestamp: int | None = None) -> MaterializedCollection:
        """Build all rows without writing anything."""
        return materialize(self._definition, timestamp, self.field_converter)

    def write_apkg(self, path: str | Path, timestamp: int | None = None) -> Path:
        """Build the package and write it to ``path``.

        Args:
            path: Output .apkg path
            timestamp: Build time in seconds; defaults to now

        Returns:
            Path of the written archive

        Raises:
            DefinitionError: If a note references an undeclared model or deck
            PackageIOError: If the store, a media file, or the output fails
        """
        started = time.perf_counter()
        logger.info(
            "apkg_build_started",
            package=self._definition.package.name,
            output_path=str(path),
            notes=len(self._definition.notes),
            media_count=len(self._definition.media),
        )

        try:
            collection = self.materialize(timestamp)
            assembler = ApkgAssembler(
                media=self._definition.media,
                media_base_path=self.media_base_path,
                compression_level=self.compression_level,
            )
            output = assembler.write(collection, path)
        except DeckBuilderError as e:
            logger.error("apkg_build_failed", output_path=str(path), **e.to_dict())
            raise

        logger.info(
            "apkg_build_completed",
            package=self._definition.package.name,
            output_path=str(output),
            duration_seconds=round(time.perf_counter() - started, 3),
        )
        return output


def write_apkg(
    definition: DeckDefinition,
    path: str | Path,
    media_base_path: str | Path | None = None,
    field_converter: FieldConverter | None = None,
) -> Path:
    """Write a deck definition to an .apkg file.

    Convenience function wrapping ``DeckBuilder``.
    """
    builder = DeckBuilder(
        definition,
        media_base_path=media_base_path,
        field_converter=field_converter,
    )
    return builder.write_apkg(path)
