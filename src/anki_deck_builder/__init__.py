"""Build Anki .apkg packages from deck definitions.

Usage:
    from anki_deck_builder import DeckBuilder, DeckDefinition

    definition = DeckDefinition.model_validate(data)
    DeckBuilder(definition).write_apkg("deck.apkg")
"""

from .apkg import ApkgAssembler, build_media_manifest, resolve_media_path
from .builder import DeckBuilder, write_apkg
from .config import BuilderSettings
from .definition import (
    DeckDef,
    DeckDefinition,
    FieldConverter,
    MediaDef,
    ModelDef,
    NoteDef,
    PackageInfo,
    TemplateDef,
)
from .exceptions import (
    ArchiveWriteError,
    CollectionStoreError,
    ConfigurationError,
    DeckBuilderError,
    DeckNotFoundError,
    DefinitionError,
    MediaReadError,
    ModelNotFoundError,
    PackageIOError,
)
from .identifiers import derive_checksum, derive_guid, derive_id, strip_html
from .inspection import ApkgSummary, read_apkg_summary
from .materializer import MaterializedCollection, build_requirements, materialize

__all__ = [
    "ApkgAssembler",
    "ApkgSummary",
    "ArchiveWriteError",
    "BuilderSettings",
    "CollectionStoreError",
    "ConfigurationError",
    "DeckBuilder",
    "DeckBuilderError",
    "DeckDef",
    "DeckDefinition",
    "DeckNotFoundError",
    "DefinitionError",
    "FieldConverter",
    "MaterializedCollection",
    "MediaDef",
    "MediaReadError",
    "ModelDef",
    "ModelNotFoundError",
    "NoteDef",
    "PackageIOError",
    "PackageInfo",
    "TemplateDef",
    "build_media_manifest",
    "build_requirements",
    "derive_checksum",
    "derive_guid",
    "derive_id",
    "materialize",
    "read_apkg_summary",
    "resolve_media_path",
    "strip_html",
    "write_apkg",
]

__version__ = "0.1.0"
