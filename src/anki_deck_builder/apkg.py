"""Assemble .apkg archives from materialized collections.

An archive holds three kinds of entries, all deflated:

- ``collection.anki2``: the SQLite collection
- ``media``: JSON manifest mapping ``"<index>"`` to the referenced filename
- ``0``, ``1``, ...: raw bytes of each media file, named by index
"""

from __future__ import annotations

import json
import sqlite3
import tempfile
import zipfile
from pathlib import Path

from .collection_schema import COLLECTION_ENTRY, MEDIA_MANIFEST_ENTRY, SCHEMA
from .definition import MediaDef
from .error_codes import ErrorCode
from .exceptions import ArchiveWriteError, CollectionStoreError, MediaReadError
from .materializer import MaterializedCollection
from .utils.io import atomic_write_bytes
from .utils.logging import get_logger

logger = get_logger(__name__)

_INSERT_COL = (
    "INSERT INTO col (id, crt, mod, scm, ver, dty, usn, ls, conf, models, decks, dconf, tags) "
    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)"
)
_INSERT_NOTE = (
    "INSERT INTO notes (id, guid, mid, mod, usn, tags, flds, sfld, csum, flags, data) "
    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)"
)
_INSERT_CARD = (
    "INSERT INTO cards (id, nid, did, ord, mod, usn, type, queue, due, ivl, "
    "factor, reps, lapses, left, odue, odid, flags, data) "
    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)"
)


def build_media_manifest(media: list[MediaDef]) -> str:
    """JSON object mapping each media index (as a string) to its name."""
    return json.dumps({str(index): item.name for index, item in enumerate(media)})


def resolve_media_path(path: str, base_path: Path | None = None) -> Path:
    """Resolve a media source path.

    Absolute paths are used as-is. Relative paths are joined to ``base_path``
    when one is given, otherwise used as given (relative to the process cwd).
    """
    candidate = Path(path)
    if candidate.is_absolute() or base_path is None:
        return candidate
    return base_path / candidate


def write_collection_db(db_path: Path, collection: MaterializedCollection) -> None:
    """Create the schema and insert every row into a new SQLite file.

    Raises:
        CollectionStoreError: If SQLite fails
    """
    try:
        conn = sqlite3.connect(str(db_path))
        try:
            conn.executescript(SCHEMA)
            with conn:
                conn.execute(_INSERT_COL, collection.collection.as_params())
                conn.executemany(
                    _INSERT_NOTE, [note.as_params() for note in collection.notes]
                )
                conn.executemany(
                    _INSERT_CARD, [card.as_params() for card in collection.cards]
                )
        finally:
            conn.close()
    except sqlite3.Error as e:
        msg = f"Failed to write collection store: {e}"
        raise CollectionStoreError(
            msg,
            error_code=ErrorCode.IO_STORE_FAILED.value,
            context={"db_path": str(db_path)},
        ) from e

    logger.debug(
        "collection_store_written",
        path=str(db_path),
        notes=len(collection.notes),
        cards=len(collection.cards),
    )


class ApkgAssembler:
    """Packages a materialized collection and its media into one archive."""

    def __init__(
        self,
        media: list[MediaDef] | None = None,
        media_base_path: Path | None = None,
        compression_level: int | None = None,
    ):
        """Initialize the assembler.

        Args:
            media: Media items in declaration order; index = entry name
            media_base_path: Directory for resolving relative media paths
            compression_level: Deflate level (0-9), zipfile default if None
        """
        self.media = list(media or [])
        self.media_base_path = media_base_path
        self.compression_level = compression_level

    def _read_media(self, item: MediaDef) -> bytes:
        source = resolve_media_path(item.path, self.media_base_path)
        try:
            return source.read_bytes()
        except OSError as e:
            msg = f"Cannot read media file '{item.name}' from {source}: {e}"
            raise MediaReadError(
                msg,
                suggestion="Check the media path and the media base path",
                error_code=ErrorCode.IO_MEDIA_UNREADABLE.value,
                context={"name": item.name, "path": str(source)},
            ) from e

    def write(self, collection: MaterializedCollection, output_path: str | Path) -> Path:
        """Write the archive to ``output_path``.

        The archive is written to a temporary file and moved into place only
        when complete.

        Returns:
            Path of the written archive

        Raises:
            CollectionStoreError: If the transient store fails
            MediaReadError: If a media source cannot be read
            ArchiveWriteError: If the output cannot be written
        """
        output_path = Path(output_path)

        try:
            temp_dir = tempfile.TemporaryDirectory(prefix="anki_deck_builder_")
        except OSError as e:
            msg = f"Cannot create temporary collection store: {e}"
            raise CollectionStoreError(
                msg, error_code=ErrorCode.IO_STORE_FAILED.value
            ) from e

        with temp_dir as temp_name:
            db_path = Path(temp_name) / COLLECTION_ENTRY
            write_collection_db(db_path, collection)

            try:
                with atomic_write_bytes(output_path) as f:
                    with zipfile.ZipFile(
                        f,
                        "w",
                        compression=zipfile.ZIP_DEFLATED,
                        compresslevel=self.compression_level,
                    ) as archive:
                        archive.write(db_path, arcname=COLLECTION_ENTRY)
                        archive.writestr(
                            MEDIA_MANIFEST_ENTRY, build_media_manifest(self.media)
                        )
                        for index, item in enumerate(self.media):
                            content = self._read_media(item)
                            archive.writestr(str(index), content)
                            logger.debug(
                                "media_packaged",
                                index=index,
                                name=item.name,
                                size=len(content),
                            )
            except OSError as e:
                msg = f"Failed to write archive {output_path}: {e}"
                raise ArchiveWriteError(
                    msg,
                    error_code=ErrorCode.IO_ARCHIVE_WRITE_FAILED.value,
                    context={"output_path": str(output_path)},
                ) from e

        logger.info(
            "apkg_written",
            output_path=str(output_path),
            notes=len(collection.notes),
            cards=len(collection.cards),
            media_count=len(self.media),
        )
        return output_path
