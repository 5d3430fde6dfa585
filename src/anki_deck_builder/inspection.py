"""Read a produced .apkg back and summarize what it contains."""

from __future__ import annotations

import json
import sqlite3
import tempfile
import zipfile
from dataclasses import dataclass, field
from pathlib import Path

from .collection_schema import COLLECTION_ENTRY, MEDIA_MANIFEST_ENTRY
from .error_codes import ErrorCode
from .exceptions import ArchiveWriteError


@dataclass
class ApkgSummary:
    """What an archive holds, as seen by an importer."""

    entry_names: list[str]
    media_manifest: dict[str, str]
    schema_version: int
    note_count: int
    card_count: int
    models: dict[int, str] = field(default_factory=dict)
    decks: dict[int, str] = field(default_factory=dict)

    @property
    def media_entries(self) -> list[str]:
        """Names of the numbered media payload entries."""
        reserved = {COLLECTION_ENTRY, MEDIA_MANIFEST_ENTRY}
        return [name for name in self.entry_names if name not in reserved]


def _unreadable(path: Path, reason: str) -> ArchiveWriteError:
    return ArchiveWriteError(
        f"Not a readable package: {path} ({reason})",
        error_code=ErrorCode.IO_ARCHIVE_UNREADABLE.value,
        context={"path": str(path)},
    )


def read_apkg_summary(path: str | Path) -> ApkgSummary:
    """Open an archive and summarize its entries and collection.

    Raises:
        ArchiveWriteError: If the file is missing, not a zip, lacks the
            collection entry, or holds a collection that cannot be queried
    """
    path = Path(path)
    try:
        archive = zipfile.ZipFile(path)
    except (OSError, zipfile.BadZipFile) as e:
        raise _unreadable(path, str(e)) from e

    with archive, tempfile.TemporaryDirectory(prefix="anki_deck_inspect_") as tmp:
        names = archive.namelist()
        if COLLECTION_ENTRY not in names:
            raise _unreadable(path, f"missing {COLLECTION_ENTRY}")

        try:
            manifest: dict[str, str] = {}
            if MEDIA_MANIFEST_ENTRY in names:
                manifest = json.loads(archive.read(MEDIA_MANIFEST_ENTRY))

            db_path = Path(archive.extract(COLLECTION_ENTRY, tmp))
            conn = sqlite3.connect(str(db_path))
            try:
                row = conn.execute(
                    "SELECT ver, models, decks FROM col WHERE id = 1"
                ).fetchone()
                note_count = conn.execute("SELECT COUNT(*) FROM notes").fetchone()[0]
                card_count = conn.execute("SELECT COUNT(*) FROM cards").fetchone()[0]
            finally:
                conn.close()
        except (sqlite3.Error, ValueError, OSError, zipfile.BadZipFile) as e:
            raise _unreadable(path, str(e)) from e

    if row is None:
        raise _unreadable(path, "collection has no col row")

    ver, models_json, decks_json = row
    try:
        models = {int(k): v["name"] for k, v in json.loads(models_json).items()}
        decks = {int(k): v["name"] for k, v in json.loads(decks_json).items()}
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        raise _unreadable(path, f"malformed collection JSON: {e}") from e

    return ApkgSummary(
        entry_names=names,
        media_manifest=manifest,
        schema_version=ver,
        note_count=note_count,
        card_count=card_count,
        models=models,
        decks=decks,
    )
