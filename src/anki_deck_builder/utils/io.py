"""File I/O helpers for writing build artifacts safely."""

import os
import tempfile
from collections.abc import Generator
from contextlib import contextmanager, suppress
from pathlib import Path
from typing import BinaryIO

from anki_deck_builder.utils.logging import get_logger

logger = get_logger(__name__)


@contextmanager
def atomic_write_bytes(path: str | Path) -> Generator[BinaryIO]:
    """
    Context manager for atomic binary file writing.

    Writes to a temporary file in the target directory, then renames it over
    the target path once the block exits cleanly. A failure inside the block
    removes the temporary file and leaves any existing target untouched.

    Args:
        path: Target file path

    Yields:
        Binary file object opened for writing

    Example:
        with atomic_write_bytes("deck.apkg") as f:
            with zipfile.ZipFile(f, "w") as archive:
                ...
    """
    path = Path(path)
    parent = path.parent
    parent.mkdir(parents=True, exist_ok=True)

    # Same directory as the target so the rename stays on one filesystem
    temp_fd, temp_name = tempfile.mkstemp(dir=parent, prefix=f".tmp_{path.name}_")
    os.close(temp_fd)
    temp_path = Path(temp_name)

    try:
        with open(temp_path, "wb") as f:
            yield f
            f.flush()
            os.fsync(f.fileno())

        temp_path.replace(path)

    except BaseException as e:
        with suppress(OSError):
            temp_path.unlink()
        logger.error(
            "atomic_write_failed",
            path=str(path),
            error=str(e),
        )
        raise
