"""Deterministic identifiers, note GUIDs, and sort-field checksums.

Every function here is pure: the same input always produces the same output,
across processes and across rebuilds. Python's builtin ``hash`` is salted per
process, so everything goes through ``hashlib`` instead.
"""

from __future__ import annotations

import hashlib

# Numeric ids stay below 2**47 so they read like millisecond timestamps
ID_MASK = 0x7FFF_FFFF_FFFF

CHECKSUM_HEX_DIGITS = 8

GUID_ALPHABET = (
    "0123456789"
    "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    "abcdefghijklmnopqrstuvwxyz"
    "!#$%&()*+,-./:;<=>?@[]^_`{|}~"
)
GUID_BASE = len(GUID_ALPHABET)  # 91


def derive_id(name: str) -> int:
    """Derive a stable model or deck id from its name.

    Args:
        name: Model or deck name

    Returns:
        Non-negative integer below 2**47
    """
    digest = hashlib.sha1(name.encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big", signed=False) & ID_MASK


def derive_guid(note_id: int) -> str:
    """Encode a note id as a base-91 GUID, least significant digit first.

    GUIDs are only ever produced, never decoded, so digit order is irrelevant
    to the target application.

    Raises:
        ValueError: If note_id is negative
    """
    if note_id < 0:
        msg = f"note id must be non-negative, got {note_id}"
        raise ValueError(msg)
    if note_id == 0:
        return GUID_ALPHABET[0]

    digits = []
    n = note_id
    while n > 0:
        n, remainder = divmod(n, GUID_BASE)
        digits.append(GUID_ALPHABET[remainder])
    return "".join(digits)


def strip_html(text: str) -> str:
    """Drop everything between ``<`` and ``>``.

    No tag-name awareness: a stray ``<`` hides the rest of the text until the
    next ``>``, exactly like the target application's own stripping.
    """
    result = []
    in_tag = False
    for char in text:
        if char == "<":
            in_tag = True
        elif char == ">":
            in_tag = False
        elif not in_tag:
            result.append(char)
    return "".join(result)


def derive_checksum(sort_field: str) -> int:
    """Compute the duplicate-detection checksum of a sort field.

    The markup is stripped first, then the first 32 bits of the SHA-1 digest
    are used, matching the checksum the target application computes itself.
    Case-sensitive.
    """
    stripped = strip_html(sort_field)
    hex_digest = hashlib.sha1(stripped.encode("utf-8")).hexdigest()
    return int(hex_digest[:CHECKSUM_HEX_DIGITS], 16)


__all__ = [
    "GUID_ALPHABET",
    "ID_MASK",
    "derive_checksum",
    "derive_guid",
    "derive_id",
    "strip_html",
]
