"""Tests for the collection schema and fixed configuration blobs."""

import json
import sqlite3

from anki_deck_builder.collection_schema import (
    DEFAULT_CONF,
    DEFAULT_DCONF,
    FIELD_SEPARATOR,
    SCHEMA,
    SCHEMA_VERSION,
)


def _columns(conn: sqlite3.Connection, table: str) -> list[str]:
    return [row[1] for row in conn.execute(f"PRAGMA table_info({table})")]


def test_schema_creates_all_tables(tmp_path):
    """The schema script creates the five collection tables."""
    conn = sqlite3.connect(str(tmp_path / "collection.anki2"))
    try:
        conn.executescript(SCHEMA)
        tables = {
            row[0]
            for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
        }
    finally:
        conn.close()

    assert {"col", "notes", "cards", "revlog", "graves"} <= tables


def test_schema_columns(tmp_path):
    """Tables carry the columns importers expect, in order."""
    conn = sqlite3.connect(str(tmp_path / "collection.anki2"))
    try:
        conn.executescript(SCHEMA)
        col = _columns(conn, "col")
        notes = _columns(conn, "notes")
        cards = _columns(conn, "cards")
    finally:
        conn.close()

    assert col == [
        "id", "crt", "mod", "scm", "ver", "dty", "usn", "ls",
        "conf", "models", "decks", "dconf", "tags",
    ]  # fmt: skip
    assert notes == [
        "id", "guid", "mid", "mod", "usn", "tags",
        "flds", "sfld", "csum", "flags", "data",
    ]  # fmt: skip
    assert cards[:9] == [
        "id", "nid", "did", "ord", "mod", "usn", "type", "queue", "due",
    ]  # fmt: skip
    assert cards[-1] == "data"


def test_schema_is_rerunnable(tmp_path):
    """Running the script twice on one store is harmless."""
    conn = sqlite3.connect(str(tmp_path / "collection.anki2"))
    try:
        conn.executescript(SCHEMA)
        conn.executescript(SCHEMA)
    finally:
        conn.close()


def test_constants():
    assert SCHEMA_VERSION == 11
    assert FIELD_SEPARATOR == "\x1f"


def test_config_blobs_are_json():
    """The fixed collection and deck configuration blobs parse as JSON."""
    conf = json.loads(DEFAULT_CONF)
    dconf = json.loads(DEFAULT_DCONF)

    assert isinstance(conf, dict)
    assert "1" in dconf
    assert dconf["1"]["id"] == 1
