"""Pytest configuration and fixtures for the test suite."""

import pytest

from anki_deck_builder.definition import (
    DeckDef,
    DeckDefinition,
    MediaDef,
    ModelDef,
    NoteDef,
    PackageInfo,
    TemplateDef,
)


@pytest.fixture
def fixed_timestamp():
    """Provide a fixed build time in seconds."""
    return 1_700_000_000


@pytest.fixture
def basic_model():
    """Provide a two-field model with one template."""
    return ModelDef(
        name="Basic",
        fields=["Front", "Back"],
        templates=[
            TemplateDef(
                name="Card 1", front="{{Front}}", back="{{FrontSide}}<hr>{{Back}}"
            )
        ],
    )


@pytest.fixture
def basic_definition(basic_model):
    """Provide one model, one deck "Test", and two notes."""
    return DeckDefinition(
        package=PackageInfo(name="Test Deck"),
        models=[basic_model],
        decks=[DeckDef(name="Test", description="A test deck")],
        notes=[
            NoteDef(
                deck="Test",
                model="Basic",
                fields={"Front": "What is 2+2?", "Back": "4"},
                tags=["test", "example"],
            ),
            NoteDef(
                deck="Test",
                model="Basic",
                fields={"Front": "Capital of France?", "Back": "Paris"},
            ),
        ],
    )


@pytest.fixture
def media_dir(tmp_path):
    """Provide a directory holding two small media files."""
    directory = tmp_path / "media"
    directory.mkdir()
    (directory / "cat.png").write_bytes(b"\x89PNG fake image bytes")
    (directory / "meow.mp3").write_bytes(b"ID3 fake audio bytes")
    return directory


@pytest.fixture
def media_definition(basic_definition):
    """Provide the basic definition with two relative media references."""
    return basic_definition.model_copy(
        update={
            "media": [
                MediaDef(name="cat.png", path="cat.png"),
                MediaDef(name="meow.mp3", path="meow.mp3"),
            ]
        }
    )
