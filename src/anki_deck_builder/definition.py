"""Deck definition models consumed by the builder.

A definition arrives already validated: every note's deck and model names
resolve, and every field key belongs to its model. These models only check
types; lookups that miss raise DefinitionError subclasses.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator

from pydantic import BaseModel, Field

from .exceptions import DeckNotFoundError, ModelNotFoundError
from .error_codes import ErrorCode
from .identifiers import derive_id

# Converts one field value to its stored form (e.g. Markdown to HTML)
FieldConverter = Callable[[str], str]


class PackageInfo(BaseModel):
    """Package metadata. Not written into the collection."""

    name: str
    version: str = "1.0.0"
    author: str | None = None
    description: str | None = None


class TemplateDef(BaseModel):
    """Card template: front and back text with ``{{Field}}`` placeholders."""

    name: str
    front: str
    back: str


class ModelDef(BaseModel):
    """Note type: ordered fields, card templates, and styling."""

    name: str
    fields: list[str]
    templates: list[TemplateDef]
    css: str | None = None
    sort_field: str | None = None
    id: int | None = None
    markdown_fields: list[str] = Field(default_factory=list)

    def resolved_id(self) -> int:
        """Explicit id, else the id derived from the model name."""
        if self.id is not None:
            return self.id
        return derive_id(self.name)

    def sort_field_index(self) -> int:
        """Position of the sort field; 0 when unset or not a declared field."""
        if self.sort_field is not None and self.sort_field in self.fields:
            return self.fields.index(self.sort_field)
        return 0


class DeckDef(BaseModel):
    """Deck. Use ``::`` in the name for hierarchy, e.g. ``Parent::Child``."""

    name: str
    description: str | None = None
    id: int | None = None

    def resolved_id(self) -> int:
        """Explicit id, else the id derived from the deck name."""
        if self.id is not None:
            return self.id
        return derive_id(self.name)


class NoteDef(BaseModel):
    """Note: field values for one model, placed in one deck."""

    deck: str
    model: str
    fields: dict[str, str]
    tags: list[str] = Field(default_factory=list)
    guid: str | None = None

    def fields_ordered(self, model: ModelDef) -> list[str]:
        """Field values in model order, missing fields as empty strings."""
        return [self.fields.get(name, "") for name in model.fields]

    def tags_string(self) -> str:
        """Tags in stored form: space separated with surrounding spaces."""
        if not self.tags:
            return ""
        return f" {' '.join(self.tags)} "

    def fields_as_presented(
        self,
        convertible: list[str],
        converter: FieldConverter | None,
    ) -> dict[str, str]:
        """Field map with ``converter`` applied to the convertible fields.

        Without a converter the values pass through unchanged.
        """
        if converter is None or not convertible:
            return dict(self.fields)
        return {
            name: converter(value) if name in convertible else value
            for name, value in self.fields.items()
        }


class MediaDef(BaseModel):
    """Media file: the name notes use to refer to it and where to read it."""

    name: str
    path: str


class DeckDefinition(BaseModel):
    """Root of a deck definition."""

    package: PackageInfo
    models: list[ModelDef] = Field(default_factory=list)
    decks: list[DeckDef] = Field(default_factory=list)
    notes: list[NoteDef] = Field(default_factory=list)
    media: list[MediaDef] = Field(default_factory=list)

    def get_model(self, name: str) -> ModelDef:
        """Look up a model by name.

        Raises:
            ModelNotFoundError: If no model has this name
        """
        for model in self.models:
            if model.name == name:
                return model
        raise ModelNotFoundError(
            name,
            error_code=ErrorCode.DEF_MODEL_NOT_FOUND.value,
            suggestion="Validate the definition before building",
        )

    def get_deck(self, name: str) -> DeckDef:
        """Look up a deck by name.

        Raises:
            DeckNotFoundError: If no deck has this name
        """
        for deck in self.decks:
            if deck.name == name:
                return deck
        raise DeckNotFoundError(
            name,
            error_code=ErrorCode.DEF_DECK_NOT_FOUND.value,
            suggestion="Validate the definition before building",
        )

    def notes_for_deck(self, deck_name: str) -> Iterator[NoteDef]:
        """Iterate the notes placed in a deck, in declaration order."""
        return (note for note in self.notes if note.deck == deck_name)

    def set_markdown_fields(self, model_name: str, fields: list[str]) -> None:
        """Mark fields of a model for conversion. Unknown models are ignored."""
        for model in self.models:
            if model.name == model_name:
                model.markdown_fields = list(fields)
