"""Turn a deck definition into collection rows and their JSON blobs.

All output is built as typed records first and serialized to JSON only when
the archive assembler asks for the column values. Id sequences belong to a
single build and are seeded from that build's timestamp.
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from typing import Any

from .collection_schema import (
    CARD_QUEUE_NEW,
    CARD_TYPE_NEW,
    DEFAULT_CONF,
    DEFAULT_CSS,
    DEFAULT_DCONF,
    DEFAULT_DECK_CONFIG_ID,
    DEFAULT_DECK_ID,
    DEFAULT_DECK_NAME,
    DEFAULT_FIELD_FONT,
    DEFAULT_FIELD_SIZE,
    EMPTY_TAG_REGISTRY,
    FIELD_SEPARATOR,
    LATEX_POST,
    LATEX_PRE,
    MODEL_TYPE_STANDARD,
    SCHEMA_VERSION,
    USN_PENDING,
)
from .definition import (
    DeckDef,
    DeckDefinition,
    FieldConverter,
    ModelDef,
    NoteDef,
    TemplateDef,
)
from .identifiers import derive_checksum, derive_guid
from .utils.logging import get_logger

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Resolve-or-derive rules
# ---------------------------------------------------------------------------


def resolve_css(model: ModelDef) -> str:
    """Model CSS, else the default stylesheet."""
    return model.css if model.css is not None else DEFAULT_CSS


def resolve_description(deck: DeckDef) -> str:
    """Deck description, else an empty string."""
    return deck.description if deck.description is not None else ""


def resolve_guid(note: NoteDef, note_id: int) -> str:
    """Note GUID, else one derived from the note id."""
    return note.guid if note.guid is not None else derive_guid(note_id)


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class IdSequence:
    """Monotonic id source scoped to one build."""

    next_value: int

    def take(self) -> tuple[int, IdSequence]:
        """Return the next id and the advanced sequence."""
        return self.next_value, IdSequence(self.next_value + 1)


@dataclass(frozen=True)
class Requirement:
    """Which fields must be non-empty for a template to produce a card."""

    template_ord: int
    kind: str
    field_ords: tuple[int, ...]

    def to_json(self) -> list[Any]:
        return [self.template_ord, self.kind, list(self.field_ords)]


@dataclass(frozen=True)
class FieldRecord:
    name: str
    ord: int
    sticky: bool = False
    rtl: bool = False
    font: str = DEFAULT_FIELD_FONT
    size: int = DEFAULT_FIELD_SIZE

    def to_json(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "ord": self.ord,
            "sticky": self.sticky,
            "rtl": self.rtl,
            "font": self.font,
            "size": self.size,
            "media": [],
        }


@dataclass(frozen=True)
class TemplateRecord:
    name: str
    ord: int
    qfmt: str
    afmt: str

    def to_json(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "ord": self.ord,
            "qfmt": self.qfmt,
            "afmt": self.afmt,
            "bqfmt": "",
            "bafmt": "",
            "did": None,
            "bfont": "",
            "bsize": 0,
        }


@dataclass(frozen=True)
class ModelRecord:
    """Note type as stored in ``col.models``."""

    id: int
    name: str
    mod: int
    sort_field: int
    css: str
    fields: tuple[FieldRecord, ...]
    templates: tuple[TemplateRecord, ...]
    requirements: tuple[Requirement, ...]

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": MODEL_TYPE_STANDARD,
            "mod": self.mod,
            "usn": USN_PENDING,
            "sortf": self.sort_field,
            "did": None,
            "tmpls": [t.to_json() for t in self.templates],
            "flds": [f.to_json() for f in self.fields],
            "css": self.css,
            "latexPre": LATEX_PRE,
            "latexPost": LATEX_POST,
            "latexsvg": False,
            "req": [r.to_json() for r in self.requirements],
        }


@dataclass(frozen=True)
class DeckRecord:
    """Deck as stored in ``col.decks``."""

    id: int
    name: str
    mod: int
    description: str = ""

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "mod": self.mod,
            "name": self.name,
            "usn": USN_PENDING,
            "lrnToday": [0, 0],
            "revToday": [0, 0],
            "newToday": [0, 0],
            "timeToday": [0, 0],
            "collapsed": False,
            "browserCollapsed": False,
            "desc": self.description,
            "dyn": 0,
            "conf": DEFAULT_DECK_CONFIG_ID,
            "extendNew": 10,
            "extendRev": 50,
        }


@dataclass(frozen=True)
class NoteRow:
    id: int
    guid: str
    model_id: int
    mod: int
    tags: str
    fields: str
    sort_field: str
    checksum: int

    def as_params(self) -> tuple[Any, ...]:
        """Values for the ``notes`` insert, in column order."""
        return (
            self.id,
            self.guid,
            self.model_id,
            self.mod,
            USN_PENDING,
            self.tags,
            self.fields,
            self.sort_field,
            self.checksum,
            0,
            "",
        )


@dataclass(frozen=True)
class CardRow:
    id: int
    note_id: int
    deck_id: int
    ord: int
    mod: int

    def as_params(self) -> tuple[Any, ...]:
        """Values for the ``cards`` insert, in column order.

        A new card: type and queue in the new state, every scheduling
        counter zeroed.
        """
        return (
            self.id,
            self.note_id,
            self.deck_id,
            self.ord,
            self.mod,
            USN_PENDING,
            CARD_TYPE_NEW,
            CARD_QUEUE_NEW,
            0,  # due
            0,  # ivl
            0,  # factor
            0,  # reps
            0,  # lapses
            0,  # left
            0,  # odue
            0,  # odid
            0,  # flags
            "",
        )


@dataclass(frozen=True)
class CollectionRow:
    """The single ``col`` row."""

    created: int
    modified_ms: int
    models: tuple[ModelRecord, ...]
    decks: tuple[DeckRecord, ...]

    def models_json(self) -> str:
        return json.dumps({str(m.id): m.to_json() for m in self.models})

    def decks_json(self) -> str:
        return json.dumps({str(d.id): d.to_json() for d in self.decks})

    def as_params(self) -> tuple[Any, ...]:
        """Values for the ``col`` insert, in column order."""
        return (
            1,
            self.created,
            self.modified_ms,
            self.modified_ms,
            SCHEMA_VERSION,
            0,
            USN_PENDING,
            0,
            DEFAULT_CONF,
            self.models_json(),
            self.decks_json(),
            DEFAULT_DCONF,
            EMPTY_TAG_REGISTRY,
        )


@dataclass
class MaterializedCollection:
    """Everything the archive assembler inserts for one build."""

    timestamp: int
    collection: CollectionRow
    notes: list[NoteRow] = field(default_factory=list)
    cards: list[CardRow] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def build_requirements(
    templates: list[TemplateDef], fields: list[str]
) -> tuple[Requirement, ...]:
    """Derive the requirement entry of each template from its front text.

    A field is required when ``{{Name}}`` appears literally in the front
    template. A template referencing no known field falls back to requiring
    the first field.
    """
    requirements = []
    for ord_, template in enumerate(templates):
        referenced = tuple(
            index
            for index, name in enumerate(fields)
            if f"{{{{{name}}}}}" in template.front
        )
        requirements.append(Requirement(ord_, "any", referenced or (0,)))
    return tuple(requirements)


def build_model_record(model: ModelDef, now: int) -> ModelRecord:
    """Build the stored form of one note type."""
    return ModelRecord(
        id=model.resolved_id(),
        name=model.name,
        mod=now,
        sort_field=model.sort_field_index(),
        css=resolve_css(model),
        fields=tuple(FieldRecord(name, i) for i, name in enumerate(model.fields)),
        templates=tuple(
            TemplateRecord(t.name, i, t.front, t.back)
            for i, t in enumerate(model.templates)
        ),
        requirements=build_requirements(model.templates, model.fields),
    )


def build_deck_records(decks: list[DeckDef], now: int) -> tuple[DeckRecord, ...]:
    """Build the stored decks, reserved default deck first.

    A declared deck that resolves to the reserved id replaces the default.
    """
    records: dict[int, DeckRecord] = {
        DEFAULT_DECK_ID: DeckRecord(DEFAULT_DECK_ID, DEFAULT_DECK_NAME, now)
    }
    for deck in decks:
        deck_id = deck.resolved_id()
        records[deck_id] = DeckRecord(
            deck_id, deck.name, now, resolve_description(deck)
        )
    return tuple(records.values())


def build_note_row(
    note: NoteDef,
    model: ModelDef,
    note_id: int,
    now: int,
    converter: FieldConverter | None = None,
) -> NoteRow:
    """Build one note row.

    Fields are joined in model order with the unit separator; fields the note
    does not set are stored as empty strings.
    """
    if model.markdown_fields and converter is None:
        logger.debug(
            "field_conversion_skipped",
            model=model.name,
            fields=model.markdown_fields,
        )
    presented = note.fields_as_presented(model.markdown_fields, converter)
    values = [presented.get(name, "") for name in model.fields]
    sort_field = values[model.sort_field_index()] if values else ""

    return NoteRow(
        id=note_id,
        guid=resolve_guid(note, note_id),
        model_id=model.resolved_id(),
        mod=now,
        tags=note.tags_string(),
        fields=FIELD_SEPARATOR.join(values),
        sort_field=sort_field,
        checksum=derive_checksum(sort_field),
    )


def materialize(
    definition: DeckDefinition,
    timestamp: int | None = None,
    converter: FieldConverter | None = None,
) -> MaterializedCollection:
    """Build every row of a collection from a definition.

    Args:
        definition: Validated deck definition
        timestamp: Build time in seconds; defaults to now
        converter: Applied to each model's ``markdown_fields`` before joining

    Returns:
        Collection row plus note and card rows in declaration order

    Raises:
        ModelNotFoundError: If a note names an undeclared model
        DeckNotFoundError: If a note names an undeclared deck
    """
    now = int(time.time()) if timestamp is None else timestamp
    seed = now * 1000

    collection = CollectionRow(
        created=now,
        modified_ms=seed,
        models=tuple(build_model_record(m, now) for m in definition.models),
        decks=build_deck_records(definition.decks, now),
    )
    result = MaterializedCollection(timestamp=now, collection=collection)

    note_ids = IdSequence(seed)
    card_ids = IdSequence(seed)

    for note in definition.notes:
        model = definition.get_model(note.model)
        deck_id = definition.get_deck(note.deck).resolved_id()

        note_id, note_ids = note_ids.take()
        result.notes.append(build_note_row(note, model, note_id, now, converter))

        for ord_ in range(len(model.templates)):
            card_id, card_ids = card_ids.take()
            result.cards.append(CardRow(card_id, note_id, deck_id, ord_, now))

    logger.info(
        "collection_materialized",
        models=len(collection.models),
        decks=len(collection.decks),
        notes=len(result.notes),
        cards=len(result.cards),
    )
    return result
