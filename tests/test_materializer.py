"""Tests for turning deck definitions into collection rows."""

import json

import pytest

from anki_deck_builder.collection_schema import (
    DEFAULT_CSS,
    DEFAULT_DECK_ID,
    SCHEMA_VERSION,
)
from anki_deck_builder.definition import (
    DeckDef,
    DeckDefinition,
    ModelDef,
    NoteDef,
    PackageInfo,
    TemplateDef,
)
from anki_deck_builder.error_codes import ErrorCode
from anki_deck_builder.exceptions import (
    DeckNotFoundError,
    DefinitionError,
    ModelNotFoundError,
)
from anki_deck_builder.identifiers import derive_checksum, derive_guid, derive_id
from anki_deck_builder.materializer import (
    IdSequence,
    build_deck_records,
    build_requirements,
    materialize,
)


@pytest.fixture
def two_template_model():
    return ModelDef(
        name="Basic (and reversed card)",
        fields=["Front", "Back"],
        templates=[
            TemplateDef(name="Card 1", front="{{Front}}", back="{{Back}}"),
            TemplateDef(name="Card 2", front="{{Back}}", back="{{Front}}"),
        ],
    )


class TestIdSequence:
    def test_take_advances(self) -> None:
        seq = IdSequence(100)
        first, seq = seq.take()
        second, seq = seq.take()
        assert (first, second) == (100, 101)
        assert seq.next_value == 102


class TestRequirements:
    """Test per-template field requirements."""

    def test_fields_found_in_front(self) -> None:
        templates = [
            TemplateDef(name="Card 1", front="{{Front}} / {{Extra}}", back="")
        ]
        reqs = build_requirements(templates, ["Front", "Back", "Extra"])
        assert [r.to_json() for r in reqs] == [[0, "any", [0, 2]]]

    def test_back_only_references_ignored(self) -> None:
        templates = [TemplateDef(name="Card 1", front="{{Front}}", back="{{Back}}")]
        reqs = build_requirements(templates, ["Front", "Back"])
        assert reqs[0].field_ords == (0,)

    def test_fallback_to_first_field(self) -> None:
        templates = [TemplateDef(name="Card 1", front="static text", back="")]
        reqs = build_requirements(templates, ["Front", "Back"])
        assert reqs[0].to_json() == [0, "any", [0]]

    def test_one_entry_per_template(self, two_template_model) -> None:
        reqs = build_requirements(
            two_template_model.templates, two_template_model.fields
        )
        assert [r.to_json() for r in reqs] == [[0, "any", [0]], [1, "any", [1]]]


class TestDeckRecords:
    """Test reserved default deck handling."""

    def test_default_deck_first(self) -> None:
        records = build_deck_records([DeckDef(name="Test")], 10)
        assert records[0].id == DEFAULT_DECK_ID
        assert records[0].name == "Default"
        assert records[1].id == derive_id("Test")

    def test_declared_reserved_id_replaces_default(self) -> None:
        records = build_deck_records([DeckDef(name="Main", id=1)], 10)
        assert len(records) == 1
        assert records[0].name == "Main"

    def test_description_defaults_to_empty(self) -> None:
        records = build_deck_records([DeckDef(name="Test")], 10)
        assert records[1].to_json()["desc"] == ""


class TestMaterialize:
    """Test full collection materialization."""

    def test_deterministic_for_fixed_timestamp(
        self, basic_definition, fixed_timestamp
    ) -> None:
        first = materialize(basic_definition, fixed_timestamp)
        second = materialize(basic_definition, fixed_timestamp)
        assert first == second

    def test_structure_stable_across_build_times(
        self, basic_definition, fixed_timestamp
    ) -> None:
        """Rebuilding later changes timestamps and row ids, never the structure."""
        first = materialize(basic_definition, fixed_timestamp)
        later = materialize(basic_definition, fixed_timestamp + 86_400)

        first_models = json.loads(first.collection.models_json())
        later_models = json.loads(later.collection.models_json())
        assert list(first_models) == list(later_models)
        for model_id, model in first_models.items():
            other = later_models[model_id]
            assert model["id"] == other["id"]
            for key in ("req", "flds", "tmpls", "css", "sortf"):
                assert model[key] == other[key]
            assert model["mod"] != other["mod"]

        first_decks = json.loads(first.collection.decks_json())
        later_decks = json.loads(later.collection.decks_json())
        assert list(first_decks) == list(later_decks)
        assert [d["name"] for d in first_decks.values()] == [
            d["name"] for d in later_decks.values()
        ]

        assert [n.fields for n in first.notes] == [n.fields for n in later.notes]
        assert [n.checksum for n in first.notes] == [n.checksum for n in later.notes]
        assert [c.deck_id for c in first.cards] == [c.deck_id for c in later.cards]
        assert first.notes[0].id != later.notes[0].id

    def test_collection_row(self, basic_definition, fixed_timestamp) -> None:
        result = materialize(basic_definition, fixed_timestamp)
        params = result.collection.as_params()

        assert params[0] == 1
        assert params[1] == fixed_timestamp
        assert params[2] == fixed_timestamp * 1000
        assert params[3] == fixed_timestamp * 1000
        assert params[4] == SCHEMA_VERSION
        assert params[6] == -1
        assert params[12] == "{}"

    def test_models_json(self, basic_definition, fixed_timestamp) -> None:
        result = materialize(basic_definition, fixed_timestamp)
        models = json.loads(result.collection.models_json())
        model_id = str(derive_id("Basic"))

        assert list(models) == [model_id]
        model = models[model_id]
        assert model["name"] == "Basic"
        assert model["css"] == DEFAULT_CSS
        assert [f["name"] for f in model["flds"]] == ["Front", "Back"]
        assert [f["ord"] for f in model["flds"]] == [0, 1]
        assert model["tmpls"][0]["qfmt"] == "{{Front}}"
        assert model["tmpls"][0]["afmt"] == "{{FrontSide}}<hr>{{Back}}"
        assert model["req"] == [[0, "any", [0]]]
        assert model["sortf"] == 0

    def test_decks_json(self, basic_definition, fixed_timestamp) -> None:
        result = materialize(basic_definition, fixed_timestamp)
        decks = json.loads(result.collection.decks_json())

        assert list(decks) == ["1", str(derive_id("Test"))]
        assert decks[str(derive_id("Test"))]["desc"] == "A test deck"

    def test_note_rows(self, basic_definition, fixed_timestamp) -> None:
        result = materialize(basic_definition, fixed_timestamp)
        seed = fixed_timestamp * 1000

        assert [n.id for n in result.notes] == [seed, seed + 1]
        first = result.notes[0]
        assert first.fields == "What is 2+2?\x1f4"
        assert first.sort_field == "What is 2+2?"
        assert first.checksum == derive_checksum("What is 2+2?")
        assert first.guid == derive_guid(seed)
        assert first.tags == " test example "
        assert first.model_id == derive_id("Basic")
        assert result.notes[1].tags == ""

    def test_note_and_card_ids_are_independent(
        self, two_template_model, fixed_timestamp
    ) -> None:
        definition = DeckDefinition(
            package=PackageInfo(name="Pkg"),
            models=[two_template_model],
            decks=[DeckDef(name="D")],
            notes=[
                NoteDef(deck="D", model=two_template_model.name, fields={"Front": "a"}),
                NoteDef(deck="D", model=two_template_model.name, fields={"Front": "b"}),
            ],
        )
        result = materialize(definition, fixed_timestamp)
        seed = fixed_timestamp * 1000

        assert [n.id for n in result.notes] == [seed, seed + 1]
        assert [c.id for c in result.cards] == [seed + i for i in range(4)]
        assert [(c.note_id, c.ord) for c in result.cards] == [
            (seed, 0),
            (seed, 1),
            (seed + 1, 0),
            (seed + 1, 1),
        ]
        assert {c.deck_id for c in result.cards} == {derive_id("D")}

    def test_missing_field_stored_empty(self, basic_definition, fixed_timestamp) -> None:
        definition = basic_definition.model_copy(
            update={
                "notes": [NoteDef(deck="Test", model="Basic", fields={"Front": "Q"})]
            }
        )
        result = materialize(definition, fixed_timestamp)
        assert result.notes[0].fields == "Q\x1f"

    def test_cards_in_new_state(self, basic_definition, fixed_timestamp) -> None:
        result = materialize(basic_definition, fixed_timestamp)
        for card in result.cards:
            params = card.as_params()
            # usn, type, queue, due, ivl, factor, reps, lapses, left, odue, odid
            assert params[5] == -1
            assert params[6:17] == (0,) * 11
            assert params[17] == ""

    def test_explicit_guid_kept(self, basic_definition, fixed_timestamp) -> None:
        definition = basic_definition.model_copy(
            update={
                "notes": [
                    NoteDef(
                        deck="Test",
                        model="Basic",
                        fields={"Front": "Q", "Back": "A"},
                        guid="fixed-guid",
                    )
                ]
            }
        )
        result = materialize(definition, fixed_timestamp)
        assert result.notes[0].guid == "fixed-guid"

    def test_explicit_ids_used(self, fixed_timestamp) -> None:
        definition = DeckDefinition(
            package=PackageInfo(name="Pkg"),
            models=[
                ModelDef(
                    name="M",
                    id=1234,
                    fields=["F"],
                    templates=[TemplateDef(name="T", front="{{F}}", back="")],
                )
            ],
            decks=[DeckDef(name="D", id=5678)],
            notes=[NoteDef(deck="D", model="M", fields={"F": "x"})],
        )
        result = materialize(definition, fixed_timestamp)
        assert result.notes[0].model_id == 1234
        assert result.cards[0].deck_id == 5678

    def test_sort_field(self, fixed_timestamp) -> None:
        definition = DeckDefinition(
            package=PackageInfo(name="Pkg"),
            models=[
                ModelDef(
                    name="M",
                    fields=["Front", "Back"],
                    sort_field="Back",
                    templates=[TemplateDef(name="T", front="{{Front}}", back="")],
                )
            ],
            decks=[DeckDef(name="D")],
            notes=[NoteDef(deck="D", model="M", fields={"Front": "q", "Back": "<i>a</i>"})],
        )
        result = materialize(definition, fixed_timestamp)
        note = result.notes[0]
        assert note.sort_field == "<i>a</i>"
        assert note.checksum == derive_checksum("a")

        model = json.loads(result.collection.models_json())[str(derive_id("M"))]
        assert model["sortf"] == 1

    def test_markdown_fields_converted(self, basic_definition, fixed_timestamp) -> None:
        basic_definition.set_markdown_fields("Basic", ["Back"])
        result = materialize(
            basic_definition, fixed_timestamp, converter=lambda v: f"<p>{v}</p>"
        )
        assert result.notes[0].fields == "What is 2+2?\x1f<p>4</p>"

    def test_markdown_fields_without_converter_pass_through(
        self, basic_definition, fixed_timestamp
    ) -> None:
        basic_definition.set_markdown_fields("Basic", ["Back"])
        result = materialize(basic_definition, fixed_timestamp)
        assert result.notes[0].fields == "What is 2+2?\x1f4"

    def test_default_timestamp_used(self, basic_definition) -> None:
        result = materialize(basic_definition)
        assert result.timestamp > 1_600_000_000
        assert result.notes[0].id == result.timestamp * 1000

    def test_empty_definition(self, fixed_timestamp) -> None:
        result = materialize(DeckDefinition(package=PackageInfo(name="Empty")), fixed_timestamp)
        assert result.notes == []
        assert result.cards == []
        assert [d.id for d in result.collection.decks] == [1]


class TestDefinitionErrors:
    """Test lookups that miss."""

    def test_missing_model(self, basic_definition, fixed_timestamp) -> None:
        definition = basic_definition.model_copy(
            update={"notes": [NoteDef(deck="Test", model="Nope", fields={})]}
        )
        with pytest.raises(ModelNotFoundError) as exc_info:
            materialize(definition, fixed_timestamp)

        assert exc_info.value.model_name == "Nope"
        assert exc_info.value.error_code == ErrorCode.DEF_MODEL_NOT_FOUND.value
        assert "model not found: Nope" in str(exc_info.value)

    def test_missing_deck(self, basic_definition, fixed_timestamp) -> None:
        definition = basic_definition.model_copy(
            update={"notes": [NoteDef(deck="Nope", model="Basic", fields={})]}
        )
        with pytest.raises(DeckNotFoundError) as exc_info:
            materialize(definition, fixed_timestamp)

        assert isinstance(exc_info.value, DefinitionError)
        assert exc_info.value.context == {"deck": "Nope"}
