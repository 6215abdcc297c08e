import pytest

from services.autodetect.AutodetectService import AutodetectService
from services.autodetect.FieldMatcher import FuzzyFieldMatcher, normalize_field_name
from services.tokens.TokenEngine import TokenEngine
from services.tokens.TokenStore import TokenStore
from shared.clients.plm.models.Field import FieldDefinition, FieldType
from shared.document.InMemoryDocument import InMemoryDocument
from shared.models.token import TokenProvenance


@pytest.fixture
def matcher():
    return FuzzyFieldMatcher()


def _match(matcher, text, field_set):
    return matcher.match(text, field_set.all_fields())


def test_exact_label_with_blank_scores_full(matcher, field_set):
    suggestions = _match(matcher, "Part Number: ____", field_set)
    assert len(suggestions) == 1
    assert suggestions[0].field_name == "Part Number"
    assert suggestions[0].confidence >= 0.95
    assert suggestions[0].pattern == "exact-colon"
    assert (suggestions[0].start, suggestions[0].end) == (0, 12)


def test_nearby_token_lowers_confidence(matcher, field_set):
    suggestions = _match(matcher, "Part Number: ____ {{ARENA:Resistor:Name}}", field_set)
    assert [s.field_name for s in suggestions] == ["Part Number"]
    assert suggestions[0].confidence == pytest.approx(0.85)


def test_abbreviation_scores_with_bonuses(matcher, field_set):
    suggestions = _match(matcher, "P/N: ____", field_set)
    assert len(suggestions) == 1
    assert suggestions[0].pattern == "abbreviation"
    assert suggestions[0].confidence == pytest.approx(0.93)


def test_synonym_without_bonuses_reaches_threshold(matcher, field_set):
    suggestions = _match(matcher, "The Title of this report is fixed.", field_set)
    assert [(s.field_name, s.pattern) for s in suggestions] == [("Name", "synonym")]
    assert suggestions[0].confidence == pytest.approx(0.75)


def test_low_confidence_matches_are_dropped(matcher, field_set):
    assert _match(matcher, "Title {{ARENA:Resistor:Revision}}", field_set) == []


def test_table_row_gets_bonus(matcher, field_set):
    suggestions = _match(matcher, "| Revision | |", field_set)
    assert len(suggestions) == 1
    assert suggestions[0].field_name == "Revision"
    assert suggestions[0].confidence == pytest.approx(1.0)


def test_matches_inside_literals_are_skipped(matcher, field_set):
    assert _match(matcher, "{{ARENA:Resistor:Revision}}", field_set) == []


def test_custom_field_matches_carry_attribute_id(matcher, field_set):
    suggestions = _match(matcher, "Tolerance: ____", field_set)
    assert len(suggestions) == 1
    assert suggestions[0].field_type == FieldType.CUSTOM
    assert suggestions[0].attribute_id == "ATTR1"


def test_underscore_label_matches(matcher):
    field = FieldDefinition(name="Drawing Number", field_type=FieldType.CUSTOM, attribute_id="ATTR9")
    suggestions = matcher.match("Drawing_Number: ____", [field])
    assert [s.pattern for s in suggestions] == ["underscore-colon"]
    assert suggestions[0].confidence == pytest.approx(0.98)


def test_normalize_field_name():
    assert normalize_field_name("  Part_Number ") == "part number"
    assert normalize_field_name("Lifecycle-Phase") == "lifecycle phase"


@pytest.fixture
def document(document_store):
    return InMemoryDocument("Part Number: ____\nRevision: ____", properties=document_store)


@pytest.fixture
def service(helper_config, document, clock):
    token_store = TokenStore(helper_config=helper_config, store=document.get_properties())
    engine = TokenEngine(helper_config=helper_config, document=document, token_store=token_store, clock=clock)
    return AutodetectService(helper_config=helper_config, document=document, token_engine=engine)


def test_apply_inserts_tokens_after_labels(service, document, field_set):
    suggestions = service.scan(field_set)
    assert {s.field_name for s in suggestions} == {"Part Number", "Revision"}

    tokens = service.apply_suggestions(suggestions, field_set)

    assert document.get_text() == (
        "Part Number: {{ARENA:Resistor:Part Number}} ____\n"
        "Revision: {{ARENA:Resistor:Revision}} ____"
    )
    assert all(t.provenance == TokenProvenance.AUTODETECTED for t in tokens)
    assert {t.matched_text for t in tokens} == {"Part Number:", "Revision:"}
    for token in tokens:
        rng = document.get_anchor_range(token.id)
        assert document.get_text()[rng.start:rng.end] == token.text


def test_apply_skips_stale_suggestions(service, document, field_set):
    suggestions = service.scan(field_set)
    document.replace_text(0, 4, "Item")

    tokens = service.apply_suggestions(suggestions, field_set)

    assert [t.field_name for t in tokens] == ["Revision"]
    assert document.get_text().startswith("Item Number: ____\n")
