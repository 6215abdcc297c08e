from unittest.mock import AsyncMock, MagicMock

import pytest

from services.tokens.TokenEngine import TOKEN_STYLE, TokenEngine
from services.tokens.TokenStore import TokenStore
from shared.clients.plm.models.Field import FieldType
from shared.clients.plm.models.Item import ItemAttribute, ItemDetails
from shared.document.InMemoryDocument import InMemoryDocument
from shared.models.errors import InputValidationError
from shared.models.token import TokenProvenance

NAME = "{{ARENA:Resistor:Name}}"
REVISION = "{{ARENA:Resistor:Revision}}"
TOLERANCE = "{{ARENA:Resistor:Tolerance}}"


def _record(revision: str = "A", tolerance: str | None = "5%") -> ItemDetails:
    attributes = [ItemAttribute(id="ATTR1", name="Tolerance", value=tolerance)] if tolerance is not None else []
    return ItemDetails(
        engine="Arena",
        id="ITEM1",
        number="100-0001",
        name="Resistor 10k",
        revision=revision,
        category_id="CAT1",
        category_name="Resistor",
        attributes=attributes,
    )


@pytest.fixture
def plm_client():
    client = MagicMock()
    client.do_fetch_item_details = AsyncMock(return_value=_record())
    return client


@pytest.fixture
def document(document_store):
    return InMemoryDocument("Title: ", properties=document_store, cursor=7)


@pytest.fixture
def token_store(helper_config, document):
    return TokenStore(helper_config=helper_config, store=document.get_properties())


@pytest.fixture
def engine(helper_config, document, token_store, plm_client, clock):
    return TokenEngine(helper_config=helper_config, document=document, token_store=token_store, plm_client=plm_client, clock=clock)


def test_insert_at_cursor_styles_anchors_and_stores(engine, document, token_store, clock):
    token = engine.insert_token_at_cursor("Resistor", "CAT1", "Name")

    assert document.get_text() == "Title: " + NAME
    assert document.get_cursor() == len(document.get_text())
    for offset in range(7, 7 + len(NAME)):
        assert document.get_text_style(offset) == TOKEN_STYLE
    assert document.get_text_style(6) is None

    rng = document.get_anchor_range(token.id)
    assert document.get_text()[rng.start:rng.end] == NAME
    stored = token_store.get_token(token.id)
    assert stored.category_id == "CAT1"
    assert stored.created_at == clock()
    assert stored.provenance == TokenProvenance.MANUAL


def test_insert_without_cursor_fails(engine, document):
    document.set_cursor(None)
    with pytest.raises(InputValidationError):
        engine.insert_token_at_cursor("Resistor", "CAT1", "Name")


def test_find_all_tokens_returns_positions(engine, document):
    document.insert_text(7, f"{NAME} and {{{{ARENA:broken}}}} and {REVISION}")
    found = engine.find_all_tokens_in_document()
    assert [(t.field, t.start) for t in found] == [("Name", 7), ("Revision", 7 + len(NAME) + len(" and {{ARENA:broken}} and "))]


def test_substitute_replaces_every_occurrence(engine, document):
    document.insert_text(7, f"{NAME} / {NAME} / {NAME}")
    document.set_text_style(7, len(document.get_text()), TOKEN_STYLE)

    assert engine.substitute_token(NAME, "R-10k") == 3
    assert document.get_text() == "Title: R-10k / R-10k / R-10k"
    assert document.get_text_style(7) is None


def test_substitute_without_occurrences_returns_zero(engine, document):
    assert engine.substitute_token(NAME, "x") == 0
    assert document.get_text() == "Title: "


def test_substitute_with_value_containing_literal_terminates(engine, document):
    document.insert_text(7, NAME)
    assert engine.substitute_token(NAME, f"<{NAME}>") == 1
    assert document.get_text() == f"Title: <{NAME}>"


def test_substitute_can_keep_formatting(engine, document):
    document.insert_text(7, NAME)
    document.set_text_style(7, 7 + len(NAME), TOKEN_STYLE)
    engine.substitute_token(NAME, "R-10k", strip_formatting=False)
    assert document.get_text_style(7) == TOKEN_STYLE


@pytest.mark.asyncio
async def test_populate_substitutes_and_links_record(engine, document, token_store, plm_client, clock):
    engine.insert_token_at_cursor("Resistor", "CAT1", "Name")
    engine.insert_token_at_cursor("Resistor", "CAT1", "Tolerance", FieldType.CUSTOM, "ATTR1")
    document.insert_text(len(document.get_text()), f" {REVISION}")

    result = await engine.populate_from_record("ITEM1")

    plm_client.do_fetch_item_details.assert_awaited_once_with("ITEM1")
    assert document.get_text() == "Title: Resistor 10k5% A"
    assert result.replaced == 3
    assert result.unresolved == []
    link = engine.get_linked_record()
    assert (link.record_id, link.record_number, link.populated_at) == ("ITEM1", "100-0001", clock())
    assert {t.field_name: t.last_value for t in token_store.get_all_tokens()} == {"Name": "Resistor 10k", "Tolerance": "5%"}


@pytest.mark.asyncio
async def test_populate_leaves_unresolvable_tokens(engine, document, plm_client):
    plm_client.do_fetch_item_details.return_value = _record(tolerance=None)
    engine.insert_token_at_cursor("Resistor", "CAT1", "Tolerance", FieldType.CUSTOM, "ATTR1")

    result = await engine.populate_from_record("ITEM1")

    assert result.unresolved == [TOLERANCE]
    assert document.get_text() == "Title: " + TOLERANCE


@pytest.mark.asyncio
async def test_detect_changes_reports_only_changed_populated_tokens(engine, plm_client):
    engine.insert_token_at_cursor("Resistor", "CAT1", "Revision")
    await engine.populate_from_record("ITEM1")
    engine.insert_token_at_cursor("Resistor", "CAT1", "Name")

    plm_client.do_fetch_item_details.return_value = _record(revision="B")
    changes = await engine.detect_changes()

    assert len(changes) == 1
    assert (changes[0].field_name, changes[0].current_value, changes[0].new_value) == ("Revision", "A", "B")


@pytest.mark.asyncio
async def test_detect_changes_falls_back_to_last_value_when_anchor_lost(engine, document, token_store, plm_client):
    token = engine.insert_token_at_cursor("Resistor", "CAT1", "Revision")
    await engine.populate_from_record("ITEM1")
    document.remove_anchor(token.id)

    plm_client.do_fetch_item_details.return_value = _record(revision="B")
    changes = await engine.detect_changes("ITEM1")
    assert [c.current_value for c in changes] == ["A"]


@pytest.mark.asyncio
async def test_detect_changes_without_linked_record_fails(engine):
    with pytest.raises(InputValidationError):
        await engine.detect_changes()


@pytest.mark.asyncio
async def test_update_rewrites_changed_values(engine, document, token_store, plm_client, clock):
    engine.insert_token_at_cursor("Resistor", "CAT1", "Revision")
    await engine.populate_from_record("ITEM1")
    assert document.get_text() == "Title: A"

    plm_client.do_fetch_item_details.return_value = _record(revision="B2")
    clock.advance(100)
    changes = await engine.update_from_record()

    assert len(changes) == 1
    assert document.get_text() == "Title: B2"
    assert token_store.get_all_tokens()[0].last_value == "B2"
    assert engine.get_linked_record().populated_at == clock()
    assert await engine.detect_changes() == []


@pytest.mark.asyncio
async def test_empty_value_keeps_literal_until_record_has_one(engine, document, token_store, plm_client):
    token = engine.insert_token_at_cursor("Resistor", "CAT1", "Revision")
    plm_client.do_fetch_item_details.return_value = _record(revision="")

    result = await engine.populate_from_record("ITEM1")

    assert result.unresolved == [REVISION]
    assert result.replaced == 0
    assert document.get_text() == "Title: " + REVISION
    assert document.get_anchor_range(token.id) is not None

    plm_client.do_fetch_item_details.return_value = _record(revision="B")
    assert await engine.detect_changes() == []
    changes = await engine.update_from_record()

    assert document.get_text() == "Title: B"
    assert [(c.field_name, c.new_value) for c in changes] == [("Revision", "B")]
    assert token_store.get_token(token.id).last_value == "B"


@pytest.mark.asyncio
async def test_update_keeps_value_when_record_field_is_emptied(engine, document, plm_client):
    engine.insert_token_at_cursor("Resistor", "CAT1", "Revision")
    await engine.populate_from_record("ITEM1")

    plm_client.do_fetch_item_details.return_value = _record(revision="")
    assert await engine.update_from_record() == []
    assert document.get_text() == "Title: A"


def test_insert_generated_text_binds_known_tokens(engine, document, field_set, token_store):
    text = f"Part {{{{ARENA:Resistor:Part Number}}}} rev {REVISION}, color {{{{ARENA:Resistor:Color}}}}, {{{{ARENA:Capacitor:Name}}}}"
    tokens = engine.insert_generated_text(text, field_set)

    assert document.get_text() == "Title: " + text
    assert [t.field_name for t in tokens] == ["Part Number", "Revision"]
    assert all(t.provenance == TokenProvenance.AI_GENERATED for t in tokens)
    for token in tokens:
        rng = document.get_anchor_range(token.id)
        assert document.get_text()[rng.start:rng.end] == token.text
    assert len(token_store.get_all_tokens()) == 2


def test_delete_token_keeps_text_unless_asked(engine, document, token_store):
    first = engine.insert_token_at_cursor("Resistor", "CAT1", "Name")
    second = engine.insert_token_at_cursor("Resistor", "CAT1", "Revision")

    assert engine.delete_token(first.id) is True
    assert NAME in document.get_text()
    assert document.get_anchor_range(first.id) is None

    assert engine.delete_token(second.id, remove_text=True) is True
    assert REVISION not in document.get_text()
    assert token_store.get_all_tokens() == []
    assert engine.delete_token("anchor.unknown") is False


def test_clear_all_tokens_keeps_literals(engine, document, token_store):
    engine.insert_token_at_cursor("Resistor", "CAT1", "Name")
    engine.insert_token_at_cursor("Resistor", "CAT1", "Revision")

    assert engine.clear_all_tokens() == 2
    assert token_store.get_all_tokens() == []
    assert document.get_text() == f"Title: {NAME}{REVISION}"


def test_validate_tokens_delegates(engine, field_set):
    result = engine.validate_tokens(["{{ARENA:Resistor:PartNumber}}"], "Capacitor", field_set.field_names())
    assert len(result.invalid) == 1 and result.valid == []
