import pytest

from services.tokens.TokenStore import TokenStore
from shared.clients.plm.models.Field import FieldType
from shared.models.token import RecordLink, Token, TokenProvenance


@pytest.fixture
def token_store(helper_config, document_store):
    return TokenStore(helper_config=helper_config, store=document_store)


def _token(token_id: str, field_name: str = "Name", category_id: str = "CAT1") -> Token:
    return Token(
        id=token_id,
        text=f"{{{{ARENA:Resistor:{field_name}}}}}",
        category_name="Resistor",
        category_id=category_id,
        field_name=field_name,
        created_at=1.0,
    )


def test_save_and_get_token(token_store):
    token_store.save_token(_token("anchor.1"))
    token = token_store.get_token("anchor.1")
    assert token.text == "{{ARENA:Resistor:Name}}"
    assert token.provenance == TokenProvenance.MANUAL
    assert token.field_type == FieldType.STANDARD
    assert token_store.get_token_ids() == ["anchor.1"]


def test_category_mapping_tracks_field_to_tokens(token_store):
    token_store.save_token(_token("anchor.1", "Name"))
    token_store.save_token(_token("anchor.2", "Name"))
    token_store.save_token(_token("anchor.3", "Revision"))
    assert token_store.get_category_tokens("CAT1") == {"Name": ["anchor.1", "anchor.2"], "Revision": ["anchor.3"]}


def test_saving_twice_does_not_duplicate(token_store):
    token = _token("anchor.1")
    token_store.save_token(token)
    token.last_value = "R-100"
    token_store.save_token(token)
    assert token_store.get_token_ids() == ["anchor.1"]
    assert token_store.get_token("anchor.1").last_value == "R-100"


def test_delete_token_updates_index_and_mapping(token_store, document_store):
    token_store.save_token(_token("anchor.1", "Name"))
    token_store.save_token(_token("anchor.2", "Revision"))

    assert token_store.delete_token("anchor.1") is True
    assert token_store.get_token("anchor.1") is None
    assert token_store.get_token_ids() == ["anchor.2"]
    assert token_store.get_category_tokens("CAT1") == {"Revision": ["anchor.2"]}

    assert token_store.delete_token("anchor.2") is True
    assert "category_tokens_CAT1" not in document_store
    assert token_store.delete_token("anchor.2") is False


def test_clear_all_removes_everything(token_store, document_store):
    token_store.save_token(_token("anchor.1", category_id="CAT1"))
    token_store.save_token(_token("anchor.2", category_id="CAT2"))
    token_store.save_record_link(RecordLink(record_id="R1", populated_at=1.0))

    assert token_store.clear_all() == 2
    assert token_store.get_all_tokens() == []
    assert "category_tokens_CAT1" not in document_store
    assert "category_tokens_CAT2" not in document_store
    assert token_store.get_record_link().record_id == "R1"


def test_corrupt_metadata_is_skipped(token_store, document_store):
    token_store.save_token(_token("anchor.1"))
    token_store.save_token(_token("anchor.2", "Revision"))
    document_store.set_property("token_anchor.1", '{"id": "anchor.1"}')
    assert [t.id for t in token_store.get_all_tokens()] == ["anchor.2"]


def test_record_link_round_trip(token_store):
    assert token_store.get_record_link() is None
    token_store.save_record_link(RecordLink(record_id="R1", record_number="100-0001", populated_at=5.0))
    link = token_store.get_record_link()
    assert (link.record_id, link.record_number, link.populated_at) == ("R1", "100-0001", 5.0)
    token_store.clear_record_link()
    assert token_store.get_record_link() is None
