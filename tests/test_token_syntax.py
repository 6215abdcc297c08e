import pytest

from services.tokens.TokenSyntax import create_token_text, extract_tokens, parse_token_text, validate_tokens
from shared.models.errors import InputValidationError


@pytest.mark.parametrize("category,field", [
    ("Resistor", "Part Number"),
    ("Capacitor", "Tolerance"),
    ("Cable Assembly", "Lifecycle Phase"),
    ("PCB-A", "Rev."),
])
def test_create_then_parse_round_trips(category, field):
    parsed = parse_token_text(create_token_text(category, field))
    assert (parsed.category, parsed.field) == (category, field)


def test_create_formats_literal():
    assert create_token_text("Resistor", "Name") == "{{ARENA:Resistor:Name}}"


@pytest.mark.parametrize("category,field", [("", "Name"), ("Resistor", "  ")])
def test_create_rejects_empty_names(category, field):
    with pytest.raises(InputValidationError):
        create_token_text(category, field)


@pytest.mark.parametrize("text", [
    "",
    "{{ARENA:Resistor}}",
    "{{ARENA:Resistor:Name:Extra}}",
    "{{ARENA::Name}}",
    "{{ARENA:Resistor:}}",
    "{{OTHER:Resistor:Name}}",
    "{{ARENA:Resistor:Name}",
    "ARENA:Resistor:Name",
])
def test_parse_rejects_invalid_literals(text):
    assert parse_token_text(text) is None


def test_extract_dedupes_and_keeps_first_offset():
    text = "A {{ARENA:Resistor:Name}} B {{ARENA:Resistor:Revision}} C {{ARENA:Resistor:Name}}"
    tokens = extract_tokens(text)
    assert [t.text for t in tokens] == ["{{ARENA:Resistor:Name}}", "{{ARENA:Resistor:Revision}}"]
    assert tokens[0].offset == 2
    assert tokens[1].field == "Revision"


def test_extract_ignores_malformed_literals():
    assert extract_tokens("{{ARENA:Resistor}} and {{ARENA:A:B:C}}") == []


def test_validate_reports_category_mismatch():
    result = validate_tokens(["{{ARENA:Resistor:PartNumber}}"], "Capacitor", ["Part Number", "Name"])
    assert result.valid == []
    assert len(result.invalid) == 1
    assert any("does not match the expected category" in reason for reason in result.invalid[0].reasons)


def test_validate_accepts_known_fields_case_insensitively():
    tokens = extract_tokens("{{ARENA:Resistor:part number}} {{ARENA:Resistor:Name}}")
    result = validate_tokens(tokens, "Resistor", ["Part Number", "Name"])
    assert [t.field for t in result.valid] == ["part number", "Name"]
    assert result.invalid == []
    assert len(result.warnings) == 1


def test_validate_reports_unknown_field_and_malformed_literal():
    result = validate_tokens(["{{ARENA:Resistor:Color}}", "{{ARENA:broken}}"], "Resistor", ["Name"])
    assert result.valid == []
    assert [i.text for i in result.invalid] == ["{{ARENA:Resistor:Color}}", "{{ARENA:broken}}"]
    assert "does not exist" in result.invalid[0].reasons[0]
    assert result.invalid[1].reasons == ["Malformed token literal."]


def test_validate_without_tokens_warns():
    result = validate_tokens([], "Resistor", ["Name"])
    assert result.is_valid
    assert result.warnings == ["No tokens found."]
