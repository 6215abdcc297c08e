"""Token literal syntax: {{ARENA:<category>:<field>}}."""

import re

from shared.models.errors import InputValidationError
from shared.models.token import ExtractedToken, InvalidToken, ParsedToken, TokenValidationResult

TOKEN_PREFIX = "{{ARENA:"
TOKEN_SEPARATOR = ":"
TOKEN_SUFFIX = "}}"

TOKEN_PATTERN = re.compile(r"\{\{ARENA:([^:}]+):([^:}]+)\}\}")


def create_token_text(category: str, field: str) -> str:
    """
    Formats the literal for a category/field pair.

    Raises:
        InputValidationError: If either name is empty.
    """
    if not (category or "").strip() or not (field or "").strip():
        raise InputValidationError("A token needs both a category and a field name.")
    return f"{TOKEN_PREFIX}{category}{TOKEN_SEPARATOR}{field}{TOKEN_SUFFIX}"


def parse_token_text(text: str) -> ParsedToken | None:
    """
    Parses a literal back into its category and field, or returns None if it is not a token.
    """
    if not text or not text.startswith(TOKEN_PREFIX) or not text.endswith(TOKEN_SUFFIX):
        return None
    if len(text) < len(TOKEN_PREFIX) + len(TOKEN_SUFFIX):
        return None
    parts = text[len(TOKEN_PREFIX):-len(TOKEN_SUFFIX)].split(TOKEN_SEPARATOR)
    if len(parts) != 2 or not parts[0] or not parts[1]:
        return None
    return ParsedToken(category=parts[0], field=parts[1])


def extract_tokens(text: str) -> list[ExtractedToken]:
    """
    Finds every distinct token literal in free text, keeping the offset of its first occurrence.
    """
    seen: dict[str, ExtractedToken] = {}
    for match in TOKEN_PATTERN.finditer(text or ""):
        literal = match.group(0)
        if literal in seen:
            continue
        parsed = parse_token_text(literal)
        if parsed is None:
            continue
        seen[literal] = ExtractedToken(text=literal, category=parsed.category, field=parsed.field, offset=match.start())
    return list(seen.values())


def validate_tokens(
    tokens: list[ExtractedToken | str],
    expected_category: str,
    allowed_fields: list[str],
) -> TokenValidationResult:
    """
    Checks each token against the expected category and the allowed field names
    (case-insensitive). Every invalid token carries all of its reasons.
    """
    allowed = {name.strip().lower(): name for name in allowed_fields}
    result = TokenValidationResult()
    for token in tokens:
        if isinstance(token, str):
            parsed = parse_token_text(token)
            if parsed is None:
                result.invalid.append(InvalidToken(text=token, reasons=["Malformed token literal."]))
                continue
            token = ExtractedToken(text=token, category=parsed.category, field=parsed.field, offset=0)

        reasons = []
        if token.category != expected_category:
            reasons.append(f"Category '{token.category}' does not match the expected category '{expected_category}'.")
        canonical = allowed.get(token.field.strip().lower())
        if canonical is None:
            reasons.append(f"Field '{token.field}' does not exist in category '{expected_category}'.")
        elif canonical != token.field:
            result.warnings.append(f"Field '{token.field}' differs in case from '{canonical}'.")

        if reasons:
            result.invalid.append(InvalidToken(text=token.text, category=token.category, field=token.field, reasons=reasons))
        else:
            result.valid.append(token)

    if not tokens:
        result.warnings.append("No tokens found.")
    return result
