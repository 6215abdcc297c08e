"""Pydantic models for document tokens.

Hierarchy:
  ParsedToken            - {category, field} identity read back from a token literal.
  Token                  - metadata of one bound token, keyed by its anchor id.
  TokenOccurrence        - a token literal found in the document body.
  ExtractedToken         - a token literal found in free text (e.g. generated output).
  TokenValidationResult  - valid / invalid tokens plus warnings.
  FieldSuggestion        - an autodetect match proposing a token.
  TokenChange            - a populated token whose record value changed.
  RecordLink             - the record the document was last populated from.
  PopulateResult         - outcome of one populate run.
"""

from enum import Enum

from pydantic import BaseModel, Field

from shared.clients.plm.models.Field import FieldDefinition, FieldType


class TokenProvenance(str, Enum):
    MANUAL = "manual"
    AI_GENERATED = "ai-generated"
    AUTODETECTED = "autodetected"


class ParsedToken(BaseModel):
    category: str
    field: str


class Token(BaseModel):
    """Metadata of one token. id is the identifier of the anchor covering it."""

    id: str
    text: str
    category_name: str
    category_id: str
    field_name: str
    field_type: FieldType = FieldType.STANDARD
    attribute_id: str | None = None
    created_at: float
    provenance: TokenProvenance = TokenProvenance.MANUAL

    # autodetected tokens only
    matched_text: str | None = None
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)

    # text substituted at the last populate/update
    last_value: str | None = None

    def to_field(self) -> FieldDefinition:
        return FieldDefinition(name=self.field_name, field_type=self.field_type, attribute_id=self.attribute_id)


class TokenOccurrence(BaseModel):
    text: str
    category: str
    field: str
    start: int
    end: int


class ExtractedToken(BaseModel):
    text: str
    category: str
    field: str
    offset: int


class InvalidToken(BaseModel):
    text: str
    category: str | None = None
    field: str | None = None
    reasons: list[str] = []


class TokenValidationResult(BaseModel):
    valid: list[ExtractedToken] = []
    invalid: list[InvalidToken] = []
    warnings: list[str] = []

    @property
    def is_valid(self) -> bool:
        return not self.invalid


class FieldSuggestion(BaseModel):
    field_name: str
    field_type: FieldType = FieldType.STANDARD
    attribute_id: str | None = None
    matched_text: str
    start: int
    end: int
    confidence: float = Field(ge=0.0, le=1.0)
    pattern: str


class TokenChange(BaseModel):
    token_id: str
    token_text: str
    field_name: str
    current_value: str
    new_value: str


class RecordLink(BaseModel):
    record_id: str
    record_number: str | None = None
    populated_at: float


class PopulateResult(BaseModel):
    record: RecordLink
    replaced: int = 0
    unresolved: list[str] = []
