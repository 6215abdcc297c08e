from pydantic import BaseModel, Field

from shared.clients.llm.models.Generation import GenerationUsage
from shared.models.token import ExtractedToken, TokenValidationResult


class GeneratedDocument(BaseModel):
    """Generated document text with the tokens found in it."""

    text: str
    tokens: list[ExtractedToken] = []
    validation: TokenValidationResult = Field(default_factory=TokenValidationResult)
    finish_reason: str | None = None
    usage: GenerationUsage = Field(default_factory=GenerationUsage)
