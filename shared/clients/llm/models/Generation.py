from pydantic import BaseModel, Field


class GenerationConfig(BaseModel):
    temperature: float = 0.7
    max_output_tokens: int = 8192
    top_p: float = 0.95
    top_k: int = 40


class GenerationUsage(BaseModel):
    prompt_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0


class GenerationResult(BaseModel):
    """Text produced by one generation call, with the backend's bookkeeping."""

    text: str
    finish_reason: str | None = None
    usage: GenerationUsage = Field(default_factory=GenerationUsage)
