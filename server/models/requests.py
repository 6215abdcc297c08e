from pydantic import BaseModel

from shared.models.token import FieldSuggestion


class LoginRequest(BaseModel):
    email: str
    password: str
    workspace_id: str


class TextRequest(BaseModel):
    text: str


class ValidateTokensRequest(BaseModel):
    category_id: str
    tokens: list[str] = []
    text: str | None = None


class PopulateRequest(BaseModel):
    text: str
    record_id: str


class AutodetectRequest(BaseModel):
    text: str
    category_id: str
    apply: bool = False
    accepted: list[FieldSuggestion] | None = None


class GenerateRequest(BaseModel):
    category_id: str
    document_type: str
    instructions: str = ""


class ApiKeyRequest(BaseModel):
    api_key: str
