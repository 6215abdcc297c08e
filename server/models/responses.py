from pydantic import BaseModel

from shared.clients.plm.models.Category import CategoryDetails
from shared.clients.plm.models.Item import ItemDetails
from shared.models.token import FieldSuggestion, PopulateResult, Token


class ErrorResponse(BaseModel):
    error: str
    next_step: str


class SessionResponse(BaseModel):
    logged_in: bool
    email: str | None = None
    workspace_id: str | None = None


class CategoriesResponse(BaseModel):
    categories: list[CategoryDetails]
    total: int


class ItemsResponse(BaseModel):
    query: str
    items: list[ItemDetails]
    total: int


class PopulateResponse(BaseModel):
    text: str
    result: PopulateResult


class AutodetectResponse(BaseModel):
    suggestions: list[FieldSuggestion]
    text: str | None = None
    tokens: list[Token] = []


class ApiKeyResponse(BaseModel):
    has_api_key: bool
