from fastapi import APIRouter, Depends, Request

from server.core.DocumentFactory import open_document
from server.dependencies.auth import verify_api_key
from server.models.requests import PopulateRequest, TextRequest, ValidateTokensRequest
from server.models.responses import PopulateResponse
from services.tokens.TokenSyntax import extract_tokens, validate_tokens
from shared.models.token import ExtractedToken, TokenValidationResult

router = APIRouter(prefix="/tokens", tags=["tokens"])


@router.post("/extract")
async def extract(body: TextRequest, _: None = Depends(verify_api_key)) -> list[ExtractedToken]:
    """Distinct token literals in the text, with the offset of their first occurrence."""
    return extract_tokens(body.text)


@router.post("/validate")
async def validate(
    request: Request,
    body: ValidateTokensRequest,
    _: None = Depends(verify_api_key),
) -> TokenValidationResult:
    """Check tokens (given as literals, or extracted from text) against a category's fields.

    Args:
        request (Request): FastAPI request (provides app.state.catalog_service).
        body (ValidateTokensRequest): Category id plus token literals and/or text.
        _ (None): Auth dependency result (unused).
    """
    field_set = await request.app.state.catalog_service.get_category_field_set(body.category_id)
    tokens: list[ExtractedToken | str] = list(body.tokens)
    if body.text:
        tokens.extend(extract_tokens(body.text))
    return validate_tokens(tokens, field_set.category_name, field_set.field_names())


@router.post("/populate")
async def populate(
    request: Request,
    body: PopulateRequest,
    _: None = Depends(verify_api_key),
) -> PopulateResponse:
    """Replace the tokens in the text with the values of a PLM record."""
    document, engine = open_document(request.app.state.helper_config, body.text, plm_client=request.app.state.plm_client)
    result = await engine.populate_from_record(body.record_id)
    return PopulateResponse(text=document.get_text(), result=result)
