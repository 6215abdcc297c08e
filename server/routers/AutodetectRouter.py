from fastapi import APIRouter, Depends, Request

from server.core.DocumentFactory import open_document
from server.dependencies.auth import verify_api_key
from server.models.requests import AutodetectRequest
from server.models.responses import AutodetectResponse
from services.autodetect.AutodetectService import AutodetectService

router = APIRouter(prefix="/autodetect", tags=["autodetect"])


@router.post("")
async def autodetect(
    request: Request,
    body: AutodetectRequest,
    _: None = Depends(verify_api_key),
) -> AutodetectResponse:
    """Suggest tokens for field labels in the text.

    With apply set, the accepted suggestions (all of them if none are given)
    are inserted and the resulting text is returned.
    """
    helper_config = request.app.state.helper_config
    field_set = await request.app.state.catalog_service.get_category_field_set(body.category_id)
    document, engine = open_document(helper_config, body.text)
    service = AutodetectService(helper_config=helper_config, document=document, token_engine=engine)

    suggestions = service.scan(field_set)
    if not body.apply:
        return AutodetectResponse(suggestions=suggestions)

    accepted = body.accepted if body.accepted is not None else suggestions
    tokens = service.apply_suggestions(accepted, field_set)
    return AutodetectResponse(suggestions=suggestions, text=document.get_text(), tokens=tokens)
