from fastapi import APIRouter, Depends, Request

from server.dependencies.auth import verify_api_key
from server.models.requests import GenerateRequest
from shared.models.generation import GeneratedDocument

router = APIRouter(prefix="/generate", tags=["generate"])


@router.post("")
async def generate(
    request: Request,
    body: GenerateRequest,
    _: None = Depends(verify_api_key),
) -> GeneratedDocument:
    """Draft a document for a category with tokens already placed.

    Args:
        request (Request): FastAPI request (provides app.state.generation_service).
        body (GenerateRequest): Category id, document type and free-form instructions.
        _ (None): Auth dependency result (unused).
    """
    field_set = await request.app.state.catalog_service.get_category_field_set(body.category_id)
    return await request.app.state.generation_service.generate_document(
        field_set, body.document_type, body.instructions
    )
