from fastapi import APIRouter, Depends, Request

from server.dependencies.auth import verify_api_key
from server.models.requests import ApiKeyRequest
from server.models.responses import ApiKeyResponse

router = APIRouter(prefix="/settings", tags=["settings"])


@router.put("/api-key")
async def set_api_key(request: Request, body: ApiKeyRequest, _: None = Depends(verify_api_key)) -> ApiKeyResponse:
    llm_client = request.app.state.llm_client
    llm_client.set_api_key(body.api_key)
    return ApiKeyResponse(has_api_key=llm_client.has_api_key())


@router.delete("/api-key")
async def clear_api_key(request: Request, _: None = Depends(verify_api_key)) -> ApiKeyResponse:
    llm_client = request.app.state.llm_client
    llm_client.clear_api_key()
    return ApiKeyResponse(has_api_key=llm_client.has_api_key())
