from fastapi import APIRouter, Depends, Request

from server.dependencies.auth import verify_api_key
from server.models.responses import CategoriesResponse, ItemsResponse
from shared.clients.plm.models.Field import CategoryFieldSet

router = APIRouter(tags=["catalog"])


@router.get("/categories")
async def list_categories(request: Request, _: None = Depends(verify_api_key)) -> CategoriesResponse:
    """List all PLM categories (cached)."""
    categories = await request.app.state.catalog_service.get_categories()
    return CategoriesResponse(categories=categories, total=len(categories))


@router.get("/categories/{category_id}/fields")
async def get_category_fields(
    request: Request,
    category_id: str,
    _: None = Depends(verify_api_key),
) -> CategoryFieldSet:
    """Standard and custom fields of one category.

    Args:
        request (Request): FastAPI request (provides app.state.catalog_service).
        category_id (str): The PLM category id.
        _ (None): Auth dependency result (unused).
    """
    return await request.app.state.catalog_service.get_category_field_set(category_id)


@router.post("/categories/refresh", status_code=204)
async def refresh_catalog(request: Request, _: None = Depends(verify_api_key)) -> None:
    request.app.state.catalog_service.refresh()


@router.get("/items")
async def search_items(
    request: Request,
    query: str = "",
    limit: int = 25,
    _: None = Depends(verify_api_key),
) -> ItemsResponse:
    items = await request.app.state.catalog_service.search_items(query, limit=limit)
    return ItemsResponse(query=query, items=items, total=len(items))
