"""Generic PLM category model, backend-independent."""

from pydantic import BaseModel


class CategoryBase(BaseModel):
    """
    Represents a single category, as returned by a PLM client.
    """
    engine: str
    id: str
    name: str


class CategoryDetails(CategoryBase):
    """
    Represents a single category with its position in the category tree.
    """
    path: str | None = None
    parent_id: str | None = None
    assignable: bool = True


class CategoriesListResponse(BaseModel):
    """
    Represents the response from a PLM when fetching the category list.
    """
    engine: str
    categories: list[CategoryDetails] = []
    overallCount: int | None = None
