"""Field schema of a PLM category, backend-independent."""

from enum import Enum

from pydantic import BaseModel, model_validator


class FieldType(str, Enum):
    STANDARD = "standard"
    CUSTOM = "custom"


# Closed set, identical for every category.
STANDARD_FIELD_NAMES: tuple[str, ...] = (
    "Part Number",
    "Name",
    "Revision",
    "Description",
    "Category",
    "Lifecycle Phase",
    "Owner",
    "Creation Date",
    "Effective Date",
)


class FieldDefinition(BaseModel):
    """
    One field of a category. Custom fields carry the attribute id and the
    backend's internal field-type tag (e.g. "SINGLE_LINE_TEXT").
    """
    name: str
    field_type: FieldType = FieldType.STANDARD
    attribute_id: str | None = None
    data_type: str | None = None


def standard_fields() -> list[FieldDefinition]:
    return [FieldDefinition(name=name, field_type=FieldType.STANDARD) for name in STANDARD_FIELD_NAMES]


class CategoryFieldSet(BaseModel):
    """
    The standard fields unioned with the category's custom fields.
    """
    category_id: str
    category_name: str
    standard_fields: list[FieldDefinition] = []
    custom_fields: list[FieldDefinition] = []

    @model_validator(mode="after")
    def _check_unique_attribute_ids(self) -> "CategoryFieldSet":
        seen: set[str] = set()
        for field in self.custom_fields:
            if not field.attribute_id:
                raise ValueError(f"Custom field '{field.name}' has no attribute id")
            if field.attribute_id in seen:
                raise ValueError(f"Duplicate attribute id '{field.attribute_id}' in category '{self.category_name}'")
            seen.add(field.attribute_id)
        return self

    def all_fields(self) -> list[FieldDefinition]:
        return [*self.standard_fields, *self.custom_fields]

    def field_names(self) -> list[str]:
        return [field.name for field in self.all_fields()]

    def get_field(self, name: str) -> FieldDefinition | None:
        """Case-insensitive lookup by display name; standard fields win on collision."""
        wanted = name.strip().lower()
        for field in self.all_fields():
            if field.name.lower() == wanted:
                return field
        return None
