"""Generic PLM item (record) model, backend-independent."""

from typing import Any

from pydantic import BaseModel

from shared.clients.plm.models.Field import FieldDefinition, FieldType


def format_attribute_value(value: Any) -> str | None:
    """Render a raw attribute value as document text."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, list):
        parts = [format_attribute_value(v) for v in value]
        return ", ".join(p for p in parts if p)
    if isinstance(value, dict):
        for key in ("name", "value", "fullName", "number"):
            if value.get(key) is not None:
                return format_attribute_value(value[key])
        return None
    return str(value)


class ItemAttribute(BaseModel):
    """
    A custom attribute value of an item.
    """
    id: str
    name: str | None = None
    value: Any = None


class ItemBase(BaseModel):
    """
    Represents a single item as listed by a PLM client.
    """
    engine: str
    id: str
    number: str | None = None
    name: str | None = None


class ItemDetails(ItemBase):
    """
    Represents a single item with all its attributes.
    """
    revision: str | None = None
    description: str | None = None
    category_id: str | None = None
    category_name: str | None = None
    lifecycle_phase: str | None = None
    owner: str | None = None
    creation_date: str | None = None
    effective_date: str | None = None
    attributes: list[ItemAttribute] = []

    def standard_values(self) -> dict[str, str | None]:
        return {
            "part number": self.number,
            "name": self.name,
            "revision": self.revision,
            "description": self.description,
            "category": self.category_name,
            "lifecycle phase": self.lifecycle_phase,
            "owner": self.owner,
            "creation date": self.creation_date,
            "effective date": self.effective_date,
        }

    def resolve_field_value(self, field: FieldDefinition) -> str | None:
        """
        Returns the document text for the field, or None if the item has no such field.

        Standard fields map to the item's core attributes; custom fields are looked up
        by attribute id, falling back to the attribute name.
        """
        if field.field_type == FieldType.STANDARD:
            values = self.standard_values()
            key = field.name.strip().lower()
            if key not in values:
                return None
            return values[key] if values[key] is not None else ""

        attribute = None
        if field.attribute_id:
            attribute = next((a for a in self.attributes if a.id == field.attribute_id), None)
        if attribute is None:
            wanted = field.name.strip().lower()
            attribute = next((a for a in self.attributes if a.name and a.name.strip().lower() == wanted), None)
        if attribute is None:
            return None
        formatted = format_attribute_value(attribute.value)
        return formatted if formatted is not None else ""


class ItemsListResponse(BaseModel):
    """
    Represents one page of an item listing.
    """
    engine: str
    items: list[ItemDetails] = []
    offset: int = 0
    limit: int
    overallCount: int | None = None
