from shared.cache.PLMCache import CATEGORIES_KEY, PLMCache
from shared.clients.plm.PLMClientInterface import PLMClientInterface
from shared.clients.plm.models.Category import CategoryDetails
from shared.clients.plm.models.Field import CategoryFieldSet, FieldDefinition, standard_fields
from shared.clients.plm.models.Item import ItemDetails
from shared.helper.HelperConfig import HelperConfig
from shared.models.errors import NotFoundError, RemoteError, TransientError


class CatalogService:
    """Categories, field schemas and items of the PLM, read through the cache."""

    def __init__(self, helper_config: HelperConfig, plm_client: PLMClientInterface, plm_cache: PLMCache):
        self.logging = helper_config.get_logger()
        self._plm_client = plm_client
        self._plm_cache = plm_cache

    async def get_categories(self) -> list[CategoryDetails]:
        return await self._plm_cache.get_cached_categories(self._plm_client.do_fetch_categories)

    async def get_category(self, category_id: str) -> CategoryDetails:
        """
        Raises:
            NotFoundError: If no category has this id.
        """
        for category in await self.get_categories():
            if category.id == category_id:
                return category
        raise NotFoundError(f"Category '{category_id}' does not exist.", next_step="Refresh the category list and pick a category again.")

    async def find_category_by_name(self, name: str) -> CategoryDetails | None:
        wanted = (name or "").strip().lower()
        for category in await self.get_categories():
            if category.name.strip().lower() == wanted:
                return category
        return None

    async def get_category_field_set(self, category_id: str) -> CategoryFieldSet:
        """
        Standard fields plus the category's custom fields. If the custom fields
        cannot be fetched the set carries the standard fields only.
        """
        category = await self.get_category(category_id)
        try:
            custom = await self._plm_cache.get_cached_category_fields(
                category_id,
                lambda: self._plm_client.do_fetch_category_attributes(category_id),
            )
        except (TransientError, RemoteError, NotFoundError) as e:
            self.logging.warning("Could not fetch custom fields of category '%s', using standard fields only: %s", category.name, e)
            custom = []

        return CategoryFieldSet(
            category_id=category.id,
            category_name=category.name,
            standard_fields=standard_fields(),
            custom_fields=_unique_by_attribute_id(custom),
        )

    async def search_items(self, query: str = "", limit: int = 25) -> list[ItemDetails]:
        """
        Case-insensitive search over item number, name and description.
        """
        items = await self._plm_cache.get_cached_items(self._plm_client.do_fetch_items)
        wanted = (query or "").strip().lower()
        if wanted:
            items = [
                item for item in items
                if any(wanted in (value or "").lower() for value in (item.number, item.name, item.description))
            ]
        return items[:limit]

    def refresh(self) -> None:
        """
        Drops every cached listing so the next read goes to the PLM.
        """
        cached = self._plm_cache.get(CATEGORIES_KEY) or []
        category_ids = [entry["id"] for entry in cached if isinstance(entry, dict) and entry.get("id")]
        self._plm_cache.clear_plm_cache(category_ids)


def _unique_by_attribute_id(fields: list[FieldDefinition]) -> list[FieldDefinition]:
    seen = set()
    unique = []
    for field in fields:
        if not field.attribute_id or field.attribute_id in seen:
            continue
        seen.add(field.attribute_id)
        unique.append(field)
    return unique
