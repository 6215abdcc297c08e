import time
from typing import Awaitable, Callable, TypeVar

from pydantic import BaseModel, ValidationError

from shared.cache.TTLCache import MAX_ENTRY_BYTES, TTLCache
from shared.clients.plm.models.Category import CategoryDetails
from shared.clients.plm.models.Field import FieldDefinition
from shared.clients.plm.models.Item import ItemDetails
from shared.helper.HelperConfig import HelperConfig
from shared.storage.ScopedStore import ScopedStore
from shared.storage.StoreInterface import StoreScope

M = TypeVar("M", bound=BaseModel)

CATEGORIES_KEY = "plm_categories"
FIELDS_KEY_PREFIX = "plm_fields_"
ITEMS_KEY = "plm_items"

DEFAULT_TTL_CATEGORIES = 6 * 60 * 60
DEFAULT_TTL_FIELDS = 6 * 60 * 60
DEFAULT_TTL_ITEMS = 15 * 60


def fields_key(category_id: str) -> str:
    return f"{FIELDS_KEY_PREFIX}{category_id}"


class PLMCache(TTLCache):
    """Read-through cache for PLM listings. All entries live in the user scope."""

    def __init__(
        self,
        helper_config: HelperConfig,
        stores: ScopedStore,
        clock: Callable[[], float] = time.time,
        max_entry_bytes: int = MAX_ENTRY_BYTES,
    ):
        super().__init__(helper_config=helper_config, stores=stores, clock=clock, max_entry_bytes=max_entry_bytes)
        self.ttl_categories = helper_config.get_number_val("CACHE_TTL_CATEGORIES", default=DEFAULT_TTL_CATEGORIES)
        self.ttl_fields = helper_config.get_number_val("CACHE_TTL_FIELDS", default=DEFAULT_TTL_FIELDS)
        self.ttl_items = helper_config.get_number_val("CACHE_TTL_ITEMS", default=DEFAULT_TTL_ITEMS)

    async def get_cached_categories(self, fetch_fn: Callable[[], Awaitable[list[CategoryDetails]]]) -> list[CategoryDetails]:
        return await self._get_or_fetch_models(CATEGORIES_KEY, self.ttl_categories, fetch_fn, CategoryDetails)

    async def get_cached_category_fields(
        self,
        category_id: str,
        fetch_fn: Callable[[], Awaitable[list[FieldDefinition]]],
    ) -> list[FieldDefinition]:
        return await self._get_or_fetch_models(fields_key(category_id), self.ttl_fields, fetch_fn, FieldDefinition)

    async def get_cached_items(self, fetch_fn: Callable[[], Awaitable[list[ItemDetails]]]) -> list[ItemDetails]:
        return await self._get_or_fetch_models(ITEMS_KEY, self.ttl_items, fetch_fn, ItemDetails)

    def clear_plm_cache(self, category_ids: list[str] | None = None) -> None:
        """
        Drops the category list, the item listing and the field caches of the given categories.
        """
        keys = [CATEGORIES_KEY, ITEMS_KEY] + [fields_key(category_id) for category_id in category_ids or []]
        self.clear(keys, StoreScope.USER)
        self.logging.info("Cleared PLM cache (%d categories).", len(category_ids or []))

    async def _get_or_fetch_models(
        self,
        key: str,
        ttl_seconds: float,
        fetch_fn: Callable[[], Awaitable[list[M]]],
        model: type[M],
    ) -> list[M]:
        async def fetch_dumped() -> list[dict]:
            return [entry.model_dump(mode="json") for entry in await fetch_fn()]

        raw = await self.get_or_fetch(key, ttl_seconds, fetch_dumped, StoreScope.USER)
        try:
            return [model.model_validate(entry) for entry in raw]
        except (ValidationError, TypeError) as e:
            self.logging.warning("Cached '%s' does not match %s, refetching: %s", key, model.__name__, e)
            self.remove(key, StoreScope.USER)
            raw = await self.get_or_fetch(key, ttl_seconds, fetch_dumped, StoreScope.USER)
            return [model.model_validate(entry) for entry in raw]
