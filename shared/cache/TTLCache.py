"""TTL cache on top of the scoped property stores.

Entries are serialised as JSON {value, cached_at, expires_at}. Any failure of
the cache itself (corrupt data, serialisation error, store quota) degrades to
a cache miss and is logged; it never aborts the caller's operation.
"""

import json
import time
from typing import Any, Awaitable, Callable, TypeVar

from pydantic import ValidationError

from shared.helper.HelperConfig import HelperConfig
from shared.models.cache import CacheEntry
from shared.models.errors import StoreQuotaError
from shared.storage.ScopedStore import ScopedStore
from shared.storage.StoreInterface import StoreInterface, StoreScope

T = TypeVar("T")

MAX_ENTRY_BYTES = 100_000  # per-entry ceiling of the backing property store


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, (list, dict, str, tuple, set)) and len(value) == 0)


class TTLCache:
    """Generic get/set/remove cache with per-entry expiry over multiple scopes."""

    def __init__(
        self,
        helper_config: HelperConfig,
        stores: ScopedStore,
        clock: Callable[[], float] = time.time,
        max_entry_bytes: int = MAX_ENTRY_BYTES,
    ):
        self.logging = helper_config.get_logger()
        self._stores = stores
        self._clock = clock
        self._max_entry_bytes = max_entry_bytes

    ##########################################
    ################ CORE ####################
    ##########################################

    def get(self, key: str, scope: StoreScope | str = StoreScope.USER) -> Any | None:
        """
        Returns the cached value for key, or None if absent, expired or unreadable.

        Expired and corrupt entries are removed as a side effect of the read.
        """
        store = self._get_store(scope)
        raw = store.get_property(key)
        if raw is None:
            return None

        try:
            entry = CacheEntry.model_validate_json(raw)
        except (ValidationError, ValueError) as e:
            self.logging.warning("Cache entry '%s' (%s) is corrupt, removing it: %s", key, scope, e)
            self._safe_delete(store, key)
            return None

        if not entry.is_valid(self._now_ms()):
            self.logging.debug("Cache entry '%s' (%s) expired.", key, scope)
            self._safe_delete(store, key)
            return None
        return entry.value

    def set(self, key: str, value: Any, ttl_seconds: float, scope: StoreScope | str = StoreScope.USER) -> bool:
        """
        Stores value under key for ttl_seconds.

        Returns:
            bool: True if stored, False if the value could not be serialised,
                  exceeded the per-entry ceiling or the store rejected it.
        """
        now_ms = self._now_ms()
        try:
            payload = json.dumps({
                "value": value,
                "cached_at": now_ms,
                "expires_at": now_ms + int(ttl_seconds * 1000),
            })
        except (TypeError, ValueError) as e:
            self.logging.warning("Cache entry '%s' is not serialisable, not caching: %s", key, e)
            return False

        size = len(payload.encode("utf-8"))
        if size > self._max_entry_bytes:
            self.logging.warning(
                "Cache entry '%s' is %d bytes (limit %d), not caching.", key, size, self._max_entry_bytes
            )
            return False

        try:
            self._get_store(scope).set_property(key, payload)
        except (StoreQuotaError, OSError) as e:
            self.logging.warning("Could not store cache entry '%s' (%s): %s", key, scope, e)
            return False
        return True

    def remove(self, key: str, scope: StoreScope | str = StoreScope.USER) -> None:
        self._safe_delete(self._get_store(scope), key)

    def clear(self, keys: list[str], scope: StoreScope | str = StoreScope.USER) -> None:
        """
        Removes every key in keys. The store offers no prefix scan, so the caller
        supplies the dynamic keys (e.g. per-category field caches) to attempt.
        """
        store = self._get_store(scope)
        for key in keys:
            self._safe_delete(store, key)
        self.logging.debug("Cleared %d cache key(s) in scope '%s'.", len(keys), scope)

    async def get_or_fetch(
        self,
        key: str,
        ttl_seconds: float,
        fetch_fn: Callable[[], Awaitable[T]],
        scope: StoreScope | str = StoreScope.USER,
    ) -> T:
        """
        Read-through helper. On a miss calls fetch_fn and caches a non-empty result.

        Raises:
            Exception: Whatever fetch_fn raises; nothing is cached in that case.
        """
        cached = self.get(key, scope)
        if cached is not None:
            self.logging.debug("Cache hit for '%s'.", key)
            return cached

        self.logging.debug("Cache miss for '%s', fetching.", key)
        value = await fetch_fn()
        if not _is_empty(value):
            self.set(key, value, ttl_seconds, scope)
        return value

    ##########################################
    ############### HELPERS ##################
    ##########################################

    def _get_store(self, scope: StoreScope | str) -> StoreInterface:
        return self._stores.get_scope(scope)

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _safe_delete(self, store: StoreInterface, key: str) -> None:
        try:
            store.delete_property(key)
        except OSError as e:
            self.logging.warning("Could not remove cache entry '%s': %s", key, e)
