from shared.models.errors import StoreQuotaError
from shared.storage.StoreInterface import StoreInterface


class MemoryStore(StoreInterface):
    """Dict-backed property store, used for document properties and in tests."""

    def __init__(self, max_value_bytes: int | None = None):
        self._data: dict[str, str] = {}
        self._max_value_bytes = max_value_bytes

    def get_property(self, key: str) -> str | None:
        return self._data.get(key)

    def set_property(self, key: str, value: str) -> None:
        if self._max_value_bytes is not None and len(value.encode("utf-8")) > self._max_value_bytes:
            raise StoreQuotaError(f"Value for '{key}' exceeds {self._max_value_bytes} bytes.")
        self._data[key] = value

    def delete_property(self, key: str) -> None:
        self._data.pop(key, None)

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: str) -> bool:
        return key in self._data
