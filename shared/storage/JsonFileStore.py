import json
import os

from shared.storage.StoreInterface import StoreInterface


class JsonFileStore(StoreInterface):
    """Property store persisted as a single JSON object on disk.

    The whole file is rewritten on every change; it is meant for the small
    per-user state (session, API key, caches, rate-limit window).
    """

    def __init__(self, file_path: str):
        self._file_path = file_path
        self._data: dict[str, str] = self._load()

    def _load(self) -> dict[str, str]:
        if not os.path.exists(self._file_path):
            return {}
        with open(self._file_path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Property store '{self._file_path}' does not contain a JSON object.")
        return {str(k): str(v) for k, v in data.items()}

    def _flush(self, data: dict[str, str]) -> None:
        directory = os.path.dirname(self._file_path)
        if directory and not os.path.exists(directory):
            os.makedirs(directory)
        tmp_path = f"{self._file_path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
        os.replace(tmp_path, self._file_path)

    def get_property(self, key: str) -> str | None:
        return self._data.get(key)

    def set_property(self, key: str, value: str) -> None:
        data = dict(self._data)
        data[key] = value
        self._flush(data)
        self._data = data

    def delete_property(self, key: str) -> None:
        if key in self._data:
            data = {k: v for k, v in self._data.items() if k != key}
            self._flush(data)
            self._data = data
