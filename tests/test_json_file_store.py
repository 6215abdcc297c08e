import json

import pytest

from shared.storage.JsonFileStore import JsonFileStore


def test_properties_survive_reload(tmp_path):
    path = tmp_path / "nested" / "user_properties.json"
    store = JsonFileStore(str(path))
    store.set_property("plm_session", "S1")
    store.set_property("llm_api_key", "key")
    store.delete_property("llm_api_key")
    store.delete_property("unknown")

    reloaded = JsonFileStore(str(path))
    assert reloaded.get_property("plm_session") == "S1"
    assert reloaded.get_property("llm_api_key") is None
    assert json.loads(path.read_text(encoding="utf-8")) == {"plm_session": "S1"}


def test_non_object_file_is_rejected(tmp_path):
    path = tmp_path / "user_properties.json"
    path.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ValueError):
        JsonFileStore(str(path))


def test_failed_write_leaves_memory_and_file_unchanged(monkeypatch, tmp_path):
    path = tmp_path / "user_properties.json"
    store = JsonFileStore(str(path))
    store.set_property("plm_session", "S1")

    def fail_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr("shared.storage.JsonFileStore.os.replace", fail_replace)

    with pytest.raises(OSError):
        store.set_property("plm_session", "S2")
    with pytest.raises(OSError):
        store.delete_property("plm_session")

    assert store.get_property("plm_session") == "S1"
    assert json.loads(path.read_text(encoding="utf-8")) == {"plm_session": "S1"}
