"""Pytest configuration and fixtures."""

import logging
import os
import tempfile

import pytest

# server.api_server configures file logging at import time
os.environ.setdefault("ROOT_DIR", tempfile.mkdtemp(prefix="arena_docs_bridge_"))

from shared.clients.plm.models.Field import CategoryFieldSet, FieldDefinition, FieldType, standard_fields
from shared.helper.HelperConfig import HelperConfig
from shared.storage.MemoryStore import MemoryStore
from shared.storage.ScopedStore import ScopedStore

CONFIG_KEYS = (
    "PLM_ARENA_BASE_URL",
    "PLM_ARENA_PAGE_SIZE",
    "PLM_ARENA_SESSION_CHECK_MINUTES",
    "PLM_TIMEOUT",
    "LLM_TIMEOUT",
    "LLM_GEMINI_BASE_URL",
    "LLM_GEMINI_MODEL",
    "LLM_GEMINI_API_KEY",
    "LLM_TEMPERATURE",
    "LLM_MAX_OUTPUT_TOKENS",
    "LLM_TOP_P",
    "LLM_TOP_K",
    "RATE_LIMIT_MAX_REQUESTS",
    "RATE_LIMIT_WINDOW_MS",
    "RATE_LIMIT_MAX_ATTEMPTS",
    "CACHE_TTL_CATEGORIES",
    "CACHE_TTL_FIELDS",
    "CACHE_TTL_ITEMS",
)


class FakeClock:
    """Controllable replacement for time.time."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Replacement for asyncio.sleep that records the requested delays and returns at once."""

    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture(autouse=True)
def setup_test_env(monkeypatch):
    """Set up test environment variables."""
    for key in CONFIG_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("PLM_ENGINE", "arena")
    monkeypatch.setenv("LLM_ENGINE", "gemini")
    monkeypatch.setenv("API_SERVER_API_KEY", "test-server-key")


@pytest.fixture
def logger():
    return logging.getLogger("arena_docs_bridge.tests")


@pytest.fixture
def helper_config(logger):
    return HelperConfig(logger=logger)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def user_store():
    return MemoryStore()


@pytest.fixture
def document_store():
    return MemoryStore()


@pytest.fixture
def stores(user_store, document_store):
    return ScopedStore(user_store=user_store, document_store=document_store)


@pytest.fixture
def field_set():
    return CategoryFieldSet(
        category_id="CAT1",
        category_name="Resistor",
        standard_fields=standard_fields(),
        custom_fields=[
            FieldDefinition(name="Tolerance", field_type=FieldType.CUSTOM, attribute_id="ATTR1", data_type="SINGLE_LINE_TEXT"),
        ],
    )
