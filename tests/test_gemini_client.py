import json

import httpx
import pytest

from shared.clients.llm.LLMClientManager import LLMClientManager
from shared.clients.llm.gemini.LLMClientGemini import LLMClientGemini
from shared.models.errors import (
    AuthRequiredError,
    ConfigurationError,
    InputValidationError,
    InvalidCredentialError,
    NotFoundError,
    RateLimitedError,
    RemoteError,
    TransientError,
)
from shared.ratelimit.RateLimiter import RateLimiter

GENERATED = {
    "candidates": [{
        "content": {"parts": [{"text": "Part "}, {"text": "{{ARENA:Resistor:Part Number}}"}]},
        "finishReason": "STOP",
    }],
    "usageMetadata": {"promptTokenCount": 120, "candidatesTokenCount": 30, "totalTokenCount": 150},
}


class FakeGemini:
    def __init__(self, response: httpx.Response | None = None):
        self.requests: list[httpx.Request] = []
        self.response = response or httpx.Response(200, json=GENERATED)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.response.status_code, headers=self.response.headers, content=self.response.content)


async def _client(helper_config, user_store, backend, api_key: str | None = "user-key") -> LLMClientGemini:
    client = LLMClientGemini(helper_config=helper_config, user_store=user_store)
    if api_key:
        client.set_api_key(api_key)
    await client.boot(transport=httpx.MockTransport(backend))
    return client


@pytest.mark.asyncio
async def test_generate_sends_key_and_payload(helper_config, user_store):
    backend = FakeGemini()
    client = await _client(helper_config, user_store, backend)

    result = await client.do_generate("Write a datasheet.", system_instruction="Use placeholders.")

    request = backend.requests[0]
    assert request.method == "POST"
    assert request.url.path == "/v1beta/models/gemini-2.0-flash:generateContent"
    assert request.url.params["key"] == "user-key"
    body = json.loads(request.content)
    assert body["contents"][0]["parts"][0]["text"] == "Write a datasheet."
    assert body["systemInstruction"]["parts"][0]["text"] == "Use placeholders."
    assert body["generationConfig"] == {"temperature": 0.7, "maxOutputTokens": 8192, "topP": 0.95, "topK": 40}
    assert len(body["safetySettings"]) == 4
    assert {s["threshold"] for s in body["safetySettings"]} == {"BLOCK_MEDIUM_AND_ABOVE"}

    assert result.text == "Part {{ARENA:Resistor:Part Number}}"
    assert result.finish_reason == "STOP"
    assert (result.usage.prompt_tokens, result.usage.output_tokens, result.usage.total_tokens) == (120, 30, 150)
    await client.close()


@pytest.mark.asyncio
async def test_generation_settings_come_from_env(monkeypatch, helper_config, user_store):
    monkeypatch.setenv("LLM_TEMPERATURE", "0.2")
    monkeypatch.setenv("LLM_GEMINI_MODEL", "gemini-1.5-pro")
    backend = FakeGemini()
    client = await _client(helper_config, user_store, backend)

    await client.do_generate("Write a datasheet.")

    body = json.loads(backend.requests[0].content)
    assert body["generationConfig"]["temperature"] == 0.2
    assert "systemInstruction" not in body
    assert backend.requests[0].url.path.endswith("/models/gemini-1.5-pro:generateContent")


@pytest.mark.asyncio
async def test_missing_key_requires_auth(helper_config, user_store):
    backend = FakeGemini()
    client = await _client(helper_config, user_store, backend, api_key=None)
    assert client.has_api_key() is False
    with pytest.raises(AuthRequiredError):
        await client.do_generate("Write a datasheet.")
    assert backend.requests == []


@pytest.mark.asyncio
async def test_configured_key_is_the_fallback(monkeypatch, helper_config, user_store):
    monkeypatch.setenv("LLM_GEMINI_API_KEY", "server-key")
    backend = FakeGemini()
    client = await _client(helper_config, user_store, backend, api_key=None)

    await client.do_generate("Write a datasheet.")
    assert backend.requests[0].url.params["key"] == "server-key"

    client.set_api_key("user-key")
    assert client.get_api_key() == "user-key"
    client.clear_api_key()
    assert client.get_api_key() == "server-key"


def test_empty_api_key_is_rejected(helper_config, user_store):
    client = LLMClientGemini(helper_config=helper_config, user_store=user_store)
    with pytest.raises(InputValidationError):
        client.set_api_key("   ")


@pytest.mark.asyncio
async def test_empty_prompt_is_rejected(helper_config, user_store):
    client = await _client(helper_config, user_store, FakeGemini())
    with pytest.raises(InputValidationError):
        await client.do_generate("  ")


@pytest.mark.asyncio
@pytest.mark.parametrize("response,error", [
    (httpx.Response(403, json={"error": {"message": "Permission denied"}}), InvalidCredentialError),
    (httpx.Response(400, json={"error": {"message": "API key not valid. Please pass a valid API key."}}), InvalidCredentialError),
    (httpx.Response(400, json={"error": {"message": "Invalid JSON payload"}}), InvalidCredentialError),
    (httpx.Response(404, json={"error": {"message": "models/unknown is not found"}}), NotFoundError),
    (httpx.Response(429, json={"error": {"message": "Resource exhausted"}}), RateLimitedError),
    (httpx.Response(503, text="unavailable"), RemoteError),
])
async def test_error_statuses_are_classified(helper_config, user_store, response, error):
    client = await _client(helper_config, user_store, FakeGemini(response))
    with pytest.raises(error):
        await client.do_generate("Write a datasheet.")


@pytest.mark.asyncio
@pytest.mark.parametrize("response,error", [
    (httpx.Response(400, json={"error": {"message": "Invalid JSON payload"}}), InvalidCredentialError),
    (httpx.Response(404, json={"error": {"message": "models/unknown is not found"}}), NotFoundError),
    (httpx.Response(409, json={"error": {"message": "Conflict"}}), RemoteError),
])
async def test_client_errors_are_not_retried(helper_config, user_store, clock, sleep, response, error):
    backend = FakeGemini(response)
    client = await _client(helper_config, user_store, backend)
    rate_limiter = RateLimiter(helper_config=helper_config, store=user_store, clock=clock, sleep=sleep)

    with pytest.raises(error):
        await rate_limiter.execute_with_retry(lambda: client.do_generate("Write a datasheet."))

    assert len(backend.requests) == 1
    assert sleep.calls == []


@pytest.mark.asyncio
async def test_server_errors_are_retried(helper_config, user_store, clock, sleep):
    backend = FakeGemini(httpx.Response(503, text="unavailable"))
    client = await _client(helper_config, user_store, backend)
    rate_limiter = RateLimiter(helper_config=helper_config, store=user_store, clock=clock, sleep=sleep)

    with pytest.raises(TransientError) as exc_info:
        await rate_limiter.execute_with_retry(lambda: client.do_generate("Write a datasheet."), max_attempts=2)
    assert isinstance(exc_info.value.__cause__, RemoteError)

    assert len(backend.requests) == 2
    assert sleep.calls == [2.0]


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [
    {"promptFeedback": {"blockReason": "SAFETY"}},
    {"candidates": []},
    {"candidates": [{"content": {"parts": [{"text": "  "}]}, "finishReason": "SAFETY"}]},
])
async def test_unusable_output_raises_value_error(helper_config, user_store, body):
    client = await _client(helper_config, user_store, FakeGemini(httpx.Response(200, json=body)))
    with pytest.raises(ValueError):
        await client.do_generate("Write a datasheet.")


@pytest.mark.asyncio
async def test_healthcheck_uses_model_endpoint(helper_config, user_store):
    backend = FakeGemini(httpx.Response(200, json={"name": "models/gemini-2.0-flash"}))
    client = await _client(helper_config, user_store, backend)
    response = await client.do_healthcheck()
    assert response.status_code == 200
    assert backend.requests[0].url.path == "/v1beta/models/gemini-2.0-flash"
    assert backend.requests[0].url.params["key"] == "user-key"


def test_manager_builds_gemini_client(helper_config, user_store):
    assert isinstance(LLMClientManager(helper_config=helper_config, user_store=user_store).get_client(), LLMClientGemini)


def test_manager_rejects_unknown_engine(monkeypatch, helper_config, user_store):
    monkeypatch.setenv("LLM_ENGINE", "unknown")
    with pytest.raises(ConfigurationError):
        LLMClientManager(helper_config=helper_config, user_store=user_store)
