"""Tests for the generation clients and provider selection."""

from __future__ import annotations

import json
from types import SimpleNamespace

import httpx
import pytest
from google.genai import errors

from repo_health.core.config import Settings
from repo_health.core.errors import GenerationError
from repo_health.services.analysis.normalizer import parse_analysis_response
from repo_health.services.llm.base import SYSTEM_INSTRUCTION, LLMRateLimitError
from repo_health.services.llm.demo import DemoLLM
from repo_health.services.llm.factory import get_llm_client, provider_configured, resolve_provider
from repo_health.services.llm import gemini_chat
from repo_health.services.llm.gemini_chat import GeminiChatLLM
from repo_health.services.llm.groq_chat import GroqChatLLM
from repo_health.services.llm.ollama_llm import OllamaLLM


def _groq(handler, api_key: str | None = "gsk_test") -> GroqChatLLM:
    return GroqChatLLM(
        api_key=api_key,
        model="llama-test",
        base_url="https://groq.test/openai/v1",
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_groq_sends_one_json_mode_request() -> None:
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"choices": [{"message": {"content": ' {"summary": "ok"} '}}]})

    text = await _groq(handler).generate("analyze this")

    assert text == '{"summary": "ok"}'
    assert len(requests) == 1
    sent = json.loads(requests[0].content)
    assert str(requests[0].url) == "https://groq.test/openai/v1/chat/completions"
    assert requests[0].headers["authorization"] == "Bearer gsk_test"
    assert sent["response_format"] == {"type": "json_object"}
    assert sent["temperature"] <= 0.5
    assert sent["max_tokens"] >= 4000
    assert sent["messages"] == [
        {"role": "system", "content": SYSTEM_INSTRUCTION},
        {"role": "user", "content": "analyze this"},
    ]


@pytest.mark.asyncio
async def test_groq_rate_limit_is_typed_and_not_retried() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(1)
        return httpx.Response(429, json={"error": {"message": "Rate limit reached"}})

    with pytest.raises(LLMRateLimitError) as exc:
        await _groq(handler).generate("p")
    assert exc.value.provider == "groq"
    assert "Rate limit reached" in exc.value.details
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_groq_upstream_failure_carries_detail() -> None:
    with pytest.raises(GenerationError) as exc:
        await _groq(lambda r: httpx.Response(503, text="model overloaded")).generate("p")
    assert "503" in exc.value.message
    assert exc.value.details == "model overloaded"


@pytest.mark.asyncio
async def test_groq_invalid_key_message() -> None:
    with pytest.raises(GenerationError, match="Invalid Groq API key"):
        await _groq(lambda r: httpx.Response(401, json={"error": "bad key"})).generate("p")


@pytest.mark.asyncio
async def test_missing_key_fails_without_calling_upstream(monkeypatch: pytest.MonkeyPatch) -> None:
    from repo_health.core.config import settings

    monkeypatch.setattr(settings, "GROQ_API_KEY", None)
    monkeypatch.setattr(settings, "GEMINI_API_KEY", None)
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(1)
        return httpx.Response(200, json={})

    with pytest.raises(GenerationError, match="GROQ_API_KEY"):
        await _groq(handler, api_key=None).generate("p")
    with pytest.raises(GenerationError, match="GEMINI_API_KEY"):
        await GeminiChatLLM(api_key=None).generate("p")
    assert calls == []


@pytest.mark.asyncio
async def test_ollama_requests_json_format() -> None:
    sent = {}

    def handler(request: httpx.Request) -> httpx.Response:
        sent.update(json.loads(request.content))
        return httpx.Response(200, json={"response": '{"summary": "local"}'})

    llm = OllamaLLM(model="qwen-test", base_url="http://ollama.test", transport=httpx.MockTransport(handler))
    assert await llm.generate("p") == '{"summary": "local"}'
    assert sent["format"] == "json"
    assert sent["stream"] is False
    assert sent["model"] == "qwen-test"


@pytest.mark.asyncio
async def test_ollama_unreachable_is_generation_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    llm = OllamaLLM(base_url="http://ollama.test", transport=httpx.MockTransport(handler))
    with pytest.raises(GenerationError, match="Could not reach Ollama"):
        await llm.generate("p")


def test_factory_selects_configured_provider() -> None:
    assert isinstance(get_llm_client(Settings(LLM_PROVIDER="gemini", GEMINI_API_KEY="k")), GeminiChatLLM)
    assert isinstance(get_llm_client(Settings(LLM_PROVIDER="groq", GROQ_API_KEY="k")), GroqChatLLM)
    assert isinstance(get_llm_client(Settings(LLM_PROVIDER="ollama")), OllamaLLM)


def test_unknown_provider_falls_back_to_groq() -> None:
    assert resolve_provider(Settings(LLM_PROVIDER="mystery")) == "groq"


def test_demo_only_when_enabled_and_unconfigured() -> None:
    unconfigured = Settings(LLM_PROVIDER="groq", GROQ_API_KEY=None, DEMO_MODE=False)
    assert not provider_configured(unconfigured)
    assert isinstance(get_llm_client(unconfigured), GroqChatLLM)

    demo = Settings(LLM_PROVIDER="groq", GROQ_API_KEY=None, DEMO_MODE=True)
    assert isinstance(get_llm_client(demo), DemoLLM)

    configured = Settings(LLM_PROVIDER="groq", GROQ_API_KEY="k", DEMO_MODE=True)
    assert isinstance(get_llm_client(configured), GroqChatLLM)


@pytest.mark.asyncio
async def test_demo_output_is_labelled_and_valid() -> None:
    result = parse_analysis_response(await DemoLLM().generate("ignored"))
    assert result.summary.startswith("DEMO DATA")
    assert result.insights


@pytest.mark.asyncio
async def test_groq_non_json_body_is_generation_error() -> None:
    with pytest.raises(GenerationError, match="not JSON") as exc:
        await _groq(lambda r: httpx.Response(200, text="<html>gateway</html>")).generate("p")
    assert exc.value.details == "<html>gateway</html>"


@pytest.mark.asyncio
async def test_ollama_non_json_body_is_generation_error() -> None:
    llm = OllamaLLM(
        base_url="http://ollama.test",
        transport=httpx.MockTransport(lambda r: httpx.Response(200, text="loading model")),
    )
    with pytest.raises(GenerationError, match="not JSON"):
        await llm.generate("p")


class _FakeGenAIClient:
    """Stands in for genai.Client; records calls and replays one outcome."""

    instances: list["_FakeGenAIClient"] = []
    outcome: object = ""

    def __init__(self, api_key: str) -> None:
        self.api_key = api_key
        self.calls: list[dict] = []
        self.aio = SimpleNamespace(models=SimpleNamespace(generate_content=self._generate_content))
        _FakeGenAIClient.instances.append(self)

    async def _generate_content(self, **kwargs):
        self.calls.append(kwargs)
        if isinstance(self.outcome, BaseException):
            raise self.outcome
        return SimpleNamespace(text=self.outcome)


@pytest.fixture
def fake_genai(monkeypatch: pytest.MonkeyPatch) -> type[_FakeGenAIClient]:
    _FakeGenAIClient.instances = []
    _FakeGenAIClient.outcome = ""
    monkeypatch.setattr(gemini_chat.genai, "Client", _FakeGenAIClient)
    return _FakeGenAIClient


def _api_error(code: int, message: str, status: str, reason: str | None = None) -> errors.APIError:
    body: dict = {"error": {"code": code, "message": message, "status": status}}
    if reason:
        body["error"]["details"] = [{"reason": reason}]
    return errors.APIError(code, body)


@pytest.mark.asyncio
async def test_gemini_requests_json_with_generation_settings(fake_genai) -> None:
    fake_genai.outcome = ' {"summary": "from gemini"} '
    llm = GeminiChatLLM(api_key="AIza-test", model="gemini-test", temperature=0.2, max_output_tokens=4096)

    assert await llm.generate("analyze this") == '{"summary": "from gemini"}'
    await llm.generate("again")

    assert len(fake_genai.instances) == 1
    client = fake_genai.instances[0]
    assert client.api_key == "AIza-test"
    call = client.calls[0]
    assert call["model"] == "gemini-test"
    assert call["contents"] == "analyze this"
    assert call["config"].response_mime_type == "application/json"
    assert call["config"].temperature == 0.2
    assert call["config"].max_output_tokens == 4096
    assert call["config"].system_instruction == SYSTEM_INSTRUCTION


@pytest.mark.asyncio
async def test_gemini_rate_limit_is_typed(fake_genai) -> None:
    fake_genai.outcome = _api_error(429, "Resource has been exhausted", "RESOURCE_EXHAUSTED")
    with pytest.raises(LLMRateLimitError) as exc:
        await GeminiChatLLM(api_key="k").generate("p")
    assert exc.value.provider == "gemini"
    assert "quota" in exc.value.message


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [
        _api_error(400, "API key not valid. Please pass a valid API key.", "INVALID_ARGUMENT", "API_KEY_INVALID"),
        _api_error(401, "Request had invalid authentication credentials.", "UNAUTHENTICATED"),
        _api_error(403, "Permission denied.", "PERMISSION_DENIED"),
    ],
)
async def test_gemini_invalid_key(fake_genai, error: errors.APIError) -> None:
    fake_genai.outcome = error
    with pytest.raises(GenerationError, match="Invalid Gemini API key") as exc:
        await GeminiChatLLM(api_key="k").generate("p")
    assert not isinstance(exc.value, LLMRateLimitError)


@pytest.mark.asyncio
async def test_gemini_unknown_model(fake_genai) -> None:
    fake_genai.outcome = _api_error(404, "models/gemini-x is not found", "NOT_FOUND")
    with pytest.raises(GenerationError, match="gemini-x is not available"):
        await GeminiChatLLM(api_key="k", model="gemini-x").generate("p")


@pytest.mark.asyncio
async def test_gemini_other_api_error_keeps_message(fake_genai) -> None:
    fake_genai.outcome = _api_error(500, "Internal error encountered.", "INTERNAL")
    with pytest.raises(GenerationError, match="Gemini Error") as exc:
        await GeminiChatLLM(api_key="k").generate("p")
    assert "Internal error encountered." in exc.value.details


@pytest.mark.asyncio
async def test_gemini_network_error(fake_genai) -> None:
    fake_genai.outcome = httpx.ConnectError("connection refused")
    with pytest.raises(GenerationError, match="Network error while calling Gemini"):
        await GeminiChatLLM(api_key="k").generate("p")


def test_gemini_without_key_builds_no_client(fake_genai, monkeypatch: pytest.MonkeyPatch) -> None:
    from repo_health.core.config import settings

    monkeypatch.setattr(settings, "GEMINI_API_KEY", None)
    llm = GeminiChatLLM(api_key=None)
    assert llm.client is None
    assert fake_genai.instances == []
