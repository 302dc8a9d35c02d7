import asyncio
import json
from types import SimpleNamespace

import httpx
import pytest
from groq import RateLimitError

from edgechat.ai.providers.base import PlainText, ProviderError, Structured
from edgechat.ai.providers.groq_provider import GroqProvider
from edgechat.ai.providers.ollama_provider import OllamaProvider
from edgechat.ai.providers.workers_ai_provider import WorkersAIProvider
from edgechat.ai.registry import build_provider
from edgechat.core.config import AIConfig, ConfigError


def _workers(handler):
    return WorkersAIProvider(
        account_id="acct",
        api_token="tok",
        base_url="https://cf.test/client/v4",
        transport=httpx.MockTransport(handler),
    )


def test_workers_ai_request_shape_and_envelope():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"success": True, "result": {"response": "hi"}})

    model = "@cf/meta/llama-3.1-8b-instruct"
    result = asyncio.run(_workers(handler).generate("PROMPT", model=model, max_tokens=256))

    assert seen["url"] == f"https://cf.test/client/v4/accounts/acct/ai/run/{model}"
    assert seen["auth"] == "Bearer tok"
    assert seen["body"] == {"prompt": "PROMPT", "max_tokens": 256}
    assert result == Structured(raw={"response": "hi"}, response="hi")


def test_workers_ai_string_result_is_plain_text():
    result = asyncio.run(
        _workers(lambda r: httpx.Response(200, json={"result": "raw text"})).generate("p", "m")
    )
    assert result == PlainText("raw text")


def test_workers_ai_http_error_becomes_provider_error():
    with pytest.raises(ProviderError):
        asyncio.run(_workers(lambda r: httpx.Response(500, text="boom")).generate("p", "m"))


def test_workers_ai_reported_failure_becomes_provider_error():
    body = {"success": False, "errors": [{"message": "bad model"}], "result": None}
    with pytest.raises(ProviderError):
        asyncio.run(_workers(lambda r: httpx.Response(200, json=body)).generate("p", "m"))


def test_workers_ai_without_credentials(monkeypatch):
    monkeypatch.delenv("CLOUDFLARE_ACCOUNT_ID", raising=False)
    monkeypatch.delenv("CLOUDFLARE_API_TOKEN", raising=False)
    provider = WorkersAIProvider()
    assert not provider.is_available()
    with pytest.raises(ProviderError):
        asyncio.run(provider.generate("p", "m"))


def test_ollama_generate_payload():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"model": "llama3.1", "response": "ok", "done": True})

    provider = OllamaProvider(base_url="http://ollama.test/", transport=httpx.MockTransport(handler))
    result = asyncio.run(provider.generate("PROMPT", model="llama3.1", max_tokens=32))

    assert seen["path"] == "/api/generate"
    assert seen["body"] == {
        "model": "llama3.1",
        "prompt": "PROMPT",
        "stream": False,
        "options": {"num_predict": 32},
    }
    assert result.response == "ok"


def test_build_provider_by_name(monkeypatch):
    monkeypatch.setenv("GROQ_API_KEY", "k")
    assert build_provider(AIConfig(provider="workers_ai")).name == "workers_ai"
    assert build_provider(AIConfig(provider="ollama")).name == "ollama"
    assert build_provider(AIConfig(provider="groq")).name == "groq"
    with pytest.raises(ConfigError):
        build_provider(AIConfig(provider="nope"))


def _groq_with(create):
    provider = GroqProvider(api_key="test-key")
    provider._client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))
    return provider


def test_groq_sends_prompt_as_single_user_message():
    seen = {}

    async def create(**kwargs):
        seen.update(kwargs)
        message = SimpleNamespace(content="groq says hi")
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])

    result = asyncio.run(_groq_with(create).generate("PROMPT", model="llama-3.1-8b-instant", max_tokens=99))

    assert seen == {
        "model": "llama-3.1-8b-instant",
        "messages": [{"role": "user", "content": "PROMPT"}],
        "max_tokens": 99,
    }
    assert result == PlainText("groq says hi")


def test_groq_empty_content_is_empty_text():
    async def create(**kwargs):
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=None))])

    assert asyncio.run(_groq_with(create).generate("p", "m")) == PlainText("")


def test_groq_rate_limit_becomes_provider_error():
    async def create(**kwargs):
        request = httpx.Request("POST", "https://api.groq.com/openai/v1/chat/completions")
        raise RateLimitError("slow down", response=httpx.Response(429, request=request), body=None)

    with pytest.raises(ProviderError, match="rate limit"):
        asyncio.run(_groq_with(create).generate("p", "m"))


def test_groq_without_key(monkeypatch):
    monkeypatch.delenv("GROQ_API_KEY", raising=False)
    provider = GroqProvider()
    assert not provider.is_available()
    with pytest.raises(ProviderError):
        asyncio.run(provider.generate("p", "m"))
