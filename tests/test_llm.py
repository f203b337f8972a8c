"""
Tests for the Ollama client's retry budget, without a running model.
"""
from types import SimpleNamespace

import httpx
import pytest

from services.llm import LLMUnavailableError, OllamaClient


class ScriptedChat:
    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0

    async def ainvoke(self, messages):
        self.calls += 1
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return SimpleNamespace(content=outcome)


def _client(outcomes, max_retries=3):
    client = OllamaClient("http://127.0.0.1:9/v1", "test-model", max_retries=max_retries, retry_delay=0)
    client.llm = ScriptedChat(outcomes)
    return client


def test_base_url_is_normalized():
    assert _client([]).base_url == "http://127.0.0.1:9"


async def test_transient_errors_are_retried():
    client = _client([ConnectionError("refused"), ConnectionError("refused"), '{"clarity": {"score": 70}}'])

    response = await client.evaluate("prompt")

    assert response["content"] == '{"clarity": {"score": 70}}'
    assert response["latency_ms"] >= 0
    assert client.llm.calls == 3


async def test_retry_budget_exhausted():
    client = _client([ConnectionError("refused")] * 2, max_retries=2)

    with pytest.raises(LLMUnavailableError):
        await client.evaluate("prompt")
    assert client.llm.calls == 2


async def test_other_errors_are_not_retried():
    client = _client([ValueError("bad request"), "never reached"])

    with pytest.raises(ValueError):
        await client.evaluate("prompt")
    assert client.llm.calls == 1


async def test_health_check_unreachable():
    assert await _client([]).health_check() is False


def _tags_transport(status_code, payload):
    return httpx.MockTransport(lambda request: httpx.Response(status_code, json=payload))


async def test_health_check_requires_the_model():
    client = _client([])
    tags = {"models": [{"name": "test-model:latest"}, {"name": "nomic-embed-text:latest"}]}

    assert await client.health_check(_tags_transport(200, tags)) is True
    assert await client.health_check(_tags_transport(200, {"models": [{"name": "other:7b"}]})) is False
    assert await client.health_check(_tags_transport(500, {"error": "boom"})) is False
