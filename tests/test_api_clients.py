"""Tests for the HTTP-facing clients, over httpx mock transports."""
import asyncio
from types import SimpleNamespace

import httpx
import pytest

from continuum import utils
from continuum.api_clients.continuum_client import ContinuumClient
from continuum.api_clients.gemini_client import GeminiClient
from continuum.api_clients.openai_client import OpenAIClient
from continuum.api_clients.openrouter_client import OpenRouterClient
from continuum.editor_machine import Continue, EditorMachine, StopTyping, Update
from continuum.errors import EmptyInputError, UpstreamAuthError, UpstreamError, UpstreamQuotaError
from continuum.types import ChatMessage, ModelOptions

MESSAGES = [ChatMessage(role="user", content="Hello")]


def _mock_client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_openrouter_ok(monkeypatch):
    def handler(request):
        assert request.headers["Authorization"] == "Bearer k"
        return httpx.Response(200, json={"choices": [{"message": {"content": " there"}}]})

    monkeypatch.setattr(utils, "_HTTP_CLIENT", _mock_client(handler))
    client = OpenRouterClient("k", "https://router.test/chat", "m", ModelOptions(), None, None)
    result = asyncio.run(client.query_chat_model(MESSAGES))
    assert result.is_ok()
    assert result.value == " there"


def test_openrouter_quota(monkeypatch):
    def handler(request):
        return httpx.Response(429, json={"error": {"message": "Rate limit exceeded"}})

    monkeypatch.setattr(utils, "_HTTP_CLIENT", _mock_client(handler))
    client = OpenRouterClient("k", "https://router.test/chat", "m", ModelOptions(), None, None)
    result = asyncio.run(client.query_chat_model(MESSAGES))
    assert result.is_err()
    assert isinstance(result.error, UpstreamQuotaError)
    assert "Rate limit exceeded" in result.error.detail


def test_openrouter_malformed_payload(monkeypatch):
    monkeypatch.setattr(utils, "_HTTP_CLIENT", _mock_client(lambda r: httpx.Response(200, json={"choices": []})))
    client = OpenRouterClient("k", "https://router.test/chat", "m", ModelOptions(), None, None)
    result = asyncio.run(client.query_chat_model(MESSAGES))
    assert type(result.error) is UpstreamError


def test_openai_auth_failure(monkeypatch):
    def handler(request):
        return httpx.Response(401, json={"error": {"message": "Incorrect API key provided"}})

    monkeypatch.setattr(utils, "_HTTP_CLIENT", _mock_client(handler))
    client = OpenAIClient("bad", "https://openai.test/v1/responses", "m", ModelOptions())
    result = asyncio.run(client.query_chat_model(MESSAGES))
    assert isinstance(result.error, UpstreamAuthError)


def test_openai_output_text(monkeypatch):
    payload = {"output": [{"type": "message", "content": [{"type": "output_text", "text": "Once more."}]}]}
    monkeypatch.setattr(utils, "_HTTP_CLIENT", _mock_client(lambda r: httpx.Response(200, json=payload)))
    client = OpenAIClient("k", "https://openai.test/v1/responses", "m", ModelOptions())
    assert asyncio.run(client.query_chat_model(MESSAGES)).value == "Once more."


def test_network_failure_is_upstream_error(monkeypatch):
    def handler(request):
        raise httpx.ConnectError("connection refused")

    monkeypatch.setattr(utils, "_HTTP_CLIENT", _mock_client(handler))
    client = OpenAIClient("k", "https://openai.test/v1/responses", "m", ModelOptions())
    result = asyncio.run(client.query_chat_model(MESSAGES))
    assert type(result.error) is UpstreamError


def _continuum(handler):
    return ContinuumClient("http://continuum.test/", http=_mock_client(handler))


def test_continuum_client_ok():
    def handler(request):
        assert request.url.path == "/api/continue-writing"
        return httpx.Response(200, json={"success": True, "text": " next", "continuation": " next"})

    assert asyncio.run(_continuum(handler).request_continuation("Hello")) == " next"


@pytest.mark.parametrize(
    "status,kind",
    [(401, UpstreamAuthError), (429, UpstreamQuotaError), (500, UpstreamError), (400, EmptyInputError)],
)
def test_continuum_client_status_mapping(status, kind):
    client = _continuum(lambda r: httpx.Response(status, json={"error": "server says no"}))
    with pytest.raises(kind) as info:
        asyncio.run(client.request_continuation("Hello"))
    assert str(info.value) == "server says no"


def test_continuum_client_blank_text_not_sent():
    def handler(request):
        raise AssertionError("should not be called")

    with pytest.raises(EmptyInputError):
        asyncio.run(_continuum(handler).request_continuation("   "))


def test_continuum_client_transport_failure():
    def handler(request):
        raise httpx.ConnectError("connection refused")

    with pytest.raises(UpstreamError):
        asyncio.run(_continuum(handler).request_continuation("Hello"))


def test_continuum_client_drives_an_editor_session():
    client = _continuum(lambda r: httpx.Response(200, json={"success": True, "text": " over the wire."}))

    async def scenario():
        m = EditorMachine(client.request_continuation, auto_reveal=False)
        m.dispatch(Update(text="Sent"))
        m.dispatch(Continue())
        await m.wait_settled()
        return m.dispatch(StopTyping())

    snap = asyncio.run(scenario())
    assert snap.text == "Sent over the wire."
    assert snap.history == ["Sent"]


def _gemini_returning(resp):
    async def generate_content(**kwargs):
        return resp

    client = GeminiClient("k", "gemini-2.5-flash", ModelOptions())
    client.client = SimpleNamespace(aio=SimpleNamespace(models=SimpleNamespace(generate_content=generate_content)))
    return client


def test_gemini_text():
    client = _gemini_returning(SimpleNamespace(text="  and so on.  "))
    assert asyncio.run(client.query_chat_model(MESSAGES)).value == "and so on."


def test_gemini_without_text_is_empty_continuation():
    client = _gemini_returning(SimpleNamespace(text=None, candidates=None))
    result = asyncio.run(client.query_chat_model(MESSAGES))
    assert result.is_ok()
    assert result.value == ""
