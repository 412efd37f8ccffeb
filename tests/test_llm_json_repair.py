import httpx
import pytest

from unified_interview.models.llm_client import (
    CollaboratorUnavailableError,
    LLMClient,
    LLMResponse,
    Message,
)


@pytest.mark.asyncio
async def test_chat_with_json_repairs_single_quotes_and_trailing_commas() -> None:
    client = LLMClient()

    async def fake_chat(messages: list[Message], temperature: float = 0.7, max_tokens=None, **kwargs):
        return LLMResponse(
            content="{'a': 1, 'b': 'x',}",
            finish_reason="stop",
            model="test",
        )

    # Monkeypatch instance method
    client.chat = fake_chat  # type: ignore[assignment]

    data = await client.chat_with_json(messages=[Message(role="user", content="hi")])
    assert data == {"a": 1, "b": "x"}


@pytest.mark.asyncio
async def test_chat_with_json_repairs_unquoted_keys_and_fenced_json() -> None:
    client = LLMClient()

    async def fake_chat(messages: list[Message], temperature: float = 0.7, max_tokens=None, **kwargs):
        return LLMResponse(
            content="""```json
            {a: 1, b: true, c: null,}
            ```""",
            finish_reason="stop",
            model="test",
        )

    client.chat = fake_chat  # type: ignore[assignment]

    data = await client.chat_with_json(messages=[Message(role="user", content="hi")])
    assert data == {"a": 1, "b": True, "c": None}


@pytest.mark.asyncio
async def test_chat_with_json_prepends_json_instruction() -> None:
    client = LLMClient()
    seen: list[list[Message]] = []

    async def fake_chat(messages: list[Message], temperature: float = 0.7, max_tokens=None, **kwargs):
        seen.append(messages)
        return LLMResponse(content='Sure! {"ok": true}')

    client.chat = fake_chat  # type: ignore[assignment]

    data = await client.chat_with_json(messages=[Message(role="user", content="hi")])
    assert data == {"ok": True}
    assert seen[0][0].role == "system"
    assert "JSON" in seen[0][0].content
    assert seen[0][1].content == "hi"


def _client_for(handler) -> LLMClient:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://llm.test")
    return LLMClient(
        model="test-model",
        base_url="http://llm.test",
        max_retries=2,
        retry_backoff=0.0,
        http_client=http_client,
    )


@pytest.mark.asyncio
async def test_chat_retries_then_succeeds() -> None:
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        if calls["count"] < 3:
            return httpx.Response(503, json={"error": "busy"})
        return httpx.Response(200, json={"model": "test-model", "message": {"role": "assistant", "content": "hello"}})

    client = _client_for(handler)
    response = await client.chat([Message(role="user", content="hi")])

    assert response.content == "hello"
    assert calls["count"] == 3
    await client.close()


@pytest.mark.asyncio
async def test_chat_raises_after_retries_exhausted() -> None:
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        return httpx.Response(500, json={"error": "boom"})

    client = _client_for(handler)
    with pytest.raises(CollaboratorUnavailableError) as exc_info:
        await client.chat([Message(role="user", content="hi")])

    assert exc_info.value.status_code == 500
    assert exc_info.value.attempts == 3
    assert calls["count"] == 3
    await client.close()


@pytest.mark.asyncio
async def test_chat_treats_empty_content_as_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"message": {"role": "assistant", "content": "   "}})

    client = _client_for(handler)
    with pytest.raises(CollaboratorUnavailableError):
        await client.chat([Message(role="user", content="hi")])
    await client.close()


@pytest.mark.asyncio
async def test_chat_retries_malformed_message_payload() -> None:
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        if calls["count"] == 1:
            return httpx.Response(200, json={"message": "hi there"})
        return httpx.Response(200, json={"message": {"role": "assistant", "content": "hello"}})

    client = _client_for(handler)
    response = await client.chat([Message(role="user", content="hi")])

    assert response.content == "hello"
    assert calls["count"] == 2
    await client.close()


@pytest.mark.asyncio
async def test_chat_raises_when_message_payload_stays_malformed() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"message": ["not", "an", "object"]})

    client = _client_for(handler)
    with pytest.raises(CollaboratorUnavailableError) as exc_info:
        await client.chat([Message(role="user", content="hi")])

    assert exc_info.value.attempts == 3
    await client.close()
