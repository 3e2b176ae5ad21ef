"""Tests for GeneratorReal against a mocked Anthropic client."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import anthropic
import httpx
import pytest

from deepform.agent.generator_real import GeneratorReal
from deepform.core.exceptions import GenerationError

pytestmark = pytest.mark.unit


def _response(*texts: str):
    return SimpleNamespace(
        content=[SimpleNamespace(type="text", text=t) for t in texts],
        stop_reason="end_turn",
        usage=SimpleNamespace(input_tokens=12, output_tokens=34),
    )


def _connection_error():
    request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
    return anthropic.APIConnectionError(request=request)


class _FakeStream:
    def __init__(self, chunks):
        self._chunks = chunks

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    @property
    async def text_stream(self):
        for chunk in self._chunks:
            yield chunk


def _client(create=None, stream_chunks=None):
    client = MagicMock()
    client.messages.create = create or AsyncMock(return_value=_response("ok"))
    client.messages.stream = MagicMock(return_value=_FakeStream(stream_chunks or []))
    return client


@pytest.mark.asyncio
async def test_complete_passes_request_and_joins_text():
    client = _client(create=AsyncMock(return_value=_response("Hello ", "there")))
    generator = GeneratorReal(client=client, model="test-model")
    messages = [{"role": "user", "content": "Hi"}]

    text = await generator.complete("system prompt", messages, max_tokens=256, purpose="facts")

    assert text == "Hello there"
    client.messages.create.assert_awaited_once_with(
        model="test-model",
        system="system prompt",
        messages=messages,
        max_tokens=256,
    )


@pytest.mark.asyncio
async def test_complete_wraps_api_errors():
    client = _client(create=AsyncMock(side_effect=_connection_error()))
    generator = GeneratorReal(client=client, model="test-model")

    with pytest.raises(GenerationError):
        await generator.complete("system", [{"role": "user", "content": "Hi"}])


@pytest.mark.asyncio
async def test_complete_without_text_fails():
    client = _client(create=AsyncMock(return_value=_response()))
    generator = GeneratorReal(client=client, model="test-model")

    with pytest.raises(GenerationError, match="no text"):
        await generator.complete("system", [{"role": "user", "content": "Hi"}])


@pytest.mark.asyncio
async def test_stream_yields_fragments_in_order():
    client = _client(stream_chunks=["How ", "", "often?"])
    generator = GeneratorReal(client=client, model="test-model")

    chunks = [c async for c in generator.stream("system", [{"role": "user", "content": "Hi"}])]

    assert chunks == ["How ", "often?"]


@pytest.mark.asyncio
async def test_empty_stream_fails():
    client = _client(stream_chunks=[])
    generator = GeneratorReal(client=client, model="test-model")

    with pytest.raises(GenerationError):
        async for _ in generator.stream("system", [{"role": "user", "content": "Hi"}]):
            pass
