"""Tests for the OpenAI-compatible chat client."""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import httpx
import openai
import pytest

from docchat.core.errors import UpstreamServiceError
from docchat.infrastructure.llm.openai_client import OpenAIChatClient


def _chunk(content):
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=content))])


async def _stream(*contents):
    for content in contents:
        yield _chunk(content)


@pytest.fixture
def client():
    client = OpenAIChatClient(api_key="test", model="gpt-5-mini")
    client._client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=AsyncMock())))
    return client


def _create(client):
    return client._client.chat.completions.create


@pytest.mark.asyncio
async def test_streams_tokens_with_grounded_prompt(client):
    _create(client).return_value = _stream("Use ", None, "Redis.")

    tokens = [t async for t in client.chat_stream("rate limit?", "[Rate Limiting](u)\nRedis")]

    assert tokens == ["Use ", "Redis."]
    kwargs = _create(client).call_args.kwargs
    assert kwargs["model"] == "gpt-5-mini"
    assert kwargs["stream"] is True
    system, user = kwargs["messages"]
    assert "Answer ONLY from the provided documentation excerpts" in system["content"]
    assert "[Rate Limiting](u)" in system["content"]
    assert user == {"role": "user", "content": "rate limit?"}


@pytest.mark.asyncio
async def test_broad_mode_and_model_override(client):
    _create(client).return_value = _stream("ok")

    [t async for t in client.chat_stream("q", "ctx", grounded=False, model="gpt-5")]

    kwargs = _create(client).call_args.kwargs
    assert kwargs["model"] == "gpt-5"
    assert "general knowledge" in kwargs["messages"][0]["content"]


@pytest.mark.asyncio
async def test_api_errors_become_upstream_errors(client):
    _create(client).side_effect = openai.APIConnectionError(
        request=httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    )

    with pytest.raises(UpstreamServiceError) as exc_info:
        [t async for t in client.chat_stream("q", "ctx")]
    assert exc_info.value.service == "chat"
