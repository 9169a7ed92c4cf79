"""
AI Gateway Unit Tests

Credential modes and error mapping with a mocked OpenAI client.
No external API calls - runs without network or API keys.
"""

from unittest.mock import AsyncMock, patch

import httpx
import openai
import pytest

from resummarize.core.exceptions import AIGenerationError, AIUnconfigured, NetworkError
from resummarize.schemas.chat import ChatMessage
from resummarize.services.ai import AIGateway


def completion(content: str | None):
    """Build an object shaped like the SDK's chat completion response."""
    message = type("Message", (), {"content": content})
    choice = type("Choice", (), {"message": message})
    return type("Response", (), {"choices": [choice]})


@pytest.mark.asyncio
async def test_generate_calls_chat_completions():
    with patch("resummarize.services.ai.AsyncOpenAI") as MockClient:
        mock_instance = MockClient.return_value
        mock_instance.chat.completions.create = AsyncMock(return_value=completion(" Summary "))

        gateway = AIGateway(api_key="sk-test", model="gpt-test")
        text = await gateway.generate("Summarize this")

    assert text == "Summary"
    MockClient.assert_called_once_with(api_key="sk-test")
    _, kwargs = mock_instance.chat.completions.create.call_args
    assert kwargs["model"] == "gpt-test"
    assert kwargs["messages"] == [{"role": "user", "content": "Summarize this"}]


@pytest.mark.asyncio
async def test_chat_maps_model_role_to_assistant():
    history = [
        ChatMessage(role="user", content="Hi"),
        ChatMessage(role="model", content="Hello!"),
    ]
    with patch("resummarize.services.ai.AsyncOpenAI") as MockClient:
        create = AsyncMock(return_value=completion("Sure"))
        MockClient.return_value.chat.completions.create = create

        reply = await AIGateway(api_key="sk-test").chat(history, "And now?")

    assert reply == "Sure"
    assert [m["role"] for m in create.call_args.kwargs["messages"]] == [
        "user",
        "assistant",
        "user",
    ]


@pytest.mark.asyncio
async def test_missing_key_raises_unconfigured():
    gateway = AIGateway(api_key="")

    assert gateway.is_configured is False
    with pytest.raises(AIUnconfigured):
        await gateway.generate("anything")


@pytest.mark.asyncio
async def test_mock_key_never_touches_network():
    with patch("resummarize.services.ai.AsyncOpenAI") as MockClient:
        gateway = AIGateway(api_key="mock")
        text = await gateway.generate("line one\nline two")

    MockClient.assert_not_called()
    assert gateway.is_mocked
    assert text == "Mock response (1 turn(s)): line two"


@pytest.mark.asyncio
async def test_connection_errors_become_network_errors():
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    with patch("resummarize.services.ai.AsyncOpenAI") as MockClient:
        MockClient.return_value.chat.completions.create = AsyncMock(
            side_effect=openai.APIConnectionError(request=request)
        )
        with pytest.raises(NetworkError) as exc_info:
            await AIGateway(api_key="sk-test").generate("hi")

    assert exc_info.value.retryable is True


@pytest.mark.asyncio
async def test_api_errors_and_empty_output_become_generation_errors():
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    response = httpx.Response(429, request=request)
    with patch("resummarize.services.ai.AsyncOpenAI") as MockClient:
        MockClient.return_value.chat.completions.create = AsyncMock(
            side_effect=[
                openai.RateLimitError("rate limited", response=response, body=None),
                completion(""),
            ]
        )
        gateway = AIGateway(api_key="sk-test")

        with pytest.raises(AIGenerationError):
            await gateway.generate("hi")
        with pytest.raises(AIGenerationError):
            await gateway.generate("hi")
