"""
AI Gateway

Thin OpenAI client for plain-text generation: single prompts and
multi-turn chat turns seeded with prior history.

Supports mock mode for local development without API costs.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

import openai
from openai import AsyncOpenAI

from resummarize.core.config import settings
from resummarize.core.exceptions import AIGenerationError, AIUnconfigured, NetworkError
from resummarize.schemas.chat import ChatMessage

logger = logging.getLogger(__name__)

MOCK_KEY = "mock"

# Conversation roles are stored as user/model; the chat API expects assistant
_ROLE_MAP = {"user": "user", "model": "assistant"}


class AIGateway:
    """
    Async wrapper around the chat-completions endpoint.

    Behaviour by credential:
        - missing: every call raises ``AIUnconfigured``
        - ``"mock"``: deterministic offline responses (dev/test, no network)
        - anything else: real API calls

    Usage::

        gateway = AIGateway()
        text = await gateway.generate("Summarize: ...")
        reply = await gateway.chat(history, "What did I write about Paris?")
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
    ) -> None:
        self._api_key = api_key if api_key is not None else settings.OPENAI_API_KEY
        self._model = model or settings.AI_MODEL
        self._client: AsyncOpenAI | None = None

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    @property
    def is_mocked(self) -> bool:
        return bool(self._api_key) and self._api_key.lower() == MOCK_KEY

    async def generate(self, prompt: str) -> str:
        """
        Generate text from a single prompt.

        Raises:
            AIUnconfigured: No API key.
            NetworkError: API unreachable or timed out.
            AIGenerationError: API error status or empty output.
        """
        return await self._complete([{"role": "user", "content": prompt}])

    async def chat(self, history: Sequence[ChatMessage], message: str) -> str:
        """
        Run one chat turn.

        Args:
            history: Prior turns, oldest first (not including ``message``).
            message: Fully assembled outgoing user message.
        """
        messages = [
            {"role": _ROLE_MAP[m.role], "content": m.content} for m in history
        ]
        messages.append({"role": "user", "content": message})
        return await self._complete(messages)

    async def _complete(self, messages: list[dict[str, str]]) -> str:
        if not self.is_configured:
            raise AIUnconfigured("AI API key not configured")

        if self.is_mocked:
            return self._mock_response(messages)

        client = self._get_client()
        try:
            response = await client.chat.completions.create(
                model=self._model,
                messages=messages,  # type: ignore[arg-type]
            )
        except (openai.APIConnectionError, openai.APITimeoutError) as e:
            logger.warning("AI provider unreachable (%s): %s", type(e).__name__, e)
            raise NetworkError("AI provider unreachable") from e
        except openai.OpenAIError as e:
            logger.error("AI provider error: %s", e)
            raise AIGenerationError(f"AI generation failed: {e}") from e

        content = (response.choices[0].message.content or "").strip() if response.choices else ""
        if not content:
            raise AIGenerationError("AI returned an empty response")

        logger.info(
            "AI response generated (model=%s, turns=%d, length=%d)",
            self._model,
            len(messages),
            len(content),
        )
        return content

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self._api_key)
        return self._client

    @staticmethod
    def _mock_response(messages: list[dict[str, str]]) -> str:
        """Echo a preview of the last message so callers can see what was sent."""
        last = messages[-1]["content"]
        preview = last.strip().splitlines()[-1][:80] if last.strip() else ""
        return f"Mock response ({len(messages)} turn(s)): {preview}"
