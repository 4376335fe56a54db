"""
LLM Client Infrastructure
==========================

Thin async wrappers around LLM SDKs (OpenAI and OpenAI-compatible hosts,
Z.AI). Clients return the SDK response untouched; interpreting its shape is
the caller's job.
"""

import asyncio
import json
from abc import ABC, abstractmethod
from typing import Any, List, Optional

from openai import AsyncOpenAI
from zai import ZaiClient

from ticket_assistant.config import ProviderKind
from ticket_assistant.core import ConfigurationException


class ILLMClient(ABC):
    """
    Interface for LLM chat operations.

    Only the method the application actually needs is defined.
    """

    @abstractmethod
    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.3,
        max_tokens: int = 800
    ) -> Any:
        """Generate a chat completion and return the raw SDK response."""


class OpenAILLMClient(ILLMClient):
    """
    OpenAI client for GPT models.

    Also serves OpenAI-compatible hosts such as Groq
    (base_url=https://api.groq.com/openai/v1).
    """

    def __init__(self, api_key: Optional[str], model: str, base_url: Optional[str] = None):
        if not api_key:
            raise ConfigurationException("OpenAI API key not configured")

        self._client = AsyncOpenAI(api_key=api_key, base_url=base_url) if base_url else AsyncOpenAI(api_key=api_key)
        self._model = model

    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.3,
        max_tokens: int = 800
    ) -> Any:
        return await self._client.chat.completions.create(
            model=self._model,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens
        )


class ZAILLMClient(ILLMClient):
    """
    Z.AI SDK client for GLM models.

    The SDK is synchronous, so calls run in a worker thread to keep the
    event loop (and the caller's timeout) responsive.
    """

    def __init__(self, api_key: Optional[str], model: str):
        if not api_key:
            raise ConfigurationException("Z.AI API key not configured")

        self._client = ZaiClient(api_key=api_key)
        self._model = model

    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.3,
        max_tokens: int = 800
    ) -> Any:
        return await asyncio.to_thread(
            self._client.chat.completions.create,
            model=self._model,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens
        )


class MockLLMClient(ILLMClient):
    """
    Mock LLM client for local development.

    Answers with a fenced JSON classification, the way chatty models do
    despite being told not to.
    """

    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.3,
        max_tokens: int = 800
    ) -> Any:
        mock_response = {
            "summary": "Mock: user reports an application issue.",
            "priority": "medium",
            "helpfulNotes": "Mock: reproduce locally and check the server logs.",
            "relatedSkills": ["api"]
        }
        return f"```json\n{json.dumps(mock_response, indent=2)}\n```"


def create_llm_client(kind: str, api_key: Optional[str], model: str, base_url: Optional[str] = None) -> ILLMClient:
    """Instantiate the client for a provider kind."""
    if kind == ProviderKind.OPENAI:
        return OpenAILLMClient(api_key, model, base_url)
    if kind == ProviderKind.ZAI:
        return ZAILLMClient(api_key, model)
    if kind == ProviderKind.MOCK:
        return MockLLMClient()
    raise ConfigurationException(f"Unknown LLM provider kind: {kind}")
