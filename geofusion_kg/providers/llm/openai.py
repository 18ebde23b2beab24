"""
OpenAI LLM Provider (LangChain-based)

Implements LLMProvider using LangChain's ChatOpenAI. A ``base_url`` points the
client at any OpenAI-compatible chat-completions gateway.

Example:
    >>> provider = OpenAILLMProvider(api_key="sk-...", model="gpt-5-mini")
    >>> insight = await provider.generate(
    ...     "Summarize these records ...",
    ...     system="You are a data analyst.",
    ...     max_tokens=150,
    ... )
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any

from geofusion_kg.providers.base import LLMProvider

if TYPE_CHECKING:
    from langchain_openai import ChatOpenAI

logger = logging.getLogger(__name__)


def _get_chat_openai(
    api_key: str | None = None,
    model: str = "gpt-5-mini",
    temperature: float = 0.0,
    base_url: str | None = None,
) -> "ChatOpenAI":
    """
    Get a ChatOpenAI instance.

    Uses lazy import to avoid requiring langchain-openai unless actually used.

    Args:
        api_key: Optional API key. If not provided, uses OPENAI_API_KEY env var.
        model: Model name to use.
        temperature: Sampling temperature.
        base_url: Optional OpenAI-compatible endpoint.

    Returns:
        ChatOpenAI instance

    Raises:
        ImportError: If langchain-openai package is not installed
    """
    try:
        from langchain_openai import ChatOpenAI
    except ImportError:
        raise ImportError(
            "OpenAI provider requires the 'langchain-openai' package. "
            "Install with: pip install langchain-openai"
        )

    kwargs: dict[str, Any] = {"model": model, "temperature": temperature}
    if api_key:
        kwargs["api_key"] = api_key
    if base_url:
        kwargs["base_url"] = base_url

    return ChatOpenAI(**kwargs)


class OpenAILLMProvider(LLMProvider):
    """
    OpenAI LLM provider implementation using LangChain.

    Args:
        api_key: OpenAI API key. If None, uses OPENAI_API_KEY environment variable.
        model: Model to use (default: "gpt-5-mini")
        base_url: OpenAI-compatible endpoint (default: api.openai.com)
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "gpt-5-mini",
        base_url: str | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._base_url = base_url

    @property
    def model_name(self) -> str:
        """Current model name."""
        return self._model

    async def generate(
        self,
        prompt: str,
        *,
        system: str | None = None,
        temperature: float = 0.0,
        max_tokens: int = 4096,
    ) -> str:
        """
        Generate a text completion.

        Args:
            prompt: User prompt/question
            system: Optional system message for context
            temperature: Sampling temperature (0.0 = deterministic)
            max_tokens: Maximum tokens in response

        Returns:
            Generated text response
        """
        from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage

        start = time.perf_counter_ns()

        base_client = _get_chat_openai(
            api_key=self._api_key,
            model=self._model,
            temperature=temperature,
            base_url=self._base_url,
        )
        client = base_client.bind(max_tokens=max_tokens)

        messages: list[BaseMessage] = []
        if system:
            messages.append(SystemMessage(content=system))
        messages.append(HumanMessage(content=prompt))

        response = await client.ainvoke(messages)

        elapsed_ms = (time.perf_counter_ns() - start) // 1_000_000
        logger.debug(f"{self._model} generate completed in {elapsed_ms}ms")
        return str(response.content)
