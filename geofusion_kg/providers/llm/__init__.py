"""
LLM Provider Implementations

Modules:
    openai: OpenAI provider (any chat-completions compatible endpoint)

Example:
    >>> from geofusion_kg.providers.llm import OpenAILLMProvider
    >>> provider = OpenAILLMProvider(model="gpt-5-mini")
    >>> response = await provider.generate("Hello!")
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from geofusion_kg.providers.llm.openai import OpenAILLMProvider


def __getattr__(name: str):
    """Lazy import of providers to avoid requiring all dependencies."""
    if name == "OpenAILLMProvider":
        from geofusion_kg.providers.llm.openai import OpenAILLMProvider
        return OpenAILLMProvider
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["OpenAILLMProvider"]
