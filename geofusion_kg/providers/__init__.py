"""
LLM Providers

Provider-agnostic interface for the optional batch insight call.

Modules:
    base: Abstract provider interface
    llm/: LLM provider implementations

Supported LLM Providers:
    - OpenAI and OpenAI-compatible gateways via LangChain

Design:
    - Providers implement LLMProvider
    - Lazy import to avoid requiring langchain-openai until a call is made

Example:
    >>> from geofusion_kg.providers import LLMProvider
    >>> from geofusion_kg.providers.llm import OpenAILLMProvider
"""

from geofusion_kg.providers.base import LLMProvider

__all__ = ["LLMProvider"]
