"""
Abstract Provider Interfaces

Base class for the text-summarization (LLM) provider.
"""

from abc import ABC, abstractmethod


class LLMProvider(ABC):
    """Abstract interface for LLM providers."""

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        *,
        system: str | None = None,
        temperature: float = 0.0,
        max_tokens: int = 4096,
    ) -> str:
        """Generate a completion."""
        ...

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Current model name."""
        ...
