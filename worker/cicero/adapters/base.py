"""Base adapter interface for LLM summarization."""

from abc import ABC, abstractmethod


class LLMError(RuntimeError):
    """The provider call failed or returned nothing usable."""


class SummarizerAdapter(ABC):
    """Abstract base class for LLM chat-completion adapters."""

    @abstractmethod
    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """Run one chat completion.

        Args:
            system_prompt: Fixed instructions for the model
            user_prompt: Request including the transcript

        Returns:
            Raw response text, expected to contain a JSON object

        Raises:
            LLMError: Empty response or provider failure
        """
        pass

    @abstractmethod
    async def is_available(self) -> bool:
        """Check if the provider is reachable.

        Returns:
            True if available, False otherwise
        """
        pass
