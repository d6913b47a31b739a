"""Anthropic adapter for summarization."""

import logging

from cicero.adapters.base import LLMError, SummarizerAdapter
from cicero.config import ANTHROPIC_API_KEY, LLM_MAX_TOKENS, LLM_MODEL, LLM_TEMPERATURE

logger = logging.getLogger(__name__)


class AnthropicAdapter(SummarizerAdapter):
    """Anthropic Claude-based summarization adapter."""

    def __init__(self):
        if not ANTHROPIC_API_KEY:
            raise ValueError("ANTHROPIC_API_KEY environment variable is required")

        from anthropic import AsyncAnthropic

        self.client = AsyncAnthropic(api_key=ANTHROPIC_API_KEY)
        self.model = LLM_MODEL
        self.max_tokens = LLM_MAX_TOKENS
        self.temperature = LLM_TEMPERATURE

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """Run one message request and join the returned text blocks."""
        try:
            message = await self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                system=system_prompt,
                messages=[{"role": "user", "content": user_prompt}],
            )
        except Exception as e:
            logger.error(f"Anthropic request failed: {e}")
            raise LLMError(f"LLM API error: {e}") from e

        text = "".join(
            block.text for block in message.content if getattr(block, "type", "") == "text"
        )
        if not text:
            raise LLMError("No content in LLM response")
        return text

    async def is_available(self) -> bool:
        """Check if Anthropic API is available."""
        try:
            # Try a minimal API call
            await self.client.messages.create(
                model=self.model,
                max_tokens=10,
                messages=[{"role": "user", "content": "test"}],
            )
            return True
        except Exception as e:
            logger.warning(f"Anthropic availability check failed: {e}")
            return False
