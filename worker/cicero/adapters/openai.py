"""OpenAI-compatible adapter (OpenAI or OpenRouter) for summarization."""
import logging

from cicero.adapters.base import LLMError, SummarizerAdapter
from cicero.config import (
    LLM_MAX_TOKENS,
    LLM_MODEL,
    LLM_TEMPERATURE,
    OPENAI_API_KEY,
    OPENROUTER_API_KEY,
    OPENROUTER_BASE_URL,
)

logger = logging.getLogger(__name__)


class OpenAIAdapter(SummarizerAdapter):
    """Chat-completions adapter.

    With ``openrouter=True`` the OpenAI SDK is pointed at OpenRouter, which
    takes provider-prefixed model names such as ``openai/gpt-4o-mini``.
    """

    def __init__(self, openrouter: bool = True):
        api_key = OPENROUTER_API_KEY if openrouter else OPENAI_API_KEY
        if not api_key:
            name = "OPENROUTER_API_KEY" if openrouter else "OPENAI_API_KEY"
            raise ValueError(f"{name} environment variable is required")

        from openai import AsyncOpenAI

        if openrouter:
            self.client = AsyncOpenAI(
                api_key=api_key,
                base_url=OPENROUTER_BASE_URL,
                default_headers={
                    "HTTP-Referer": "https://cicero.app",
                    "X-Title": "Cicero - City Council Summarizer",
                },
            )
        else:
            self.client = AsyncOpenAI(api_key=api_key)
        self.model = LLM_MODEL
        self.max_tokens = LLM_MAX_TOKENS
        self.temperature = LLM_TEMPERATURE

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """Run a chat completion in JSON mode."""
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                response_format={"type": "json_object"},
            )
        except Exception as e:
            logger.error(f"Chat completion failed: {e}")
            raise LLMError(f"LLM API error: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise LLMError("No content in LLM response")
        return content

    async def is_available(self) -> bool:
        """Check if the API is available."""
        try:
            # Try a minimal API call
            await self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": "test"}],
                max_tokens=5,
            )
            return True
        except Exception as e:
            logger.warning(f"OpenAI availability check failed: {e}")
            return False
