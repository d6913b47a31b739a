"""Ollama adapter for summarization."""

import logging

import httpx

from cicero.adapters.base import LLMError, SummarizerAdapter
from cicero.config import LLM_MODEL, LLM_TEMPERATURE, OLLAMA_URL

logger = logging.getLogger(__name__)


class OllamaAdapter(SummarizerAdapter):
    """Ollama-based summarization adapter for self-hosted models."""

    def __init__(self):
        self.base_url = OLLAMA_URL
        self.model = LLM_MODEL
        self.temperature = LLM_TEMPERATURE
        # Full transcripts on local hardware are slow
        self.timeout = 600.0

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """Generate a JSON-formatted completion."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.base_url}/api/generate",
                    json={
                        "model": self.model,
                        "system": system_prompt,
                        "prompt": user_prompt,
                        "stream": False,
                        "format": "json",
                        "options": {"temperature": self.temperature},
                    },
                )
                response.raise_for_status()
                result = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Ollama returned {e.response.status_code}")
            raise LLMError(f"Ollama API error: {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.error(f"Ollama request failed: {e}")
            raise LLMError(f"Ollama request failed: {e}") from e

        generated_text = result.get("response", "")
        if not generated_text:
            raise LLMError("No content in LLM response")
        return generated_text

    async def is_available(self) -> bool:
        """Check if Ollama is reachable."""
        try:
            async with httpx.AsyncClient(timeout=5.0) as client:
                response = await client.get(f"{self.base_url}/api/tags")
                return response.status_code == 200
        except Exception as e:
            logger.warning(f"Ollama availability check failed: {e}")
            return False
