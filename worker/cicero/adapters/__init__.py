"""Adapter factory and exports."""
from cicero.adapters.base import LLMError, SummarizerAdapter
from cicero.config import LLM_PROVIDER


def get_adapter() -> SummarizerAdapter:
    """Get the configured LLM adapter.

    Returns:
        SummarizerAdapter instance based on LLM_PROVIDER config
    """
    if LLM_PROVIDER == "anthropic":
        from cicero.adapters.anthropic import AnthropicAdapter
        return AnthropicAdapter()
    elif LLM_PROVIDER == "openai":
        from cicero.adapters.openai import OpenAIAdapter
        return OpenAIAdapter(openrouter=False)
    elif LLM_PROVIDER == "ollama":
        from cicero.adapters.ollama import OllamaAdapter
        return OllamaAdapter()
    else:
        # Default to OpenRouter
        from cicero.adapters.openai import OpenAIAdapter
        return OpenAIAdapter(openrouter=True)


__all__ = ["LLMError", "SummarizerAdapter", "get_adapter"]
