from abc import ABC, abstractmethod
from typing import AsyncIterator


class LLMProvider(ABC):
    """Abstract base for streaming LLM providers."""

    @abstractmethod
    def stream(self, prompt: str, max_tokens: int) -> AsyncIterator[str]:
        """Yield generated text increments for a prompt."""
        pass


def get_provider(provider_name: str, api_key: str, model_name: str):
    """Factory function to get a provider instance."""
    if provider_name.lower() == "anthropic":
        from sceneguard.providers.anthropic_provider import AnthropicProvider
        return AnthropicProvider(api_key=api_key, model_name=model_name)
    elif provider_name.lower() == "openai":
        from sceneguard.providers.openai_provider import OpenAIProvider
        return OpenAIProvider(api_key=api_key, model_name=model_name)
    else:
        raise ValueError(f"Unknown provider: {provider_name}")
