from typing import AsyncIterator

import anthropic
from sceneguard.providers import LLMProvider


class AnthropicProvider(LLMProvider):
    """Anthropic Claude streaming client."""

    def __init__(self, api_key: str, model_name: str = "claude-3-5-sonnet-20241022"):
        self.client = anthropic.AsyncAnthropic(api_key=api_key)
        self.model_name = model_name

    async def stream(self, prompt: str, max_tokens: int = 4000) -> AsyncIterator[str]:
        """Stream text deltas from Claude."""
        async with self.client.messages.stream(
            model=self.model_name,
            max_tokens=max_tokens,
            messages=[
                {"role": "user", "content": prompt}
            ],
        ) as stream:
            async for text in stream.text_stream:
                yield text
