from typing import AsyncIterator

import openai
from sceneguard.providers import LLMProvider


class OpenAIProvider(LLMProvider):
    """OpenAI GPT streaming client."""

    def __init__(self, api_key: str, model_name: str = "gpt-4o"):
        self.client = openai.AsyncOpenAI(api_key=api_key)
        self.model_name = model_name

    async def stream(self, prompt: str, max_tokens: int = 4000) -> AsyncIterator[str]:
        """Stream content deltas from a chat completion."""
        response = await self.client.chat.completions.create(
            model=self.model_name,
            max_tokens=max_tokens,
            messages=[
                {"role": "user", "content": prompt}
            ],
            stream=True,
        )
        async for event in response:
            if not event.choices:
                continue
            delta = event.choices[0].delta.content
            if delta:
                yield delta
