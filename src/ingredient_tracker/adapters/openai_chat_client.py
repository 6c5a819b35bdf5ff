"""OpenAI Chat Completions client for recipe and target generation."""

import asyncio
import logging
from dataclasses import dataclass, field

from openai import APIError, APITimeoutError, AsyncOpenAI

from ingredient_tracker.domain.errors import AIServiceUnavailableError
from ingredient_tracker.services.ai import CompletionClient

_logger = logging.getLogger(__name__)


@dataclass
class OpenAIChatClient(CompletionClient):
    """Completion client backed by OpenAI Chat Completions.

    A single semaphore bounds the requests in flight for the whole process.
    """

    client: AsyncOpenAI
    model: str = "gpt-4o-mini"
    temperature: float = 0.7
    max_tokens: int = 4000
    max_concurrent_requests: int = 10
    _semaphore: asyncio.Semaphore = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._semaphore = asyncio.Semaphore(self.max_concurrent_requests)

    @classmethod
    def create(  # noqa: PLR0913
        cls,
        api_key: str,
        *,
        base_url: str | None = None,
        model: str = "gpt-4o-mini",
        temperature: float = 0.7,
        max_tokens: int = 4000,
        max_concurrent_requests: int = 10,
    ) -> "OpenAIChatClient":
        """Create an OpenAI chat client."""
        return cls(
            client=AsyncOpenAI(api_key=api_key, base_url=base_url),
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            max_concurrent_requests=max_concurrent_requests,
        )

    async def complete(
        self, system_prompt: str, user_prompt: str, timeout: float | None = None
    ) -> str:
        """Return the text of a single chat completion."""
        async with self._semaphore:
            try:
                response = await self.client.chat.completions.create(
                    model=self.model,
                    messages=[
                        {"role": "system", "content": system_prompt},
                        {"role": "user", "content": user_prompt},
                    ],
                    temperature=self.temperature,
                    max_tokens=self.max_tokens,
                    timeout=timeout,
                )
            except (APITimeoutError, TimeoutError) as exc:
                _logger.warning("AI request timed out after %ss", timeout)
                raise AIServiceUnavailableError("AI request timed out") from exc
            except APIError as exc:
                _logger.warning("AI request failed: %s", exc)
                raise AIServiceUnavailableError("AI request failed") from exc
        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise AIServiceUnavailableError("AI returned an empty response")
        return content

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.close()
