"""
OpenAI client with rate limiting using aiolimiter.
"""
import os
from typing import Optional
from aiolimiter import AsyncLimiter
from openai import AsyncOpenAI
from loguru import logger

from company_pipeline.config import OPENAI_API_KEY, CONCURRENCY


class OpenAIClient:
    """
    OpenAI client for making API requests.
    Uses AsyncLimiter for rate limiting instead of semaphores.

    Instances are built once by the service wiring and passed to whatever
    needs them, so every model sharing a client also shares its rate limit.
    """

    def __init__(self, api_key: Optional[str] = None, max_rate: Optional[float] = None):
        api_key = api_key or OPENAI_API_KEY or os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise ValueError("OPENAI_API_KEY must be set in environment or config")

        self.client = AsyncOpenAI(api_key=api_key)
        # Token bucket: max_rate requests per second.
        # OpenAI limits are per minute and per tier; 500/s is the ceiling we ever ask for.
        self.rate_limiter = AsyncLimiter(max_rate=max_rate or min(CONCURRENCY, 500), time_period=1.0)

    async def chat_completions_create(self, **kwargs):
        """
        Create a chat completion with rate limiting.
        Accepts all arguments that AsyncOpenAI.chat.completions.create accepts.

        Returns:
            The response from OpenAI's chat completions API.
        """
        async with self.rate_limiter:
            try:
                return await self.client.chat.completions.create(**kwargs)
            except Exception as e:
                logger.debug(f"⚠️ OpenAI API request failed: {e}")
                raise

    async def close(self):
        """Close the underlying HTTP client."""
        await self.client.close()
