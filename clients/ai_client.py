"""
Client for the AI completion vendor (OpenAI-compatible chat completions).
"""
from typing import Optional

from loguru import logger
from openai import AsyncOpenAI

from crawler.utils.circuit_breaker import CircuitBreaker
from crawler.utils.rate_limiter import RateLimiter
from crawler.utils.retry import RetryExecutor
from utils.config.token_tracker import TokenUsageTracker


class AIClient:
    """Single-turn text completion with pacing, retries and a token budget."""

    def __init__(
        self,
        api_key: str,
        rate_limiter: RateLimiter,
        retry: RetryExecutor,
        model: str = "gpt-4o-mini",
        base_url: Optional[str] = None,
        token_tracker: Optional[TokenUsageTracker] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.model = model
        self.rate_limiter = rate_limiter
        self.retry = retry
        self.token_tracker = token_tracker or TokenUsageTracker()
        self.circuit_breaker = circuit_breaker
        self.client = client or AsyncOpenAI(api_key=api_key, base_url=base_url)

    async def close(self) -> None:
        await self.client.close()

    async def complete(self, prompt: str, max_tokens: int = 4096, request_type: str = "classification") -> Optional[str]:
        """Return the completion text, or None when the call could not be made."""
        estimated_tokens = int(len(prompt.split()) * 1.5) + max_tokens
        if not self.token_tracker.can_make_request(estimated_tokens):
            logger.error("Token limit exceeded. Skipping AI analysis.")
            return None

        if self.circuit_breaker and not self.circuit_breaker.can_call():
            logger.warning("AI analysis skipped: AI vendor circuit open")
            return None

        async def attempt():
            await self.rate_limiter.wait()
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=max_tokens,
                temperature=0.1,
            )
            usage = getattr(response, "usage", None)
            if usage is not None and getattr(usage, "total_tokens", None):
                self.token_tracker.record_usage(self.model, usage.total_tokens, request_type)
            if not response.choices:
                return ""
            return response.choices[0].message.content or ""

        text = await self.retry.run(attempt, context="AI analysis")
        if self.circuit_breaker:
            if text is None:
                self.circuit_breaker.record_failure()
            else:
                self.circuit_breaker.record_success()
        return text
