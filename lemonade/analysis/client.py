"""
Claude API Client

Thin async wrapper over the Anthropic SDK with model tiers and usage
tracking. API errors come back as an unsuccessful LLMResponse rather than
an exception; a missing API key raises LLMUnavailableError.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import anthropic

from lemonade.config import get_settings

logger = logging.getLogger(__name__)

TIERS = ("fast", "standard", "premium")


class LLMUnavailableError(Exception):
    """No API key configured."""
    pass


@dataclass
class TokenUsage:
    """Track token usage for cost logging."""
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass
class LLMResponse:
    """Response from one completion."""
    content: str
    usage: TokenUsage
    model: str
    stop_reason: str
    success: bool = True
    error: Optional[str] = None


class LLMClient:
    """
    Async Claude client with fast / standard / premium model tiers.

    Usage:
        client = LLMClient()
        response = await client.complete("Summarize...", system="...", tier="fast")
    """

    MAX_TOKENS = 4000
    TEMPERATURE = 0.3

    def __init__(self, api_key: Optional[str] = None, settings=None):
        settings = settings or get_settings()
        self.api_key = api_key or settings.ANTHROPIC_API_KEY
        self.models = {
            "fast": settings.LLM_FAST_MODEL,
            "standard": settings.LLM_STANDARD_MODEL,
            "premium": settings.LLM_PREMIUM_MODEL,
        }
        self.async_client = anthropic.AsyncAnthropic(api_key=self.api_key) if self.api_key else None

        self.total_usage = TokenUsage()
        self.call_count = 0

    @property
    def available(self) -> bool:
        return self.async_client is not None

    def model_for(self, tier: str) -> str:
        if tier not in self.models:
            raise ValueError(f"Unknown model tier: {tier}")
        return self.models[tier]

    async def complete(
        self,
        prompt: str,
        system: Optional[str] = None,
        tier: str = "standard",
        max_tokens: int = MAX_TOKENS,
        temperature: float = TEMPERATURE,
    ) -> LLMResponse:
        """
        Send one user prompt (plus optional system prompt).

        Raises:
            LLMUnavailableError: If no API key is configured
        """
        if not self.available:
            raise LLMUnavailableError("ANTHROPIC_API_KEY not configured")

        model = self.model_for(tier)
        kwargs = {
            "model": model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            kwargs["system"] = system

        try:
            response = await self.async_client.messages.create(**kwargs)
        except anthropic.APIError as e:
            logger.error(f"Claude API error ({tier}): {e}")
            return LLMResponse(
                content="",
                usage=TokenUsage(),
                model=model,
                stop_reason="error",
                success=False,
                error=str(e),
            )

        content = "".join(block.text for block in response.content if hasattr(block, "text"))
        usage = TokenUsage(
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )
        self.total_usage.input_tokens += usage.input_tokens
        self.total_usage.output_tokens += usage.output_tokens
        self.call_count += 1

        logger.info(f"Claude call ({tier}): {usage.input_tokens} in, {usage.output_tokens} out")

        return LLMResponse(
            content=content,
            usage=usage,
            model=model,
            stop_reason=response.stop_reason,
        )
