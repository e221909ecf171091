"""
Structured LLM calls - prompt in, parsed JSON out.

Each call site chooses its parse-or-fail policy: pass `fallback` to get a
default value back on any failure, or leave it out to get a
StructuredOutputError.
"""

import json
import logging
import re
from typing import Any, Iterable, Optional

from .client import LLMClient, LLMUnavailableError

logger = logging.getLogger(__name__)

RAISE = object()

JSON_FENCE_RE = re.compile(r"```(?:json)?\s*([\[{].*?[\]}])\s*```", re.DOTALL)


class StructuredOutputError(Exception):
    """The LLM produced no usable JSON."""
    pass


def extract_json(text: str) -> Any:
    """
    Parse a JSON response, accepting a fenced ```json block.

    Raises:
        StructuredOutputError: If no valid JSON is found
    """
    if not text or not text.strip():
        raise StructuredOutputError("Empty response")

    try:
        return json.loads(text.strip())
    except json.JSONDecodeError:
        pass

    for block in JSON_FENCE_RE.findall(text):
        try:
            return json.loads(block)
        except json.JSONDecodeError:
            continue

    raise StructuredOutputError("Response is not valid JSON")


async def structured_call(
    client: Optional[LLMClient],
    prompt: str,
    *,
    name: str,
    system: Optional[str] = None,
    tier: str = "standard",
    max_tokens: int = 4000,
    temperature: float = 0.3,
    required_keys: Iterable[str] = (),
    fallback: Any = RAISE,
) -> Any:
    """
    Run one JSON-contract completion.

    Args:
        name: Call-site label for logs
        required_keys: Top-level keys the JSON object must contain
        fallback: Value returned on failure; omit to raise instead

    Raises:
        StructuredOutputError: On any failure when no fallback is given
    """
    try:
        if client is None:
            raise LLMUnavailableError("No LLM client configured")

        response = await client.complete(
            prompt,
            system=system,
            tier=tier,
            max_tokens=max_tokens,
            temperature=temperature,
        )
        if not response.success:
            raise StructuredOutputError(response.error or "LLM call failed")
        if not response.content:
            raise StructuredOutputError("No content received from LLM")

        data = extract_json(response.content)

        missing = [key for key in required_keys if not isinstance(data, dict) or key not in data]
        if missing:
            raise StructuredOutputError(f"Response missing keys: {', '.join(missing)}")

        return data

    except (StructuredOutputError, LLMUnavailableError) as e:
        if fallback is RAISE:
            logger.error(f"[{name}] structured call failed: {e}")
            if isinstance(e, StructuredOutputError):
                raise
            raise StructuredOutputError(str(e)) from e

        logger.warning(f"[{name}] structured call failed, using fallback: {e}")
        return fallback
