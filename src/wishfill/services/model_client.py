"""
Thin async wrapper around OpenAI chat completions in JSON mode.

Shared by the vision fallback and the title/image validator. Every failure
surfaces as ``ModelError`` so callers can degrade with a single except.
"""
from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI, OpenAIError

from ..config import Config
from ..errors import ModelError
from ..logger import get_logger

logger = get_logger(__name__)


def build_openai_client(api_key: Optional[str] = None) -> Optional[AsyncOpenAI]:
    """Create the async client, or None when no API key is configured."""
    api_key = api_key or Config.OPENAI_API_KEY
    if not api_key:
        logger.warning("OPENAI_API_KEY not set. Model calls are disabled.")
        return None
    return AsyncOpenAI(api_key=api_key)


async def complete_json(
    client: Any,
    *,
    model: str,
    messages: List[Dict[str, Any]],
    timeout: float,
    temperature: float = 0.2,
    max_tokens: int = 400,
) -> Dict[str, Any]:
    """
    Run one JSON-mode completion and decode the reply.

    Raises:
        ModelError: API failure, timeout, empty or non-object reply
    """
    if client is None:
        raise ModelError("No model client configured")

    try:
        response = await asyncio.wait_for(
            client.chat.completions.create(
                model=model,
                messages=messages,
                response_format={"type": "json_object"},
                temperature=temperature,
                max_tokens=max_tokens,
            ),
            timeout=timeout,
        )
    except asyncio.TimeoutError as e:
        raise ModelError(f"{model} timed out after {timeout:.1f}s") from e
    except OpenAIError as e:
        raise ModelError(f"{model} call failed: {e}") from e

    try:
        content = response.choices[0].message.content
    except (AttributeError, IndexError) as e:
        raise ModelError("Malformed model response") from e
    if not content:
        raise ModelError("Empty response from model")

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise ModelError(f"Model reply is not JSON: {e}") from e
    if not isinstance(data, dict):
        raise ModelError("Model reply is not a JSON object")

    logger.debug("MODEL %s replied with keys %s", model, sorted(data))
    return data
