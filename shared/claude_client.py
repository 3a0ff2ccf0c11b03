"""Thin wrapper around the Anthropic SDK for short Claude completions."""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
_MODEL = "claude-sonnet-4-5-20250929"


class ExternalServiceError(Exception):
    """The AI service could not be reached or returned an error."""


def _load_api_key() -> str:
    from dotenv import dotenv_values

    env = dotenv_values(_ENV_PATH)
    return env.get("ANTHROPIC_API_KEY", "") or ""


def generate_text(
    system_prompt: str,
    user_message: str,
    api_key: str | None = None,
    model: str = _MODEL,
    max_tokens: int = 400,
    timeout: float = 8.0,
) -> str:
    """Send one request to Claude and return the text response.

    Falls back to the repo .env file when no key is passed. The call is
    bounded by *timeout* and is never retried. Any SDK failure, or an
    empty reply, is raised as ExternalServiceError.
    """
    import anthropic

    key = api_key or _load_api_key()
    if not key:
        raise ExternalServiceError("ANTHROPIC_API_KEY is not configured")

    client = anthropic.Anthropic(api_key=key, timeout=timeout, max_retries=0)
    try:
        message = client.messages.create(
            model=model,
            max_tokens=max_tokens,
            system=system_prompt,
            messages=[{"role": "user", "content": user_message}],
        )
    except anthropic.APIError as exc:
        raise ExternalServiceError(f"Claude request failed: {exc.__class__.__name__}") from exc

    logger.info(
        "Claude call: model=%s input_tokens=%s output_tokens=%s",
        model, message.usage.input_tokens, message.usage.output_tokens,
    )
    text = "".join(block.text for block in message.content if getattr(block, "type", "") == "text")
    if not text.strip():
        raise ExternalServiceError("Claude returned an empty response")
    return text.strip()
