"""LLM client factory helpers."""

import logging

import anthropic

from sqlterm.config.settings import Settings
from sqlterm.infrastructure.errors import ConfigurationError

logger = logging.getLogger(__name__)

MISSING_API_KEY_MESSAGE = (
    "AI API key not configured. Please set ANTHROPIC_API_KEY in your environment variables."
)


def is_anthropic_model(model: str) -> bool:
    """Check if model is Anthropic (Claude)."""
    return "claude" in model.lower()


def build_anthropic_client(settings: Settings) -> anthropic.AsyncAnthropic:
    """
    Create the async Anthropic client.

    Raises:
        ConfigurationError: If no API key is configured
    """
    if not settings.anthropic_api_key:
        raise ConfigurationError(MISSING_API_KEY_MESSAGE)
    if not is_anthropic_model(settings.ai_model):
        logger.warning("ai_model '%s' does not look like a Claude model", settings.ai_model)

    logger.debug("Creating Anthropic client (model=%s)", settings.ai_model)
    return anthropic.AsyncAnthropic(
        api_key=settings.anthropic_api_key,
        timeout=settings.llm_timeout,
        max_retries=0,
    )


def create_llm_client(settings: Settings) -> "LLMClient":
    """Create the shared LLM client; the Anthropic client itself is built on first use."""
    from sqlterm.infrastructure.llm.executor import LLMClient

    return LLMClient(settings)
