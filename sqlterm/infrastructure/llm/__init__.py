"""LLM infrastructure module."""

from sqlterm.infrastructure.llm.executor import LLMClient
from sqlterm.infrastructure.llm.factory import (
    build_anthropic_client,
    create_llm_client,
    is_anthropic_model,
)

__all__ = [
    "LLMClient",
    "build_anthropic_client",
    "create_llm_client",
    "is_anthropic_model",
]
