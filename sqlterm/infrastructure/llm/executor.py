"""
LLM executor: plain-text and structured completions against the Anthropic API.
"""

import asyncio
import logging
from typing import Any, TypeVar

import anthropic
from pydantic import BaseModel

from sqlterm.config.settings import Settings
from sqlterm.infrastructure.llm.factory import build_anthropic_client
from sqlterm.utils.json_parser import JSONParser
from sqlterm.utils.retry import retry_kwargs, run_with_retry

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

_STRUCTURED_TOOL_NAME = "respond"


class LLMClient:
    """
    Thin wrapper over ``anthropic.AsyncAnthropic``.

    Every call is bounded by ``llm_timeout`` and retried on rate limits,
    overloads and connection errors.
    """

    def __init__(self, settings: Settings, client: anthropic.AsyncAnthropic | None = None):
        self.settings = settings
        self._client = client

    @property
    def is_configured(self) -> bool:
        return self._client is not None or bool(self.settings.anthropic_api_key)

    @property
    def client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            self._client = build_anthropic_client(self.settings)
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None

    async def _create(self, **kwargs: Any) -> Any:
        client = self.client

        async def _call() -> Any:
            return await asyncio.wait_for(
                client.messages.create(**kwargs), timeout=self.settings.llm_timeout
            )

        return await run_with_retry(_call, **retry_kwargs(max_retries=3, initial_delay=2.0))

    def _request(
        self,
        system: str,
        messages: list[dict[str, str]],
        model: str | None,
        max_tokens: int | None,
        temperature: float | None,
    ) -> dict[str, Any]:
        return {
            "model": model or self.settings.ai_model,
            "max_tokens": max_tokens or self.settings.ai_max_tokens,
            "temperature": self.settings.ai_temperature if temperature is None else temperature,
            "system": system,
            "messages": messages,
        }

    async def complete(
        self,
        system: str,
        messages: list[dict[str, str]],
        *,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> str:
        """Return the text of the model's reply."""
        response = await self._create(**self._request(system, messages, model, max_tokens, temperature))
        text = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )
        logger.debug("LLM completion: %s chars (stop_reason=%s)", len(text), response.stop_reason)
        return text

    async def complete_structured(
        self,
        system: str,
        messages: list[dict[str, str]],
        response_format: type[ModelT],
        *,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> ModelT:
        """
        Ask for a reply shaped like ``response_format``.

        The model is forced to call a single tool whose input schema is the
        pydantic model's JSON schema. A text reply is parsed as JSON as a
        fallback.

        Raises:
            pydantic.ValidationError: If the reply does not match the model
            ValueError: If no JSON could be extracted from the reply
        """
        request = self._request(system, messages, model, max_tokens, temperature)
        request["tools"] = [
            {
                "name": _STRUCTURED_TOOL_NAME,
                "description": f"Return the {response_format.__name__} for this request.",
                "input_schema": response_format.model_json_schema(),
            }
        ]
        request["tool_choice"] = {"type": "tool", "name": _STRUCTURED_TOOL_NAME}

        response = await self._create(**request)

        for block in response.content:
            if getattr(block, "type", None) == "tool_use":
                logger.debug("Structured %s received via tool call", response_format.__name__)
                return response_format.model_validate(block.input)

        text = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )
        json_data = JSONParser.extract_json(text)
        if not json_data:
            raise ValueError(
                f"Could not extract {response_format.__name__} from response: {text[:500]}"
            )
        return response_format.model_validate(json_data)
