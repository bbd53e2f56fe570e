"""SQL generator service."""

import logging

from sqlterm.config.prompts import (
    build_sql_generation_system_prompt,
    build_sql_generation_user_input,
)
from sqlterm.config.settings import Settings
from sqlterm.infrastructure.errors import ConfigurationError
from sqlterm.infrastructure.llm.executor import LLMClient
from sqlterm.infrastructure.llm.factory import MISSING_API_KEY_MESSAGE
from sqlterm.services.schema.service import SchemaService
from sqlterm.services.sql.models import AIQueryResult, HistoryItem
from sqlterm.services.tenant import Tenant
from sqlterm.utils.text_processing import clean_sql_text, contains_sql_verb, ensure_single_semicolon

logger = logging.getLogger(__name__)

NOT_SQL_MESSAGE = (
    "AI did not generate a valid SQL query. The response might be an explanation or error message."
)


class SQLGenerator:
    """Generates SQL for a tenant from natural language in one model call."""

    def __init__(self, settings: Settings, llm: LLMClient, schema_service: SchemaService):
        """Initialize SQL generator.

        Args:
            settings: Application settings
            llm: Shared LLM client
            schema_service: Introspector for the tenant schema
        """
        self.settings = settings
        self.llm = llm
        self.schema_service = schema_service

    def _history_messages(self, history: list[HistoryItem] | None) -> list[dict[str, str]]:
        if not history:
            return []
        messages: list[dict[str, str]] = []
        for item in history[-self.settings.max_history_turns :]:
            messages.append({"role": "user", "content": build_sql_generation_user_input(item.prompt)})
            if item.sql_query:
                reply = item.sql_query
                if item.error:
                    reply += f"\n-- This query failed: {item.error}"
            elif item.error:
                reply = f"-- No query was produced: {item.error}"
            else:
                reply = "-- No query was produced."
            messages.append({"role": "assistant", "content": reply})
        return messages

    async def generate(
        self,
        tenant: Tenant,
        prompt: str,
        history: list[HistoryItem] | None = None,
        previous_error: str | None = None,
        previous_query: str | None = None,
    ) -> AIQueryResult:
        """
        Generate SQL from a natural language request.

        Args:
            tenant: Tenant whose schema the SQL targets
            prompt: The user's request
            history: Earlier prompts of the same conversation, oldest first
            previous_error: Error of the previous attempt (error correction mode)
            previous_query: SQL of the previous attempt (error correction mode)

        Returns:
            AIQueryResult with ``sql_query`` ending in a single semicolon
        """
        if not self.llm.is_configured:
            return AIQueryResult(success=False, error=MISSING_API_KEY_MESSAGE)

        try:
            schema_info = await self.schema_service.get_schema_info(tenant)
            schema_description = self.schema_service.format_for_ai(schema_info)

            system_prompt = build_sql_generation_system_prompt(
                schema_description,
                tenant.schema_name,
                previous_error=previous_error,
                previous_query=previous_query,
            )
            messages = self._history_messages(history)
            messages.append({"role": "user", "content": build_sql_generation_user_input(prompt)})

            if previous_error:
                logger.info("Regenerating SQL in error correction mode: %s", previous_error)

            generated_text = (await self.llm.complete(system_prompt, messages)).strip()

            if not contains_sql_verb(generated_text):
                logger.warning("Model reply contains no SQL: %s", generated_text[:200])
                return AIQueryResult(success=False, error=NOT_SQL_MESSAGE, explanation=generated_text)

            sql_query = ensure_single_semicolon(clean_sql_text(generated_text))
            logger.info("Generated SQL for schema '%s': %s", tenant.schema_name, sql_query)
            return AIQueryResult(
                success=True,
                sql_query=sql_query,
                explanation=f'AI generated SQL query for: "{prompt}"',
            )

        except ConfigurationError as e:
            return AIQueryResult(success=False, error=str(e))
        except Exception as e:
            logger.error("SQL generation error: %s", e, exc_info=True)
            return AIQueryResult(success=False, error=str(e) or "Failed to generate SQL query")
