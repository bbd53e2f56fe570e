"""Two-stage AI agent: table relevance, then an ordered command list."""

import logging
import re

from sqlterm.config.constants import FlowStep, log_flow_step
from sqlterm.config.prompts import (
    build_command_generation_system_prompt,
    build_command_generation_user_input,
)
from sqlterm.config.settings import Settings
from sqlterm.infrastructure.database.connection import quote_ident
from sqlterm.infrastructure.errors import ConfigurationError
from sqlterm.infrastructure.llm.executor import LLMClient
from sqlterm.infrastructure.llm.factory import MISSING_API_KEY_MESSAGE
from sqlterm.services.agent.models import AgentCommands, AgentResult
from sqlterm.services.schema.service import NO_TABLES_MESSAGE, SchemaService
from sqlterm.services.schema.table_selector import TableSelector
from sqlterm.services.tenant import Tenant
from sqlterm.utils.text_processing import (
    ensure_single_semicolon,
    is_search_path_statement,
    strip_code_fences,
)

logger = logging.getLogger(__name__)

AGENT_FAILED = "AI agent failed to process request"
NO_COMMANDS = "AI agent could not generate SQL commands for this request"
NO_RELEVANT_TABLES = "No existing tables are relevant to this request."

_LISTING_PATTERN = re.compile(r"\b(show|list|display|select|see|view)\b")
_TABLES_PATTERN = re.compile(r"\btables\b")


def normalize_commands(commands: list[str]) -> list[str]:
    """Trim, drop blanks and ``SET search_path`` items, strip fences, one trailing semicolon each."""
    normalized = []
    for command in commands:
        if not isinstance(command, str):
            continue
        text = strip_code_fences(command).strip().rstrip(";").strip()
        if not text or is_search_path_statement(text):
            continue
        normalized.append(ensure_single_semicolon(text))
    return normalized


def fallback_commands(prompt: str, relevant_tables: list[str], tenant: Tenant) -> list[str]:
    """
    Commands used when the model returns nothing usable.

    "show tables"-style prompts list the tenant's tables; other listing
    prompts select every relevant table.
    """
    prompt_lower = prompt.lower()
    if not _LISTING_PATTERN.search(prompt_lower):
        return []
    if _TABLES_PATTERN.search(prompt_lower):
        return [
            "SELECT tablename FROM pg_tables "
            f"WHERE schemaname = '{tenant.schema_name}' ORDER BY tablename;"
        ]
    return [f"SELECT * FROM {quote_ident(table)};" for table in relevant_tables]


class AIAgentService:
    """
    Plans SQL for a request in two model calls.

    Stage A picks the relevant tables; stage B sees only those tables (with
    their data and next free ids) and returns commands that the caller runs
    one at a time.
    """

    def __init__(
        self,
        settings: Settings,
        llm: LLMClient,
        schema_service: SchemaService,
        table_selector: TableSelector | None = None,
    ):
        self.settings = settings
        self.llm = llm
        self.schema_service = schema_service
        self.table_selector = table_selector or TableSelector(settings, llm)

    async def run(self, tenant: Tenant, prompt: str) -> AgentResult:
        if not self.llm.is_configured:
            return AgentResult(success=False, error=MISSING_API_KEY_MESSAGE)

        try:
            tables = await self.schema_service.list_tables(tenant)
            relevant = await self.table_selector.select_tables(prompt, tables)
            log_flow_step(
                FlowStep.TABLE_SELECTION, f"{len(relevant)}/{len(tables)} relevant: {relevant}"
            )

            if relevant:
                log_flow_step(FlowStep.SCHEMA, f"schema={tenant.schema_name}")
                schema_info = await self.schema_service.get_schema_info(tenant, tables=relevant)
                schema_description = self.schema_service.format_for_ai(schema_info)
            else:
                schema_description = NO_RELEVANT_TABLES if tables else NO_TABLES_MESSAGE

            system_prompt = build_command_generation_system_prompt(
                schema_description, tables, tenant.schema_name
            )

            explanation = None
            try:
                reply = await self.llm.complete_structured(
                    system_prompt,
                    [{"role": "user", "content": build_command_generation_user_input(prompt)}],
                    AgentCommands,
                )
                commands = normalize_commands(reply.commands)
                explanation = reply.explanation
            except ValueError as e:
                logger.warning("Agent stage B returned a malformed reply: %s", e)
                commands = []

            if not commands:
                commands = fallback_commands(prompt, relevant, tenant)
                if not commands:
                    return AgentResult(success=False, error=NO_COMMANDS, relevant_tables=relevant)
                logger.info("Agent used fallback commands: %s", commands)

            logger.info("Agent stage B produced %s command(s)", len(commands))
            return AgentResult(
                success=True,
                sql_commands=commands,
                explanation=explanation,
                relevant_tables=relevant,
            )

        except ConfigurationError as e:
            return AgentResult(success=False, error=str(e))
        except Exception as e:
            logger.error("AI agent error: %s", e, exc_info=True)
            return AgentResult(success=False, error=AGENT_FAILED, explanation=str(e))
