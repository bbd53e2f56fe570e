"""Table selector service."""

import logging
import re

from pydantic import BaseModel, Field

from sqlterm.config.prompts import build_table_selection_system_prompt
from sqlterm.config.settings import Settings
from sqlterm.infrastructure.llm.executor import LLMClient

logger = logging.getLogger(__name__)

_SELECT_ALL_PATTERN = re.compile(r"\b(all|show|tables?)\b")


class RelevantTables(BaseModel):
    """Structured reply of the table relevance call."""

    relevant_tables: list[str] = Field(default_factory=list)


def singular(name: str) -> str:
    """Naive English singular of a table name (``categories`` -> ``category``)."""
    if name.endswith("ies") and len(name) > 3:
        return name[:-3] + "y"
    if name.endswith(("ses", "xes", "zes", "ches", "shes")):
        return name[:-2]
    if name.endswith("s") and not name.endswith("ss") and len(name) > 1:
        return name[:-1]
    return name


def keyword_match_tables(prompt: str, tables: list[str]) -> list[str]:
    """
    Pick tables by name: a table matches when its name or singular form
    appears in the prompt. "all", "show" and "table(s)" select every table.
    """
    prompt_lower = prompt.lower()
    if _SELECT_ALL_PATTERN.search(prompt_lower):
        return list(tables)

    selected = []
    for table in tables:
        table_lower = table.lower()
        for form in {table_lower, singular(table_lower)}:
            if re.search(rf"\b{re.escape(form)}\b", prompt_lower):
                selected.append(table)
                break
    return selected


class TableSelector:
    """Selects the existing tables relevant to a request."""

    def __init__(self, settings: Settings, llm: LLMClient):
        """Initialize table selector.

        Args:
            settings: Application settings
            llm: Shared LLM client
        """
        self.settings = settings
        self.llm = llm

    async def select_tables(self, prompt: str, tables: list[str]) -> list[str]:
        """
        Select relevant tables, asking the model first and falling back to
        keyword matching when the model call fails.

        Args:
            prompt: User's natural language request
            tables: Existing table names

        Returns:
            Relevant table names, a subset of ``tables`` in its order
        """
        if not tables:
            return []

        try:
            reply = await self.llm.complete_structured(
                build_table_selection_system_prompt(tables),
                [{"role": "user", "content": prompt}],
                RelevantTables,
                model=self.settings.table_selector_model,
                max_tokens=self.settings.table_selector_max_tokens,
                temperature=0.0,
            )
            requested = {name.strip().lower() for name in reply.relevant_tables}
            selected = [table for table in tables if table.lower() in requested]

            unknown = requested - {table.lower() for table in tables}
            if unknown:
                logger.debug("Dropped unknown tables from selection: %s", sorted(unknown))
            logger.debug("Selected %s tables: %s", len(selected), selected)
            return selected

        except Exception as e:
            logger.warning("Table selection via model failed (%s), using keyword matching", e)
            selected = keyword_match_tables(prompt, tables)
            logger.debug("Keyword matching selected %s tables: %s", len(selected), selected)
            return selected
