"""Text processing utilities."""

import re

import sqlparse

from sqlterm.config.constants import AI_COMMAND_PREFIX, AI_PREAMBLE_PATTERN, SQL_VERB_KEYWORDS

_FENCE_PATTERN = re.compile(r"```(?:sql|postgresql|postgres)?\s*", re.IGNORECASE)
_SQL_VERB_PATTERN = re.compile(r"\b(" + "|".join(SQL_VERB_KEYWORDS) + r")\b", re.IGNORECASE)
_SEARCH_PATH_STATEMENT = re.compile(r"^\s*set\s+(?:local\s+|session\s+)?search_path\b", re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences (```sql ... ```) from model output."""
    return _FENCE_PATTERN.sub("", text).strip()


def strip_ai_preamble(text: str) -> str:
    """Remove a leading "here's"/"here is"/"sql query:" style phrase."""
    return re.sub(AI_PREAMBLE_PATTERN, "", text, flags=re.IGNORECASE).strip()


def clean_sql_text(text: str) -> str:
    """Strip fences and AI preamble from a query."""
    return strip_ai_preamble(strip_code_fences(text))


def contains_sql_verb(text: str) -> bool:
    return _SQL_VERB_PATTERN.search(text) is not None


def ensure_single_semicolon(sql: str) -> str:
    """Return ``sql`` ending in exactly one semicolon."""
    return sql.strip().rstrip(";").rstrip() + ";"


def is_search_path_statement(statement: str) -> bool:
    return _SEARCH_PATH_STATEMENT.match(statement) is not None


def split_statements(sql: str) -> list[str]:
    """
    Split a batch on ``;`` boundaries.

    Semicolons inside string literals, quoted identifiers, dollar-quoted bodies
    and comments do not split. Comments are removed, fragments left empty are
    dropped and the trailing semicolon of each statement is removed.
    """
    statements = []
    for fragment in sqlparse.split(sql):
        stripped = sqlparse.format(fragment, strip_comments=True).strip().rstrip(";").strip()
        if stripped:
            statements.append(stripped)
    return statements


def is_ai_command(line: str) -> bool:
    """True for ``/ai <prompt>`` lines (and a bare ``/ai``)."""
    stripped = line.strip()
    return stripped.lower().startswith(AI_COMMAND_PREFIX) or stripped.lower() == AI_COMMAND_PREFIX.strip()


def extract_ai_prompt(line: str) -> str:
    """Text after the ``/ai`` prefix, trimmed."""
    return line.strip()[len(AI_COMMAND_PREFIX.strip()):].strip()
