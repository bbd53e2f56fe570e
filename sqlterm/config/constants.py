"""
Constants, enums, and static values.
"""

import logging
from enum import Enum

logger = logging.getLogger(__name__)


class LineKind(str, Enum):
    """Terminal line categories."""

    OUTPUT = "output"
    INPUT = "input"
    ERROR = "error"
    SUCCESS = "success"


class AuthStep(str, Enum):
    """Terminal authentication steps."""

    ASK = "ask"
    USERNAME = "username"
    PASSWORD = "password"


class StrategyName(str, Enum):
    """Available SQL generation strategies."""

    AGENT = "agent"
    SINGLE_SHOT = "single_shot"


class FlowStep(str, Enum):
    """AI flow execution steps."""

    TABLE_SELECTION = "table_selection"
    SCHEMA = "schema"
    SQL_GENERATION = "sql_generation"
    SQL_EXECUTION = "sql_execution"
    RETRY = "retry"


def log_flow_step(step: FlowStep, detail: str = "") -> None:
    """Log the start of a flow step."""
    if detail:
        logger.info("[%s] %s", step.value, detail)
    else:
        logger.info("[%s]", step.value)


# Canonical phrases for recognizable PostgreSQL errors, checked in order against
# the lower-cased message. 'column "x" of relation "t" does not exist' is a
# column error, hence the anchored column pattern first.
POSTGRES_ERROR_PHRASES: tuple[tuple[str, str], ...] = (
    (r"syntax error", "Syntax error in SQL query"),
    (r"^column .* does not exist", "Column does not exist"),
    (r"relation .* does not exist", "Table or relation does not exist"),
    (r"column .* does not exist", "Column does not exist"),
    (r"duplicate key", "Duplicate key violation"),
    (r"foreign key", "Foreign key constraint violation"),
    (r"not[- ]null", "Not null constraint violation"),
)

SQL_VERB_KEYWORDS: tuple[str, ...] = (
    "select",
    "insert",
    "update",
    "delete",
    "create",
    "drop",
    "alter",
)

# Leading phrases the model sometimes puts before the SQL.
AI_PREAMBLE_PATTERN = r"^\s*(here's|here is|the sql query is|sql query:)\s*"

AI_COMMAND_PREFIX = "/ai "

INTEGER_TYPES: frozenset[str] = frozenset(
    {"integer", "bigint", "smallint", "serial", "bigserial", "smallserial"}
)

SQLPLUS_RELEASE = "SQL*Plus: Release 21.0.0.0.0 - Production"
SQLPLUS_VERSION = "Version 21.3.0.0.0"
SQLPLUS_COPYRIGHT = "Copyright (c) 1982, 2021, Oracle. All rights reserved."
DATABASE_BANNER = "Oracle Database 21c Express Edition Release 21.0.0.0.0 - Production"
