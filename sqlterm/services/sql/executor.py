"""SQL executor service."""

import logging
import re

from sqlparse.exceptions import SQLParseError

from sqlterm.config.constants import POSTGRES_ERROR_PHRASES
from sqlterm.config.validation import (
    TRANSACTION_CONTROL_NOT_ALLOWED,
    check_dangerous_operations,
    is_transaction_control,
)
from sqlterm.infrastructure.database.connection import Database
from sqlterm.infrastructure.errors import StatementError
from sqlterm.services.sql.models import QueryResult
from sqlterm.services.sql.validation import SQLValidationService
from sqlterm.services.tenant import Tenant
from sqlterm.utils.text_processing import clean_sql_text, split_statements

logger = logging.getLogger(__name__)

EMPTY_QUERY = "Empty query"
WORKSPACE_SETUP_FAILED = "Failed to set up user workspace"
NO_EXECUTABLE_STATEMENTS = "No executable statements"
QUERY_TOO_COMPLEX = "Query too large or too deeply nested to validate"


def map_postgres_error(message: str) -> str:
    """Map a PostgreSQL error message to its canonical phrase, or return it unchanged."""
    lowered = message.lower()
    for pattern, phrase in POSTGRES_ERROR_PHRASES:
        if re.search(pattern, lowered):
            return phrase
    return message


def build_message(row_count: int, affected: int) -> str:
    if row_count > 0:
        return f"{row_count} row(s) returned."
    if affected > 0:
        return f"{affected} row(s) affected."
    return "Command executed successfully."


class QueryExecutor:
    """
    Executes tenant SQL inside the tenant's schema.

    Every query is validated before the database is touched, then runs as one
    transaction through :class:`TenantScope`, so a failing statement rolls back
    the whole batch.
    """

    def __init__(self, database: Database, validator: SQLValidationService | None = None):
        self.database = database
        self.validator = validator or SQLValidationService()

    async def execute(self, tenant: Tenant, raw_query: str) -> QueryResult:
        """
        Validate and execute a (possibly multi-statement) query.

        Args:
            tenant: Tenant whose schema the query runs in
            raw_query: Query text as typed or generated

        Returns:
            QueryResult with rows of every row-returning statement in ``data``
        """
        query = (raw_query or "").strip()
        if not query:
            return QueryResult.failure(EMPTY_QUERY)

        try:
            statements, error = self._prepare(tenant, query)
        except SQLParseError as e:
            logger.warning("Query rejected for schema '%s': %s", tenant.schema_name, e)
            return QueryResult.failure(QUERY_TOO_COMPLEX)
        if error:
            return QueryResult.failure(error)

        scope = self.database.scope(tenant)
        try:
            await scope.ensure_schema()
        except Exception as e:
            logger.error("Schema setup failed for '%s': %s", tenant.schema_name, e, exc_info=True)
            return QueryResult.failure(WORKSPACE_SETUP_FAILED)

        logger.info(
            "Executing %s statement(s) in schema '%s'", len(statements), tenant.schema_name
        )
        try:
            outcomes = await scope.run_batch(statements)
        except StatementError as e:
            canonical = map_postgres_error(str(e.cause))
            logger.warning(
                "Statement %s failed in schema '%s': %s", e.index, tenant.schema_name, e.cause
            )
            return QueryResult.failure(f"Statement {e.index} failed: {canonical} [{e.statement}]")
        except Exception as e:
            logger.error("SQL execution error: %s", e, exc_info=True)
            return QueryResult.failure(map_postgres_error(str(e)))

        data = []
        affected = 0
        for outcome in outcomes:
            if outcome.rows is not None:
                data.extend(outcome.rows)
            else:
                affected += outcome.affected

        row_count = len(data) if data else affected
        return QueryResult(
            success=True,
            data=data,
            row_count=row_count,
            message=build_message(len(data), affected),
        )

    def _prepare(self, tenant: Tenant, query: str) -> tuple[list[str], str | None]:
        """Clean, validate and split ``query``; returns the statements or a denial."""
        # Validate the text that will run (fences and AI preamble removed)
        query = clean_sql_text(query)

        validation = self.validator.validate(query, tenant)
        if not validation.is_valid:
            return [], validation.error or "Access denied"

        dangerous = check_dangerous_operations(query)
        if dangerous:
            return [], dangerous

        statements = split_statements(query)
        if not statements:
            return [], NO_EXECUTABLE_STATEMENTS
        if any(is_transaction_control(statement) for statement in statements):
            return [], TRANSACTION_CONTROL_NOT_ALLOWED
        return statements, None
