"""SQL validation service."""

import logging

from sqlterm.config.validation import validate_sql_query
from sqlterm.services.sql.models import ValidationResult
from sqlterm.services.tenant import Tenant

logger = logging.getLogger(__name__)


class SQLValidationService:
    """Validates tenant SQL using the rules in config/validation.py."""

    @staticmethod
    def validate(sql: str, tenant: Tenant) -> ValidationResult:
        """
        Validate a query against the tenant's access rules.

        The checks cover:
        - Literal schema filters naming another tenant
        - Schema-qualified references, search_path changes and schema DDL
        - Catalog reads not filtered on the tenant's schema
        - Dangerous operations (roles, grants, databases) and dynamic SQL

        Args:
            sql: SQL query string
            tenant: Tenant the query runs for

        Returns:
            ValidationResult with the first denial in ``errors``
        """
        is_valid, errors = validate_sql_query(sql, tenant)

        if not is_valid:
            logger.warning(
                "SQL validation failed for schema '%s': %s", tenant.schema_name, errors
            )
        else:
            logger.debug("SQL validation passed for schema '%s'", tenant.schema_name)

        return ValidationResult(is_valid=is_valid, errors=errors)
