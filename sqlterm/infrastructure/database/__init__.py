"""Database connection utilities."""

from sqlterm.infrastructure.database.connection import (
    Database,
    StatementOutcome,
    TenantScope,
    quote_ident,
)

__all__ = ["Database", "StatementOutcome", "TenantScope", "quote_ident"]
